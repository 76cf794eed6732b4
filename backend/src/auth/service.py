from src.profiles.schemas import Identity


def identity_from_user(user: dict) -> Identity:
    """Map a Supabase Auth user payload to an Identity."""
    meta = user.get("user_metadata") or {}
    return Identity(
        uid=user["id"],
        email=user.get("email"),
        display_name=meta.get("full_name") or meta.get("name"),
        avatar_url=meta.get("avatar_url") or meta.get("picture"),
    )
