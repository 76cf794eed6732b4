from fastapi import APIRouter, Depends
from src.auth.dependencies import get_current_user, require_auth
from src.auth.schemas import UserOut
from src.auth.service import identity_from_user
from src.chat.registry import SessionRegistry, get_session_registry
from src.profiles.schemas import Profile
from src.profiles.store import SessionStore, get_session_store
from typing import Optional

router = APIRouter()


def _user_out(profile: Profile) -> dict:
    return UserOut(
        id=profile.uid,
        email=profile.email,
        display_name=profile.display_name,
        avatar_url=profile.avatar_url,
        tier=profile.tier,
        is_premium=profile.is_premium,
        message_count=profile.message_count,
    ).model_dump()


@router.get("/me")
async def get_me(
    user: Optional[dict] = Depends(get_current_user),
    store: SessionStore = Depends(get_session_store),
):
    """Get current user profile. Returns null user if not authenticated."""
    if user is None:
        return {"user": None}

    profile = store.open(identity_from_user(user))
    if profile is None:
        return {"user": None}
    return {"user": _user_out(profile)}


@router.post("/logout")
async def logout(
    user: dict = Depends(require_auth),
    store: SessionStore = Depends(get_session_store),
    registry: SessionRegistry = Depends(get_session_registry),
):
    """Drop this process's copy of the profile and chat. The stored record stays."""
    registry.close(user["id"])
    store.forget(user["id"])
    return {"status": "signed_out"}
