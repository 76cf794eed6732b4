"""
Free-tier message quota.

  Free:     FREE_LIMIT messages in total (the counter never resets)
  Premium:  unlimited
"""

from typing import Optional

from src.profiles.schemas import LimitsOut, Profile

FREE_LIMIT = 5


def allowed(profile: Profile, limit: int = FREE_LIMIT) -> bool:
    """True when the profile may send one more message."""
    if profile.is_premium:
        return True
    return profile.message_count < limit


def remaining(profile: Profile, limit: int = FREE_LIMIT) -> Optional[int]:
    """Messages left on the free tier, or None when unlimited."""
    if profile.is_premium:
        return None
    return max(0, limit - profile.message_count)


def limits_payload(profile: Profile, limit: int = FREE_LIMIT) -> dict:
    left = remaining(profile, limit)
    return LimitsOut(
        tier=profile.tier,
        message_limit="unlimited" if left is None else limit,
        messages_used=profile.message_count,
        remaining="unlimited" if left is None else left,
    ).model_dump()
