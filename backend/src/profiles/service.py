import logging

from src.profiles.schemas import Profile
from src.profiles.store import SessionStore

logger = logging.getLogger(__name__)


def upgrade(profile: Profile) -> Profile:
    """Premium copy of the profile. The message counter is kept as is."""
    if profile.is_premium:
        return profile
    return profile.model_copy(update={"is_premium": True})


def apply_upgrade(profile: Profile, store: SessionStore) -> Profile:
    """Upgrade and save. Store observers lift the paywall in an open chat."""
    upgraded = upgrade(profile)
    if upgraded is not profile:
        logger.info(f"Upgraded {profile.uid} to premium")
    return store.save(upgraded)
