"""
Plan endpoints.

  GET  /api/limits   tier, limit, used and remaining messages
  POST /api/upgrade  simulated checkout, always succeeds
"""

import logging

from fastapi import APIRouter, Depends

from src.auth.dependencies import require_profile
from src.config import get_settings, Settings
from src.profiles.quota import limits_payload
from src.profiles.schemas import Profile
from src.profiles.service import apply_upgrade
from src.profiles.store import SessionStore, get_session_store

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/limits")
async def get_limits(
    profile: Profile = Depends(require_profile),
    settings: Settings = Depends(get_settings),
):
    return limits_payload(profile, settings.free_message_limit)


@router.post("/upgrade")
async def upgrade_plan(
    profile: Profile = Depends(require_profile),
    store: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_settings),
):
    upgraded = apply_upgrade(profile, store)
    return {
        "status": "success",
        "message": "Payment simulated. Welcome to Raf Way Premium!",
        "limits": limits_payload(upgraded, settings.free_message_limit),
    }
