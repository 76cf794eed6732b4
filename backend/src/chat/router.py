"""
Chat Router

  POST   /api/chat/session   open a fresh session (greeting only)
  GET    /api/chat/session   current session, opened on first read
  DELETE /api/chat/session   close it
  POST   /api/chat/messages  send one message

Free profiles get FREE_MESSAGE_LIMIT messages in total. Past that, a send
returns 429 with the paywall flag and the limits payload.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from src.middleware import limiter
from src.auth.dependencies import require_profile
from src.chat.history import fetch_history
from src.chat.registry import SessionRegistry, get_session_registry
from src.chat.schemas import SendMessageRequest, SendMessageResponse, SessionSnapshot, SubmitOutcome
from src.config import get_settings, Settings
from src.profiles.quota import limits_payload
from src.profiles.schemas import Profile

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/chat/session", response_model=SessionSnapshot)
async def open_session(
    profile: Profile = Depends(require_profile),
    registry: SessionRegistry = Depends(get_session_registry),
):
    return registry.open(profile).snapshot()


@router.get("/chat/session", response_model=SessionSnapshot)
async def get_session(
    profile: Profile = Depends(require_profile),
    registry: SessionRegistry = Depends(get_session_registry),
):
    return registry.get_or_open(profile).snapshot()


@router.delete("/chat/session")
async def close_session(
    profile: Profile = Depends(require_profile),
    registry: SessionRegistry = Depends(get_session_registry),
):
    closed = registry.close(profile.uid)
    return {"status": "closed" if closed else "not_open"}


@router.post("/chat/messages", response_model=SendMessageResponse)
@limiter.limit("20/minute")
async def send_message(
    request: Request,
    body: SendMessageRequest,
    profile: Profile = Depends(require_profile),
    registry: SessionRegistry = Depends(get_session_registry),
    settings: Settings = Depends(get_settings),
):
    session = registry.get_or_open(profile)
    outcome, reply = await session.submit(body.text)

    if outcome == SubmitOutcome.PAYWALL:
        raise HTTPException(status_code=429, detail={
            "message": f"You've used all {settings.free_message_limit} free messages. Go Premium for unlimited chat.",
            "paywall": True,
            **limits_payload(session.profile, settings.free_message_limit),
        })

    return SendMessageResponse(outcome=outcome, reply=reply, session=session.snapshot())


@router.get("/chat/history")
async def get_chat_history(profile: Profile = Depends(require_profile)):
    """Exchanges logged for this user, oldest first."""
    return {"messages": fetch_history(profile.uid)}
