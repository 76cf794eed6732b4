import time
from enum import Enum
from typing import Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def _now_ms() -> int:
    return int(time.time() * 1000)


class ChatState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    PAYWALL_BLOCKED = "paywall_blocked"


class SubmitOutcome(str, Enum):
    SENT = "sent"
    IGNORED = "ignored"
    PAYWALL = "paywall"


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid4().hex)
    text: str
    sender: Literal["user", "assistant"]
    timestamp: int = Field(default_factory=_now_ms)


class SendMessageRequest(BaseModel):
    text: str = Field(..., max_length=2000)


class SessionSnapshot(BaseModel):
    state: ChatState
    messages: list[Message]
    loading: bool
    paywall: bool
    remaining: Optional[int] = None


class SendMessageResponse(BaseModel):
    outcome: SubmitOutcome
    reply: Optional[Message] = None
    session: SessionSnapshot
