from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Identity(BaseModel):
    """Who the identity provider says is signed in."""
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None


class Profile(BaseModel):
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    is_premium: bool = False
    message_count: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=_utcnow)
    last_active_at: Optional[datetime] = None

    @property
    def first_name(self) -> Optional[str]:
        if not self.display_name or not self.display_name.strip():
            return None
        return self.display_name.split()[0]

    @property
    def tier(self) -> str:
        return "premium" if self.is_premium else "free"


class LimitsOut(BaseModel):
    tier: str
    message_limit: int | str
    messages_used: int
    remaining: int | str
