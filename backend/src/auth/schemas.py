from pydantic import BaseModel
from typing import Optional


class UserOut(BaseModel):
    id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    tier: str = "free"
    is_premium: bool = False
    message_count: int = 0
