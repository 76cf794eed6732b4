"""Chat log: each completed exchange is written to `chat_messages`."""

import asyncio
import logging

from src.config import get_supabase_client

logger = logging.getLogger(__name__)

CHAT_TABLE = "chat_messages"


async def record_exchange(uid: str, text: str, reply: str):
    sb = get_supabase_client()
    if not sb:
        return
    rows = [
        {"user_id": uid, "role": "user", "content": text},
        {"user_id": uid, "role": "assistant", "content": reply},
    ]
    try:
        await asyncio.to_thread(lambda: sb.table(CHAT_TABLE).insert(rows).execute())
    except Exception as e:
        logger.warning(f"Could not save chat messages: {e}")


def fetch_history(uid: str, limit: int = 50) -> list[dict]:
    sb = get_supabase_client()
    if not sb:
        return []
    try:
        result = sb.table(CHAT_TABLE).select("role, content, created_at") \
            .eq("user_id", uid).order("created_at").limit(limit).execute()
        return result.data or []
    except Exception as e:
        logger.warning(f"Could not fetch chat history: {e}")
        return []
