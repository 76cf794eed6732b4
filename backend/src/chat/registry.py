"""One active Chat Session per signed-in user."""

import asyncio
import logging
import time
from functools import lru_cache
from typing import Optional

from src.config import Settings, get_settings
from src.chat.generation import generate_reply
from src.chat.history import record_exchange
from src.chat.schemas import ChatState
from src.chat.session import ChatSession, ExchangeRecorder, Generator
from src.profiles.schemas import Profile
from src.profiles.store import SessionStore, get_session_store

logger = logging.getLogger(__name__)


class SessionRegistry:
    def __init__(
        self,
        store: SessionStore,
        generate: Generator,
        limit: int,
        record: Optional[ExchangeRecorder] = None,
    ):
        self._store = store
        self._generate = generate
        self._limit = limit
        self._record = record
        self._sessions: dict[str, ChatSession] = {}

    def open(self, profile: Profile) -> ChatSession:
        """Start a fresh session, replacing any previous one for this user."""
        self.close(profile.uid)
        session = ChatSession(
            profile,
            self._store,
            self._generate,
            limit=self._limit,
            record_exchange=self._record,
        )
        session.observe(profile)
        self._sessions[profile.uid] = session
        logger.info(f"Opened chat session for {profile.uid} ({session.state.value})")
        return session

    def get(self, uid: str) -> Optional[ChatSession]:
        return self._sessions.get(uid)

    def get_or_open(self, profile: Profile) -> ChatSession:
        session = self._sessions.get(profile.uid)
        if session is None:
            return self.open(profile)
        session.last_active = time.monotonic()
        session.observe(profile)
        return session

    def close(self, uid: str) -> bool:
        session = self._sessions.pop(uid, None)
        if session is None:
            return False
        session.close()
        return True

    def evict_idle(self, max_idle: float, now: Optional[float] = None) -> list[str]:
        """Close sessions nobody has used for max_idle seconds. Sending sessions stay."""
        now = time.monotonic() if now is None else now
        idle = [
            uid for uid, session in self._sessions.items()
            if session.state != ChatState.SENDING and now - session.last_active >= max_idle
        ]
        for uid in idle:
            self.close(uid)
        return idle


async def sweep_idle(registry: SessionRegistry, store: SessionStore, max_idle: float, interval: float):
    """Periodically drop idle chat sessions, then the profiles they leave behind."""
    while True:
        await asyncio.sleep(interval)
        sessions = registry.evict_idle(max_idle)
        profiles = store.evict_idle(max_idle)
        if sessions or profiles:
            logger.info(f"Evicted {len(sessions)} idle chat session(s) and {len(profiles)} profile(s)")


def build_registry(store: SessionStore, settings: Settings) -> SessionRegistry:
    async def generate(transcript, new_message):
        return await generate_reply(transcript, new_message, settings)

    return SessionRegistry(
        store,
        generate,
        limit=settings.free_message_limit,
        record=record_exchange,
    )


@lru_cache
def get_session_registry() -> SessionRegistry:
    return build_registry(get_session_store(), get_settings())
