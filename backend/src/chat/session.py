"""
Chat Session: one live transcript and its send/receive state machine.

    idle --submit--> sending --reply--> idle
    idle --submit (quota spent)--> paywall_blocked
    idle --observe (quota spent)--> paywall_blocked
    paywall_blocked --observe (allowed again)--> idle

The counter is spent when the user message is appended, before the reply
arrives, and is not given back if generation fails.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, Sequence

from src.chat.schemas import ChatState, Message, SessionSnapshot, SubmitOutcome
from src.profiles.quota import FREE_LIMIT, allowed, remaining
from src.profiles.schemas import Profile
from src.profiles.store import SessionStore

logger = logging.getLogger(__name__)

FALLBACK_REPLY = "Oops, I had a little connection hiccup. Please try again!"

Generator = Callable[[Sequence[Message], str], Awaitable[str]]
ExchangeRecorder = Callable[[str, str, str], Awaitable[None]]


def greeting_for(profile: Profile) -> Message:
    name = profile.first_name or "friend"
    return Message(
        id="welcome",
        text=(
            f"Hi {name}! 👋 I'm Raf, your guidance coach.\n"
            "Tell me, what are you passionate about, or which subjects do you like best at school?"
        ),
        sender="assistant",
    )


class ChatSession:
    def __init__(
        self,
        profile: Profile,
        store: SessionStore,
        generate: Generator,
        limit: int = FREE_LIMIT,
        record_exchange: Optional[ExchangeRecorder] = None,
    ):
        self.uid = profile.uid
        self.state = ChatState.IDLE
        self.closed = False
        self.last_active = time.monotonic()
        self._profile = profile
        self._store = store
        self._generate = generate
        self._limit = limit
        self._record_exchange = record_exchange
        self._messages: list[Message] = [greeting_for(profile)]
        store.subscribe(self.uid, self.observe)

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    @property
    def profile(self) -> Profile:
        return self._store.load(self.uid) or self._profile

    def observe(self, profile: Profile):
        """Re-run the gate against a refreshed profile."""
        self._profile = profile
        if self.state == ChatState.SENDING:
            return
        if allowed(profile, self._limit):
            if self.state == ChatState.PAYWALL_BLOCKED:
                self.state = ChatState.IDLE
        else:
            self.state = ChatState.PAYWALL_BLOCKED

    async def submit(self, text: str) -> tuple[SubmitOutcome, Optional[Message]]:
        if not text or not text.strip() or self.state == ChatState.SENDING:
            return SubmitOutcome.IGNORED, None

        profile = self.profile
        if not allowed(profile, self._limit):
            self.state = ChatState.PAYWALL_BLOCKED
            return SubmitOutcome.PAYWALL, None

        self.last_active = time.monotonic()
        history = list(self._messages)
        self._messages.append(Message(text=text, sender="user"))
        self.state = ChatState.SENDING
        self._store.save(profile.model_copy(update={
            "message_count": profile.message_count + 1,
            "last_active_at": datetime.now(timezone.utc),
        }))

        try:
            reply_text = await self._generate(history, text)
        except Exception:
            logger.exception(f"Generation failed for {self.uid}")
            reply_text = FALLBACK_REPLY

        reply = Message(text=reply_text, sender="assistant")
        self._messages.append(reply)
        self.state = ChatState.IDLE
        self.observe(self.profile)

        if self._record_exchange:
            try:
                await self._record_exchange(self.uid, text, reply_text)
            except Exception as e:
                logger.warning(f"Could not record chat exchange for {self.uid}: {e}")

        return SubmitOutcome.SENT, reply

    def close(self):
        """Navigate away. An in-flight reply still lands, but nobody reads it."""
        self.closed = True
        self._store.unsubscribe(self.uid, self.observe)

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            state=self.state,
            messages=self.messages,
            loading=self.state == ChatState.SENDING,
            paywall=self.state == ChatState.PAYWALL_BLOCKED,
            remaining=remaining(self.profile, self._limit),
        )
