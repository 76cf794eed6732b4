"""
Session Store: the single in-process owner of each signed-in user's Profile.

Reads come from memory once a profile has been opened. Writes are applied in
memory first, observers are told, and the durable write is queued on the
event loop. Writes for one user are serialized and coalesced, so whatever was
saved last is what ends up in the backend.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from functools import lru_cache
from typing import Callable, Optional, Protocol

from src.config import get_supabase_client
from src.profiles.schemas import Identity, Profile

logger = logging.getLogger(__name__)

PROFILES_TABLE = "profiles"

ProfileObserver = Callable[[Profile], None]


class ProfileBackend(Protocol):
    def get_or_create(self, identity: Identity) -> dict: ...

    def write(self, profile: Profile) -> None: ...


def _default_row(identity: Identity) -> dict:
    return {
        "id": identity.uid,
        "email": identity.email,
        "display_name": identity.display_name,
        "avatar_url": identity.avatar_url,
        "is_premium": False,
        "message_count": 0,
        "created_at": datetime.now(timezone.utc).isoformat(),
        "last_active_at": None,
    }


def profile_to_row(profile: Profile) -> dict:
    row = profile.model_dump(mode="json", exclude={"uid"})
    row["id"] = profile.uid
    return row


def profile_from_row(row: dict, identity: Optional[Identity] = None) -> Profile:
    """Build a Profile from a stored row, filling gaps from the identity."""
    fields = {
        "uid": row["id"],
        "email": row.get("email"),
        "display_name": row.get("display_name"),
        "avatar_url": row.get("avatar_url"),
        "is_premium": bool(row.get("is_premium") or False),
        "message_count": int(row.get("message_count") or 0),
        "last_active_at": row.get("last_active_at"),
    }
    if row.get("created_at"):
        fields["created_at"] = row["created_at"]
    if identity:
        fields["email"] = fields["email"] or identity.email
        fields["display_name"] = fields["display_name"] or identity.display_name
        fields["avatar_url"] = fields["avatar_url"] or identity.avatar_url
    return Profile(**fields)


class SupabaseProfileBackend:
    def __init__(self, client):
        self._sb = client

    def get_or_create(self, identity: Identity) -> dict:
        result = self._sb.table(PROFILES_TABLE).select("*").eq("id", identity.uid).execute()
        if result.data and len(result.data) > 0:
            return result.data[0]
        row = _default_row(identity)
        self._sb.table(PROFILES_TABLE).insert(row).execute()
        logger.info(f"Created profile for {identity.uid}")
        return row

    def write(self, profile: Profile) -> None:
        self._sb.table(PROFILES_TABLE).upsert(profile_to_row(profile)).execute()


class MemoryProfileBackend:
    """Rows kept in a dict. Used when Supabase is not configured."""

    def __init__(self):
        self.rows: dict[str, dict] = {}

    def get_or_create(self, identity: Identity) -> dict:
        if identity.uid not in self.rows:
            self.rows[identity.uid] = _default_row(identity)
        return dict(self.rows[identity.uid])

    def write(self, profile: Profile) -> None:
        self.rows[profile.uid] = profile_to_row(profile)


class SessionStore:
    def __init__(self, backend: ProfileBackend):
        self._backend = backend
        self._profiles: dict[str, Profile] = {}
        self._observers: dict[str, list[ProfileObserver]] = {}
        self._dirty: dict[str, Profile] = {}
        self._inflight: dict[str, Profile] = {}
        self._writers: dict[str, asyncio.Task] = {}
        self._touched: dict[str, float] = {}

    @property
    def backend(self) -> ProfileBackend:
        return self._backend

    def open(self, identity: Identity) -> Optional[Profile]:
        """Load the profile once per session start. None means 'sign in again'."""
        uid = identity.uid
        cached = self._profiles.get(uid)
        if cached is None:
            # A write that has not landed yet is newer than the stored row.
            cached = self._dirty.get(uid) or self._inflight.get(uid)
            if cached is not None:
                self._profiles[uid] = cached
        if cached is not None:
            self._touch(uid)
            return cached
        try:
            row = self._backend.get_or_create(identity)
        except Exception as e:
            logger.warning(f"Could not load profile {uid}: {e}")
            return None
        profile = profile_from_row(row, identity)
        self._profiles[uid] = profile
        self._touch(uid)
        return profile

    def load(self, uid: str) -> Optional[Profile]:
        return self._profiles.get(uid)

    def save(self, profile: Profile) -> Profile:
        self._profiles[profile.uid] = profile
        self._touch(profile.uid)
        for observer in list(self._observers.get(profile.uid, [])):
            observer(profile)
        self._queue_write(profile)
        return profile

    def forget(self, uid: str):
        """Sign-out. The persisted record and any queued write are left alone."""
        self._profiles.pop(uid, None)
        self._observers.pop(uid, None)
        self._touched.pop(uid, None)

    def subscribe(self, uid: str, observer: ProfileObserver):
        self._observers.setdefault(uid, []).append(observer)

    def unsubscribe(self, uid: str, observer: ProfileObserver):
        observers = self._observers.get(uid, [])
        if observer in observers:
            observers.remove(observer)
        if not observers:
            self._observers.pop(uid, None)

    def evict_idle(self, max_idle: float, now: Optional[float] = None) -> list[str]:
        """Forget profiles untouched for max_idle seconds.
        Profiles with observers or unwritten changes are kept."""
        now = time.monotonic() if now is None else now
        evicted = []
        for uid, touched in list(self._touched.items()):
            if now - touched < max_idle:
                continue
            if self._observers.get(uid) or uid in self._dirty or uid in self._inflight:
                continue
            self.forget(uid)
            evicted.append(uid)
        return evicted

    async def flush(self):
        """Wait for queued writes started on the running loop."""
        loop = asyncio.get_running_loop()
        while True:
            pending = [t for t in self._writers.values() if t.get_loop() is loop and not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def _touch(self, uid: str):
        self._touched[uid] = time.monotonic()

    # ── durable writes ──

    def _queue_write(self, profile: Profile):
        self._dirty[profile.uid] = profile
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._drain_now(profile.uid)
            return

        writer = self._writers.get(profile.uid)
        if writer is None or writer.done() or writer.get_loop().is_closed():
            self._writers[profile.uid] = loop.create_task(self._drain(profile.uid))

    async def _drain(self, uid: str):
        while uid in self._dirty:
            profile = self._dirty.pop(uid)
            self._inflight[uid] = profile
            try:
                await asyncio.to_thread(self._backend.write, profile)
            except Exception as e:
                logger.warning(f"Could not persist profile {uid}: {e}")
            finally:
                if self._inflight.get(uid) is profile:
                    del self._inflight[uid]
        if self._writers.get(uid) is asyncio.current_task():
            del self._writers[uid]

    def _drain_now(self, uid: str):
        profile = self._dirty.pop(uid, None)
        if profile is None:
            return
        try:
            self._backend.write(profile)
        except Exception as e:
            logger.warning(f"Could not persist profile {uid}: {e}")


@lru_cache
def get_session_store() -> SessionStore:
    sb = get_supabase_client()
    backend = SupabaseProfileBackend(sb) if sb else MemoryProfileBackend()
    return SessionStore(backend)
