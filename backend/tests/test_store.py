"""Tests for the Session Store and its profile backends."""

import asyncio
import logging
import threading

import pytest

from src.profiles.schemas import Identity
from src.profiles.store import (
    MemoryProfileBackend,
    SessionStore,
    SupabaseProfileBackend,
    profile_from_row,
    profile_to_row,
)

from conftest import make_profile

LEA = Identity(uid="user-1", email="lea@example.com", display_name="Léa Martin")


class RecordingBackend(MemoryProfileBackend):
    def __init__(self):
        super().__init__()
        self.writes = []

    def write(self, profile):
        self.writes.append(profile.message_count)
        super().write(profile)


class SlowBackend(MemoryProfileBackend):
    """Holds every write until released."""

    def __init__(self):
        super().__init__()
        self.started = threading.Event()
        self.release = threading.Event()

    def write(self, profile):
        self.started.set()
        self.release.wait(5)
        super().write(profile)


class BrokenBackend:
    def get_or_create(self, identity):
        raise ConnectionError("database down")

    def write(self, profile):
        raise ConnectionError("database down")


# ---------------------------------------------------------------------------
# open / load
# ---------------------------------------------------------------------------

def test_open_creates_profile_with_defaults(store, backend):
    profile = store.open(LEA)
    assert profile.uid == "user-1"
    assert profile.is_premium is False
    assert profile.message_count == 0
    assert profile.display_name == "Léa Martin"
    assert "user-1" in backend.rows


def test_open_is_cached_per_session(store, backend):
    first = store.open(LEA)
    backend.rows["user-1"]["message_count"] = 3
    assert store.open(LEA) is first
    assert store.load("user-1") is first


def test_open_reuses_existing_record(backend):
    backend.rows["user-1"] = {"id": "user-1", "is_premium": True, "message_count": 4}
    profile = SessionStore(backend).open(LEA)
    assert profile.is_premium is True
    assert profile.message_count == 4
    assert profile.email == "lea@example.com"


def test_load_absent_before_open(store):
    assert store.load("user-1") is None


def test_open_failure_counts_as_signed_out(caplog):
    store = SessionStore(BrokenBackend())
    with caplog.at_level(logging.WARNING):
        assert store.open(LEA) is None
    assert "Could not load profile" in caplog.text
    assert store.load("user-1") is None


# ---------------------------------------------------------------------------
# save
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_save_applies_in_memory_before_persisting():
    backend = RecordingBackend()
    store = SessionStore(backend)
    store.open(LEA)

    store.save(make_profile(message_count=1))
    assert store.load("user-1").message_count == 1

    await store.flush()
    assert backend.rows["user-1"]["message_count"] == 1


@pytest.mark.asyncio
async def test_latest_save_wins():
    backend = RecordingBackend()
    store = SessionStore(backend)
    store.open(LEA)

    for count in range(1, 6):
        store.save(make_profile(message_count=count))
    await store.flush()

    assert backend.rows["user-1"]["message_count"] == 5
    assert backend.writes[-1] == 5
    assert backend.writes == sorted(backend.writes)


def test_save_without_event_loop_writes_immediately(store, backend):
    store.open(LEA)
    store.save(make_profile(message_count=2))
    assert backend.rows["user-1"]["message_count"] == 2


@pytest.mark.asyncio
async def test_write_failure_is_logged_not_raised(caplog):
    store = SessionStore(BrokenBackend())
    with caplog.at_level(logging.WARNING):
        store.save(make_profile(message_count=1))
        await store.flush()
    assert store.load("user-1").message_count == 1
    assert "Could not persist profile" in caplog.text


def test_observers_see_every_save(store):
    seen = []
    store.subscribe("user-1", seen.append)
    store.save(make_profile(message_count=1))
    store.save(make_profile(message_count=2, is_premium=True))
    assert [p.message_count for p in seen] == [1, 2]
    assert seen[-1].is_premium

    store.unsubscribe("user-1", seen.append)
    store.save(make_profile(message_count=3))
    assert len(seen) == 2


def test_forget_keeps_persisted_record(store, backend):
    store.open(LEA)
    store.save(make_profile(message_count=3))
    store.forget("user-1")

    assert store.load("user-1") is None
    assert backend.rows["user-1"]["message_count"] == 3
    assert store.open(LEA).message_count == 3


# ---------------------------------------------------------------------------
# Rows
# ---------------------------------------------------------------------------

def test_row_mapping():
    profile = make_profile(is_premium=True, message_count=2)
    row = profile_to_row(profile)
    assert row["id"] == "user-1"
    assert "uid" not in row
    assert profile_from_row(row) == profile


def test_row_mapping_tolerates_nulls():
    profile = profile_from_row({"id": "u", "is_premium": None, "message_count": None})
    assert profile.is_premium is False
    assert profile.message_count == 0


class FakeQuery:
    def __init__(self, table):
        self.table = table
        self.ops = []

    def __getattr__(self, name):
        def op(*args, **kwargs):
            self.ops.append((name, args))
            return self
        return op

    def execute(self):
        self.table.executed.append(self.ops)
        return type("Result", (), {"data": self.table.data})()


class FakeSupabase:
    def __init__(self, data):
        self.data = data
        self.executed = []

    def table(self, name):
        assert name == "profiles"
        return FakeQuery(self)


def test_supabase_backend_inserts_missing_profile():
    sb = FakeSupabase(data=[])
    row = SupabaseProfileBackend(sb).get_or_create(LEA)
    assert row["id"] == "user-1"
    assert row["message_count"] == 0
    assert any(name == "insert" for name, _ in sb.executed[-1])


def test_supabase_backend_returns_existing_row():
    sb = FakeSupabase(data=[{"id": "user-1", "is_premium": True, "message_count": 9}])
    row = SupabaseProfileBackend(sb).get_or_create(LEA)
    assert row["is_premium"] is True
    assert len(sb.executed) == 1


def test_supabase_backend_upserts_profile():
    sb = FakeSupabase(data=[])
    SupabaseProfileBackend(sb).write(make_profile(message_count=4))
    name, args = sb.executed[-1][0]
    assert name == "upsert"
    assert args[0]["message_count"] == 4


# ---------------------------------------------------------------------------
# Sign-out while a write is pending
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_reopen_before_queued_write_keeps_counter(store, backend):
    store.open(LEA)
    store.save(make_profile(message_count=5))
    store.forget("user-1")

    again = store.open(LEA)

    assert again.message_count == 5
    store.save(again.model_copy(update={"message_count": 6}))
    await store.flush()
    assert backend.rows["user-1"]["message_count"] == 6


@pytest.mark.asyncio
async def test_reopen_during_inflight_write_keeps_counter():
    backend = SlowBackend()
    store = SessionStore(backend)
    store.open(LEA)

    store.save(make_profile(message_count=5))
    await asyncio.to_thread(backend.started.wait, 5)
    store.forget("user-1")

    again = store.open(LEA)
    backend.release.set()
    await store.flush()

    assert again.message_count == 5
    assert backend.rows["user-1"]["message_count"] == 5


# ---------------------------------------------------------------------------
# Idle eviction
# ---------------------------------------------------------------------------

def test_evict_idle_drops_untouched_profiles(store):
    store.open(LEA)
    evicted = store.evict_idle(60, now=store._touched["user-1"] + 61)
    assert evicted == ["user-1"]
    assert store.load("user-1") is None


def test_evict_idle_keeps_recent_profiles(store):
    store.open(LEA)
    assert store.evict_idle(60, now=store._touched["user-1"] + 30) == []
    assert store.load("user-1") is not None


def test_evict_idle_keeps_observed_profiles(store):
    store.open(LEA)
    store.subscribe("user-1", lambda profile: None)
    assert store.evict_idle(60, now=store._touched["user-1"] + 61) == []


@pytest.mark.asyncio
async def test_evict_idle_keeps_unwritten_profiles(store):
    store.save(make_profile(message_count=2))
    assert store.evict_idle(0) == []
    await store.flush()
    assert store.evict_idle(0) == ["user-1"]
