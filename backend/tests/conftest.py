"""Shared fixtures: in-memory profile store, scripted generator, API client."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from src.chat.generation import GenerationError
from src.chat.registry import SessionRegistry, get_session_registry
from src.config import Settings, get_settings
from src.profiles.schemas import Profile
from src.profiles.store import MemoryProfileBackend, SessionStore, get_session_store

USER = {
    "id": "user-1",
    "email": "lea@example.com",
    "user_metadata": {"full_name": "Léa Martin", "avatar_url": "https://example.com/lea.png"},
}


class ScriptedGenerator:
    """Generation collaborator double. Records every call."""

    def __init__(self, reply: str = "Have you looked at design schools?", fail: bool = False):
        self.reply = reply
        self.fail = fail
        self.calls: list[tuple[list, str]] = []
        self.gate: asyncio.Event | None = None

    async def __call__(self, transcript, new_message):
        self.calls.append((list(transcript), new_message))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise GenerationError("model unavailable")
        return self.reply


def make_profile(**overrides) -> Profile:
    fields = {"uid": "user-1", "display_name": "Léa Martin", "email": "lea@example.com"}
    fields.update(overrides)
    return Profile(**fields)


@pytest.fixture
def settings():
    return Settings(free_message_limit=5, demo_latency_seconds=0)


@pytest.fixture
def backend():
    return MemoryProfileBackend()


@pytest.fixture
def store(backend):
    return SessionStore(backend)


@pytest.fixture
def generator():
    return ScriptedGenerator()


@pytest.fixture
def registry(store, generator):
    return SessionRegistry(store, generator, limit=5)


@pytest.fixture
def app(store, registry, settings):
    from src.auth.dependencies import get_current_user
    from src.main import app as _app
    from src.middleware import limiter

    _app.dependency_overrides[get_current_user] = lambda: USER
    _app.dependency_overrides[get_session_store] = lambda: store
    _app.dependency_overrides[get_session_registry] = lambda: registry
    _app.dependency_overrides[get_settings] = lambda: settings
    limiter.enabled = False
    yield _app
    _app.dependency_overrides.clear()
    limiter.enabled = True


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def anon_client(app):
    from src.auth.dependencies import get_current_user

    app.dependency_overrides[get_current_user] = lambda: None
    with TestClient(app) as c:
        yield c
