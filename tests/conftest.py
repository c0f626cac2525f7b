"""Shared fixtures: a temporary database and media root per test, a scripted
generation provider and an in-process image host."""

import asyncio
import copy
import json

import httpx
import pytest
from fastapi.testclient import TestClient

import app.core.db as db_mod
from app.core.config import settings
from app.core.ratelimit import limiter
from app.main import app, create_tables
from app.services.fetcher import Fetcher
from app.services.prompts import ArticleLength
from app.services.providers import GenerationProvider
from app.services.storage import LocalObjectStore

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
MP3_BYTES = b"ID3\x04\x00" + b"\x00" * 32
IMAGE_URL = "https://images.example.com/generated/abc.png"
ADMIN_TOKEN = "admin-secret"

ARTICLE_REPLY = {
    "title": "Sleep and Memory Consolidation",
    "content": (
        '<h2>Introduction</h2><p onclick="steal()">Sleep supports <strong>memory</strong>.</p>'
        "<script>alert(1)</script>"
    ),
    "summary": "Sleep strengthens newly formed memories.",
    "citations": [
        {
            "source": "Nature Neuroscience",
            "author": "Walker, M.",
            "year": 2017,
            "url": "https://example.org/walker",
            "quote": "Sleep is essential for memory.",
        },
        {
            "source": "Journal of Sleep Research",
            "author": "Diekelmann, S.",
            "year": "2010",
            "url": None,
            "quote": None,
        },
    ],
}


class StubProvider(GenerationProvider):
    """Records every call; ``*_errors`` lists are raised one per call before succeeding."""

    def __init__(self, reply=None):
        self.reply = reply if reply is not None else json.dumps(ARTICLE_REPLY)
        self.image_url = IMAGE_URL
        self.audio = MP3_BYTES
        self.calls = []
        self.text_errors = []
        self.image_errors = []
        self.speech_errors = []

    async def generate_text(self, system_prompt, user_prompt, length=ArticleLength.MEDIUM):
        self.calls.append(("text", user_prompt, length))
        if self.text_errors:
            raise self.text_errors.pop(0)
        return self.reply

    async def generate_image(self, prompt):
        self.calls.append(("image", prompt))
        if self.image_errors:
            raise self.image_errors.pop(0)
        return self.image_url

    async def synthesize_speech(self, text):
        self.calls.append(("speech", text))
        if self.speech_errors:
            raise self.speech_errors.pop(0)
        return self.audio

    def stages(self):
        return [c[0] for c in self.calls]


def article_reply(**overrides):
    reply = copy.deepcopy(ARTICLE_REPLY)
    reply.update(overrides)
    return reply


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point the app at a temporary database and media root."""
    monkeypatch.setattr(settings, "db_path", str(tmp_path / "test.db"))
    monkeypatch.setattr(settings, "media_dir", str(tmp_path / "media"))
    monkeypatch.setattr(settings, "public_base_url", "http://testserver")
    monkeypatch.setattr(settings, "signing_secret", "test-secret")
    monkeypatch.setattr(settings, "admin_token", ADMIN_TOKEN)
    monkeypatch.setattr(settings, "retry_backoff_seconds", 0.0)
    monkeypatch.setattr(settings, "media_refresh_enabled", False)
    monkeypatch.setattr(settings, "rate_limit_enabled", False)
    monkeypatch.setattr(settings, "audio_storage", "inline")

    # Reset engine/session so they use the new path
    db_mod._engine = None
    db_mod._SessionLocal = None
    limiter.reset()
    yield
    asyncio.run(db_mod.dispose_engine())
    limiter.reset()


@pytest.fixture
def provider():
    return StubProvider()


@pytest.fixture
def image_requests():
    return []


@pytest.fixture
def fetcher(image_requests):
    def handler(request: httpx.Request) -> httpx.Response:
        image_requests.append(str(request.url))
        if request.url.host != "images.example.com":
            return httpx.Response(404)
        return httpx.Response(200, content=PNG_BYTES, headers={"Content-Type": "image/png"})

    return Fetcher("test-agent", 5, transport=httpx.MockTransport(handler))


@pytest.fixture
def store(tmp_path):
    return LocalObjectStore(tmp_path / "media", "http://testserver", "test-secret")


@pytest.fixture
def run_db():
    """Run ``fn(session)`` against the test database on a fresh event loop."""

    def _run(fn):
        async def _inner():
            await create_tables()
            async with db_mod.get_sessionmaker()() as session:
                return await fn(session)

        return asyncio.run(_inner())

    return _run


@pytest.fixture
def client(provider, store, fetcher):
    app.state.provider = provider
    app.state.store = store
    app.state.fetcher = fetcher
    with TestClient(app) as c:
        yield c
    app.state.provider = None
    app.state.store = None
    app.state.fetcher = None


@pytest.fixture
def admin_headers():
    return {"X-Admin-Token": ADMIN_TOKEN}
