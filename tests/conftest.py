"""Shared fixtures.

The environment is pointed at an in-memory database and a throwaway storage
directory before anything from `voicestudio` is imported, because the engine
is built at import time.
"""

from __future__ import annotations

import os
import tempfile

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["STORAGE_DIR"] = tempfile.mkdtemp(prefix="voicestudio-tests-")
os.environ["OPENAI_API_KEY"] = ""
os.environ["ADMIN_TOKEN"] = "admin-secret"

import pytest
from fastapi.testclient import TestClient

from voicestudio.api.server import create_app
from voicestudio.core.config import Settings
from voicestudio.core.db import SessionLocal, engine
from voicestudio.core.library import UserService
from voicestudio.core.models import Base
from voicestudio.core.storage import LocalStorage


class FakeSpeech:
    """Stands in for SpeechClient; records every call."""

    def __init__(self, audio: bytes = b"RIFF-fake-audio", error: Exception | None = None) -> None:
        self.audio = audio
        self.error = error
        self.calls: list[dict] = []

    async def synthesize(self, text, voice="alloy", instructions="", response_format="mp3"):
        self.calls.append(
            {"text": text, "voice": voice, "instructions": instructions, "response_format": response_format}
        )
        if self.error is not None:
            raise self.error
        return self.audio


@pytest.fixture(autouse=True)
def _fresh_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(tmp_path / "bucket", public_url="/files")


@pytest.fixture
def user(db):
    return UserService(db).create("Test User", "test@example.com")


@pytest.fixture
def other_user(db):
    return UserService(db).create("Someone Else", "else@example.com")


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def speech():
    return FakeSpeech()


@pytest.fixture
def app(settings, speech):
    application = create_app(settings)
    application.state.speech = speech
    return application


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth(user):
    return {"x-api-token": user.api_token}
