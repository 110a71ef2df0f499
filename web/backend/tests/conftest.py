"""Pytest configuration for backend API tests.

Routes run against the in-memory backend; the completion SDK client is
replaced with a mock so no network calls are made.
"""

import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from smart_playlist.core.config import Config
from tests.fakes import FakeBackend
from web.backend.deps import get_backend, get_config
from web.backend.main import app


def song_array(count):
    return json.dumps(
        [{"title": f"Track {i}", "artist": f"Band {i}", "duration": 200} for i in range(count)]
    )


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def config(backend):
    config = Config()
    config.backend = backend.config
    config.ai.api_key = "test-key"
    return config


@pytest.fixture
def completion_client(monkeypatch):
    """Mock SDK client; set ``.reply`` to change the completion text."""
    client = MagicMock()

    def create(**kwargs):
        choice = SimpleNamespace(
            message=SimpleNamespace(content=client.reply), finish_reason="stop"
        )
        return SimpleNamespace(choices=[choice], usage=None)

    client.reply = song_array(3)
    client.chat.completions.create.side_effect = create
    monkeypatch.setattr(
        "smart_playlist.domain.ai.client.create_client", lambda config: client
    )
    return client


@pytest.fixture
def client(backend, config, completion_client):
    app.dependency_overrides[get_backend] = lambda: backend
    app.dependency_overrides[get_config] = lambda: config
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(backend):
    payload = backend.sign_in_as("listener@example.com", full_name="Test Listener")
    return {"Authorization": f"Bearer {payload['access_token']}"}
