"""Shared fixtures: an in-memory backend and signed-in session contexts."""

import random

import pytest

from smart_playlist.core.config import Config
from smart_playlist.domain.session import SessionContext
from tests.fakes import FakeBackend


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
def session(backend):
    """Signed-in context for a user with no profile row yet."""
    payload = backend.sign_in_as(
        "listener@example.com", full_name="Test Listener", avatar_url="https://img/avatar.png"
    )
    return SessionContext.from_payload(backend, payload)


@pytest.fixture
def anonymous(backend):
    return SessionContext.anonymous(backend)


@pytest.fixture
def rng():
    return random.Random(1234)
