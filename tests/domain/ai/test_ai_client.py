"""Tests for the chat-completion client (SDK mocked)."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import openai
import pytest

from smart_playlist.core.config import AIConfig
from smart_playlist.core.errors import GenerationFailed
from smart_playlist.domain.ai import request_playlist_suggestions
from smart_playlist.domain.ai.client import create_client, get_api_key


def make_completion(content, finish_reason="stop"):
    message = SimpleNamespace(content=content)
    choice = SimpleNamespace(message=message, finish_reason=finish_reason)
    usage = SimpleNamespace(prompt_tokens=120, completion_tokens=340)
    return SimpleNamespace(choices=[choice], usage=usage)


def make_client(completion=None, error=None):
    client = MagicMock()
    if error is not None:
        client.chat.completions.create.side_effect = error
    else:
        client.chat.completions.create.return_value = completion
    return client


@pytest.fixture
def ai_config():
    return AIConfig(api_key="test-key")


def test_sends_configured_request(ai_config):
    client = make_client(make_completion('[{"title": "A", "artist": "B"}]'))

    request_playlist_suggestions("make me a playlist", ai_config, client=client)

    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "mixtral-8x7b-32768"
    assert kwargs["temperature"] == 0.7
    assert kwargs["max_tokens"] == 4000
    assert kwargs["stop"] == ["}]"]
    assert kwargs["messages"][0]["role"] == "system"
    assert "SmartPlaylistAI" in kwargs["messages"][0]["content"]
    assert kwargs["messages"][1] == {"role": "user", "content": "make me a playlist"}


def test_options_override_config(ai_config):
    client = make_client(make_completion("[]"))

    request_playlist_suggestions(
        "prompt", ai_config, system_prompt="be brief", temperature=0.0, max_tokens=500, client=client
    )

    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["temperature"] == 0.0
    assert kwargs["max_tokens"] == 500
    assert kwargs["messages"][0]["content"] == "be brief"


def test_restores_swallowed_stop_sequence(ai_config):
    """The API drops the '}]' it stopped on; it is put back."""
    client = make_client(make_completion('[{"title": "A", "artist": "B"', finish_reason="stop"))

    content = request_playlist_suggestions("prompt", ai_config, client=client)

    assert content == '[{"title": "A", "artist": "B"}]'


def test_complete_content_is_returned_as_is(ai_config):
    client = make_client(make_completion('  [{"title": "A", "artist": "B"}]\n'))
    assert request_playlist_suggestions("prompt", ai_config, client=client) == '[{"title": "A", "artist": "B"}]'


def test_empty_content_fails(ai_config):
    client = make_client(make_completion("   "))
    with pytest.raises(GenerationFailed, match="No suggestions generated"):
        request_playlist_suggestions("prompt", ai_config, client=client)


def test_no_choices_fails(ai_config):
    client = make_client(SimpleNamespace(choices=[], usage=None))
    with pytest.raises(GenerationFailed, match="No suggestions generated"):
        request_playlist_suggestions("prompt", ai_config, client=client)


def test_length_cutoff_fails(ai_config):
    client = make_client(make_completion('[{"title": "A", "artist": "B"}, {"title": "C"', finish_reason="length"))
    with pytest.raises(GenerationFailed, match="Incomplete JSON response"):
        request_playlist_suggestions("prompt", ai_config, client=client)


def test_api_error_becomes_generation_failed(ai_config):
    request = httpx.Request("POST", "https://api.groq.com/openai/v1/chat/completions")
    client = make_client(error=openai.APIConnectionError(request=request))

    with pytest.raises(GenerationFailed, match="Failed to generate playlist suggestions"):
        request_playlist_suggestions("prompt", ai_config, client=client)


def test_missing_api_key(monkeypatch):
    monkeypatch.delenv("GROQ_API_KEY", raising=False)
    with pytest.raises(GenerationFailed, match="GROQ_API_KEY"):
        create_client(AIConfig(api_key=None))


def test_api_key_from_environment(monkeypatch):
    monkeypatch.setenv("GROQ_API_KEY", "from-env")
    assert get_api_key(AIConfig(api_key=None)) == "from-env"
    assert get_api_key(AIConfig(api_key="from-config")) == "from-config"


def test_client_uses_configured_endpoint():
    client = create_client(AIConfig(api_key="k", base_url="https://llm.example.com/v1"))
    assert str(client.base_url).startswith("https://llm.example.com/v1")
