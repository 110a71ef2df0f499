"""
Chat-completion integration for Smart Playlist.

Talks to any OpenAI-compatible endpoint (Groq by default) through the
openai SDK.
"""

import os
import time
from typing import List, Optional

import openai
from loguru import logger

from smart_playlist.core.config import AIConfig
from smart_playlist.core.errors import GenerationFailed

from .prompts import SYSTEM_PROMPT


def get_api_key(config: AIConfig) -> Optional[str]:
    """Get the completion API key from config or the GROQ_API_KEY variable."""
    return config.api_key or os.getenv("GROQ_API_KEY")


def create_client(config: AIConfig) -> openai.OpenAI:
    """Create an SDK client for the configured endpoint.

    Raises:
        GenerationFailed: If no API key is configured
    """
    api_key = get_api_key(config)
    if not api_key:
        raise GenerationFailed(
            "No completion API key found. Set GROQ_API_KEY or [ai] api_key in config.toml."
        )
    return openai.OpenAI(api_key=api_key, base_url=config.base_url)


def _restore_stop_sequence(content: str, stop: List[str]) -> str:
    """Re-append the stop sequence the API swallowed when it ended the array."""
    for sequence in stop:
        candidate = content + sequence
        if candidate.rstrip().endswith("]"):
            return candidate
    return content


def request_playlist_suggestions(
    prompt: str,
    config: AIConfig,
    system_prompt: str = SYSTEM_PROMPT,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
    client: Optional[openai.OpenAI] = None,
) -> str:
    """
    Ask the completion API for a playlist and return the raw text.

    The text is only checked for being non-empty and terminated by ``]``;
    parsing it is the caller's job.

    Args:
        prompt: User message (see prompts.build_playlist_prompt)
        config: [ai] configuration section
        system_prompt: System message
        temperature: Sampling temperature (default: config)
        max_tokens: Completion token bound (default: config)
        client: SDK client (default: created from config)

    Returns:
        Completion text

    Raises:
        GenerationFailed: On API errors, empty or unterminated content
    """
    client = client or create_client(config)
    messages = [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": prompt},
    ]

    start_time = time.time()
    try:
        completion = client.chat.completions.create(
            model=config.model,
            messages=messages,
            temperature=config.temperature if temperature is None else temperature,
            max_tokens=max_tokens or config.max_tokens,
            stop=config.stop or None,
        )
    except openai.APIError as e:
        logger.error(f"Completion API error: {e}")
        raise GenerationFailed(f"Failed to generate playlist suggestions: {e}") from e

    response_time_ms = int((time.time() - start_time) * 1000)
    usage = getattr(completion, "usage", None)
    logger.info(
        f"Completion finished in {response_time_ms}ms "
        f"(model={config.model}, "
        f"prompt_tokens={getattr(usage, 'prompt_tokens', '?')}, "
        f"completion_tokens={getattr(usage, 'completion_tokens', '?')})"
    )

    choice = completion.choices[0] if completion.choices else None
    content = choice.message.content if choice and choice.message else None
    if not content or not content.strip():
        raise GenerationFailed("No suggestions generated")

    content = content.strip()
    if choice.finish_reason == "stop" and config.stop and not content.endswith("]"):
        content = _restore_stop_sequence(content, config.stop).strip()

    if choice.finish_reason == "length" or not content.endswith("]"):
        logger.warning(f"Incomplete completion (finish_reason={choice.finish_reason})")
        raise GenerationFailed("Incomplete JSON response")

    return content
