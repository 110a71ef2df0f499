"""
Playlist generation: prompt -> completion -> validated songs -> stored playlist.
"""

import random
from typing import Callable, List, Optional, Tuple

from loguru import logger

from smart_playlist.core.config import AIConfig, Config, load_config
from smart_playlist.core.errors import MalformedResponse, SmartPlaylistError, StorageError

from ..ai.client import request_playlist_suggestions
from ..ai.prompts import build_playlist_prompt
from ..models import GenerationResult
from ..session.context import SessionContext, require_user
from ..users.profiles import get_user_preferences
from . import crud
from .suggestions import parse_suggestions

MAX_NAME_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500
MAX_PROMPT_LENGTH = 1000

CompletionFn = Callable[[str, AIConfig], str]


def generate_playlist(
    context: SessionContext,
    prompt: str,
    mood: Optional[str] = None,
    song_count: Optional[int] = None,
    config: Optional[Config] = None,
    complete: CompletionFn = request_playlist_suggestions,
    rng: Optional[random.Random] = None,
) -> GenerationResult:
    """
    Generate a playlist from a natural-language prompt and store it.

    Nothing is stored unless the completion yields a valid song array. Songs
    that fail to insert are logged and skipped; the result reports how many
    were attempted and how many made it.

    Args:
        context: Authenticated session
        prompt: What the playlist should be about
        mood: Optional target mood
        song_count: Songs to request (default: [generation] default_song_count)
        config: Application config (default: loaded from disk)
        complete: Completion function (prompt, ai_config) -> text
        rng: Random source for placeholder durations

    Returns:
        GenerationResult with the stored playlist

    Raises:
        AuthenticationRequired: If the session has no user
        ValueError: If the prompt is blank or song_count is out of range
        GenerationFailed: If the completion call fails or returns unusable text
        MalformedResponse: If the text is not a JSON array of songs
        ConstraintViolation / StorageError: If the playlist row cannot be created
    """
    user = require_user(context)
    config = config or load_config()

    if song_count is None:
        song_count = config.generation.default_song_count
    if not 1 <= song_count <= config.generation.max_song_count:
        raise ValueError(
            f"Song count must be between 1 and {config.generation.max_song_count}"
        )
    prompt = (prompt or "").strip()
    if not prompt:
        raise ValueError("Prompt must not be empty")

    preferences = get_user_preferences(context, user.id)
    ai_prompt = build_playlist_prompt(prompt, song_count, mood, preferences)

    logger.info(f"Generating {song_count}-song playlist for {user.id}: {prompt!r}")
    content = complete(ai_prompt, config.ai)

    try:
        suggestions = parse_suggestions(content, song_count, rng)
    except MalformedResponse:
        logger.error(f"Invalid AI response: {content}")
        raise

    playlist = crud.create_playlist(
        context,
        name=prompt[:MAX_NAME_LENGTH],
        description=f"AI-generated playlist based on: {prompt}"[:MAX_DESCRIPTION_LENGTH],
        prompt=prompt[:MAX_PROMPT_LENGTH],
        mood=mood,
        is_public=False,
    )

    failures: List[Tuple[str, str]] = []
    for suggestion in suggestions:
        try:
            crud.add_song(context, playlist.id, suggestion.to_song_fields())
        except (SmartPlaylistError, ValueError) as e:
            logger.warning(f"Failed to add '{suggestion.title}' to playlist {playlist.id}: {e}")
            failures.append((suggestion.title, str(e)))

    succeeded = len(suggestions) - len(failures)
    if failures:
        logger.warning(
            f"Playlist {playlist.id} stored with {succeeded}/{len(suggestions)} songs"
        )

    stored = crud.get_playlist(context, playlist.id)
    if stored is None:
        raise StorageError("Failed to load the generated playlist")

    return GenerationResult(
        playlist=stored,
        attempted=len(suggestions),
        succeeded=succeeded,
        failures=failures,
    )
