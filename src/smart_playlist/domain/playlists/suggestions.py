"""Extraction and validation of the song array returned by the completion API.

The completion text is expected to contain one JSON array of song objects,
possibly wrapped in stray prose. Everything outside the outermost brackets is
discarded before parsing.
"""

import json
import math
import random
from typing import Any, List, Optional

from loguru import logger

from smart_playlist.core.errors import MalformedResponse

from ..models import SongSuggestion

# Placeholder duration when the model omits one (seconds, end exclusive)
FALLBACK_DURATION_MIN = 180
FALLBACK_DURATION_MAX = 240


def extract_json_array(text: str) -> str:
    """Return the substring from the first '[' to the last ']' inclusive.

    Raises:
        MalformedResponse: If either bracket is missing or they are out of order
    """
    start = text.find("[")
    if start == -1:
        raise MalformedResponse("No JSON array found in response")

    end = text.rfind("]")
    if end == -1 or end < start:
        raise MalformedResponse("Incomplete JSON array in response")

    return text[start : end + 1]


def _coerce_number(value: Any) -> Optional[int]:
    """Convert a numeric-looking value to int; zero and junk become None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number == 0:
        return None
    return int(round(number))


def _clean_text(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def normalize_suggestion(
    raw: Any, index: int, rng: Optional[random.Random] = None
) -> SongSuggestion:
    """
    Validate one array element and convert it into a SongSuggestion.

    Args:
        raw: Parsed JSON element
        index: Position in the array (for error messages)
        rng: Random source for the placeholder duration

    Raises:
        MalformedResponse: If the element is not an object or lacks title/artist
    """
    if not isinstance(raw, dict):
        raise MalformedResponse(f"Song at index {index} is not an object")

    title = _clean_text(raw.get("title"))
    artist = _clean_text(raw.get("artist"))
    if not title or not artist:
        raise MalformedResponse(f"Song at index {index} is missing required fields")

    duration = _coerce_number(raw.get("duration"))
    if duration is None or duration < 0:
        duration = (rng or random).randrange(FALLBACK_DURATION_MIN, FALLBACK_DURATION_MAX)

    album = _clean_text(raw.get("album"))
    return SongSuggestion(
        title=title,
        artist=artist,
        album=album or None,
        year=_coerce_number(raw.get("year")),
        bpm=_coerce_number(raw.get("bpm")),
        duration=duration,
    )


def parse_suggestions(
    text: str, song_count: int, rng: Optional[random.Random] = None
) -> List[SongSuggestion]:
    """
    Parse completion text into at most ``song_count`` validated suggestions.

    Longer arrays are truncated to the first ``song_count`` entries; shorter
    ones are accepted as they are.

    Raises:
        MalformedResponse: If no non-empty JSON array of valid songs is found
    """
    array_text = extract_json_array(text)
    try:
        data = json.loads(array_text)
    except json.JSONDecodeError as e:
        raise MalformedResponse(f"Invalid JSON in response: {e.msg}") from e

    if not isinstance(data, list):
        raise MalformedResponse("Response is not an array")
    if not data:
        raise MalformedResponse("Response contains no songs")

    if len(data) != song_count:
        logger.warning(f"Expected {song_count} songs, got {len(data)}")
        data = data[:song_count]

    return [normalize_suggestion(item, index, rng) for index, item in enumerate(data)]
