"""AI domain - completion API integration for playlist suggestions.

This domain handles:
- Completion API key lookup and client creation
- Prompt construction from user input and preferences
- The raw suggestion request
"""

from .client import (
    get_api_key,
    create_client,
    request_playlist_suggestions,
)

from .prompts import (
    SYSTEM_PROMPT,
    build_preference_hints,
    build_playlist_prompt,
)

__all__ = [
    "get_api_key",
    "create_client",
    "request_playlist_suggestions",
    "SYSTEM_PROMPT",
    "build_preference_hints",
    "build_playlist_prompt",
]
