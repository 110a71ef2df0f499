"""Playlists domain - generation and persistence of playlists and songs."""

from .crud import (
    create_playlist,
    get_playlist,
    get_user_playlists,
    set_playlist_visibility,
    update_playlist_metrics,
    add_song,
    remove_song,
)

from .suggestions import (
    extract_json_array,
    normalize_suggestion,
    parse_suggestions,
)

from .generator import generate_playlist

__all__ = [
    "create_playlist",
    "get_playlist",
    "get_user_playlists",
    "set_playlist_visibility",
    "update_playlist_metrics",
    "add_song",
    "remove_song",
    "extract_json_array",
    "normalize_suggestion",
    "parse_suggestions",
    "generate_playlist",
]
