"""
Playlist and song rows in the hosted store.

song_count and total_duration on a playlist are always recomputed from its
song rows after a song is added or removed.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

from loguru import logger

from smart_playlist.core.backend import BackendError, translate_backend_error
from smart_playlist.core.errors import NotFound

from ..models import MAX_SONG_FIELD_LENGTH, Playlist, Song
from ..session.context import SessionContext, require_user
from ..users.profiles import ensure_user_profile

PLAYLIST_WITH_SONGS = "*, songs(*)"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _truncate(value: Optional[str]) -> Optional[str]:
    return value[:MAX_SONG_FIELD_LENGTH] if value else None


def create_playlist(
    context: SessionContext,
    name: Optional[str] = None,
    description: Optional[str] = None,
    prompt: Optional[str] = None,
    mood: Optional[str] = None,
    is_public: bool = False,
    cover_url: Optional[str] = None,
    spotify_id: Optional[str] = None,
) -> Playlist:
    """
    Create an empty playlist owned by the session's user.

    The owner's profile row is synced first so the foreign key holds.

    Returns:
        The stored playlist

    Raises:
        AuthenticationRequired: If the session has no user
        ConstraintViolation: On uniqueness, foreign-key or column errors
        StorageError: On any other storage failure
    """
    user = require_user(context)
    ensure_user_profile(context, user)

    row = {
        "user_id": user.id,
        "name": name or "Untitled Playlist",
        "description": description or None,
        "prompt": prompt or None,
        "mood": mood or None,
        "is_public": bool(is_public),
        "cover_url": cover_url,
        "spotify_id": spotify_id,
        "song_count": 0,
        "total_duration": 0,
    }

    try:
        created = context.backend.insert("playlists", [row], single=True)
    except BackendError as e:
        raise translate_backend_error(e, "Failed to create playlist") from e

    logger.info(f"Created playlist {created['id']} for user {user.id}")
    return Playlist.from_row(created)


def get_playlist(context: SessionContext, playlist_id: str) -> Optional[Playlist]:
    """Get a playlist with its songs, or None if it does not exist."""
    try:
        row = context.backend.select(
            "playlists",
            columns=PLAYLIST_WITH_SONGS,
            filters={"id": playlist_id},
            maybe_single=True,
        )
    except BackendError as e:
        error = translate_backend_error(e, "Failed to get playlist")
        if isinstance(error, NotFound):
            return None
        raise error from e
    return Playlist.from_row(row) if row else None


def get_user_playlists(context: SessionContext, user_id: str) -> List[Playlist]:
    """Get all playlists owned by a user, newest first, with songs."""
    try:
        rows = context.backend.select(
            "playlists",
            columns=PLAYLIST_WITH_SONGS,
            filters={"user_id": user_id},
            order="created_at.desc",
        )
    except BackendError as e:
        raise translate_backend_error(e, "Failed to get playlists") from e
    return [Playlist.from_row(row) for row in rows]


def set_playlist_visibility(
    context: SessionContext, playlist_id: str, is_public: bool
) -> Playlist:
    """Make a playlist public or private."""
    try:
        row = context.backend.update(
            "playlists",
            {"is_public": bool(is_public), "updated_at": _now()},
            {"id": playlist_id},
            single=True,
        )
    except BackendError as e:
        raise translate_backend_error(e, "Failed to update playlist") from e
    return Playlist.from_row(row)


def update_playlist_metrics(context: SessionContext, playlist_id: str) -> Tuple[int, int]:
    """
    Recompute song_count and total_duration from the playlist's song rows.

    Returns:
        (song_count, total_duration)
    """
    backend = context.backend
    try:
        songs = backend.select(
            "songs", columns="duration", filters={"playlist_id": playlist_id}
        )
        song_count = len(songs)
        total_duration = sum(song.get("duration") or 0 for song in songs)

        backend.update(
            "playlists",
            {
                "song_count": song_count,
                "total_duration": total_duration,
                "updated_at": _now(),
            },
            {"id": playlist_id},
        )
    except BackendError as e:
        raise translate_backend_error(e, "Failed to update playlist metrics") from e

    logger.debug(
        f"Playlist {playlist_id} metrics: {song_count} songs, {total_duration}s"
    )
    return song_count, total_duration


def add_song(context: SessionContext, playlist_id: str, song: Mapping[str, Any]) -> Song:
    """
    Add a song to a playlist and refresh the playlist's aggregates.

    Args:
        context: Authenticated session
        playlist_id: Target playlist
        song: Song fields (title and artist required; album, year, bpm, key,
            duration, spotify_id, youtube_id, preview_url optional)

    Returns:
        The stored song

    Raises:
        ValueError: If title or artist is missing
        ConstraintViolation: On foreign-key or column errors
        StorageError: On any other storage failure
    """
    title = str(song.get("title") or "").strip()
    artist = str(song.get("artist") or "").strip()
    if not title or not artist:
        raise ValueError("Song title and artist are required")

    row: Dict[str, Any] = {
        "playlist_id": playlist_id,
        "title": _truncate(title),
        "artist": _truncate(artist),
        "album": _truncate(song.get("album")),
        "duration": song.get("duration") or 0,
        "year": song.get("year") or None,
        "bpm": song.get("bpm") or None,
        "key": song.get("key") or None,
        "spotify_id": song.get("spotify_id") or None,
        "youtube_id": song.get("youtube_id") or None,
        "preview_url": song.get("preview_url") or None,
        "created_at": _now(),
    }

    try:
        created = context.backend.insert("songs", [row], single=True)
    except BackendError as e:
        raise translate_backend_error(e, "Failed to add song to playlist") from e

    update_playlist_metrics(context, playlist_id)
    return Song.from_row(created)


def remove_song(context: SessionContext, playlist_id: str, song_id: str) -> None:
    """Remove a song from a playlist and refresh the playlist's aggregates."""
    try:
        context.backend.delete("songs", {"id": song_id, "playlist_id": playlist_id})
    except BackendError as e:
        raise translate_backend_error(e, "Failed to remove song from playlist") from e

    update_playlist_metrics(context, playlist_id)
