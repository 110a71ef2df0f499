"""
Smart Playlist domain models.

Plain data containers mirroring the backend's tables. Each model can be built
from a backend row with ``from_row``; unknown columns are ignored.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

MAX_SONG_FIELD_LENGTH = 200


@dataclass(frozen=True)
class AuthUser:
    """Identity issued by the hosted auth service."""

    id: str
    email: Optional[str] = None
    user_metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "AuthUser":
        return cls(
            id=payload["id"],
            email=payload.get("email"),
            user_metadata=dict(payload.get("user_metadata") or {}),
        )

    @property
    def full_name(self) -> Optional[str]:
        return self.user_metadata.get("full_name") or None

    @property
    def avatar_url(self) -> Optional[str]:
        return self.user_metadata.get("avatar_url") or None

    @property
    def spotify_id(self) -> Optional[str]:
        return self.user_metadata.get("spotify_id") or None


@dataclass
class User:
    """Profile row in the ``users`` table."""

    id: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    spotify_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "User":
        return cls(
            id=row["id"],
            full_name=row.get("full_name"),
            avatar_url=row.get("avatar_url"),
            spotify_id=row.get("spotify_id"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


DEFAULT_NOTIFICATION_SETTINGS = {
    "email_notifications": True,
    "playlist_updates": True,
    "new_features": True,
    "marketing_emails": False,
}


@dataclass
class UserPreferences:
    """Row in the ``user_preferences`` table (one per user)."""

    user_id: str
    preferred_genres: List[str] = field(default_factory=list)
    favorite_artists: List[str] = field(default_factory=list)
    preferred_moods: List[str] = field(default_factory=list)
    preferred_bpm_min: Optional[int] = None
    preferred_bpm_max: Optional[int] = None
    public_profile: bool = False
    show_playlists: bool = True
    allow_data_collection: bool = True
    share_listening_history: bool = False
    notification_settings: Dict[str, bool] = field(
        default_factory=lambda: dict(DEFAULT_NOTIFICATION_SETTINGS)
    )

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "UserPreferences":
        return cls(
            user_id=row["user_id"],
            preferred_genres=list(row.get("preferred_genres") or []),
            favorite_artists=list(row.get("favorite_artists") or []),
            preferred_moods=list(row.get("preferred_moods") or []),
            preferred_bpm_min=row.get("preferred_bpm_min"),
            preferred_bpm_max=row.get("preferred_bpm_max"),
            public_profile=bool(row.get("public_profile", False)),
            show_playlists=bool(row.get("show_playlists", True)),
            allow_data_collection=bool(row.get("allow_data_collection", True)),
            share_listening_history=bool(row.get("share_listening_history", False)),
            notification_settings={
                **DEFAULT_NOTIFICATION_SETTINGS,
                **(row.get("notification_settings") or {}),
            },
        )

    @property
    def bpm_range(self) -> Optional[Tuple[int, int]]:
        """Preferred BPM range, only when both bounds are set."""
        if self.preferred_bpm_min and self.preferred_bpm_max:
            return self.preferred_bpm_min, self.preferred_bpm_max
        return None


@dataclass
class Song:
    """Row in the ``songs`` table."""

    id: str
    playlist_id: str
    title: str
    artist: str
    album: Optional[str] = None
    year: Optional[int] = None
    bpm: Optional[int] = None
    key: Optional[str] = None
    duration: int = 0  # seconds
    spotify_id: Optional[str] = None
    youtube_id: Optional[str] = None
    preview_url: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Song":
        return cls(
            id=row["id"],
            playlist_id=row["playlist_id"],
            title=row["title"],
            artist=row["artist"],
            album=row.get("album"),
            year=row.get("year"),
            bpm=row.get("bpm"),
            key=row.get("key"),
            duration=row.get("duration") or 0,
            spotify_id=row.get("spotify_id"),
            youtube_id=row.get("youtube_id"),
            preview_url=row.get("preview_url"),
            created_at=row.get("created_at"),
        )


@dataclass
class Playlist:
    """Row in the ``playlists`` table, optionally with its songs."""

    id: str
    user_id: str
    name: str
    description: Optional[str] = None
    prompt: Optional[str] = None
    mood: Optional[str] = None
    is_public: bool = False
    cover_url: Optional[str] = None
    spotify_id: Optional[str] = None
    song_count: int = 0
    total_duration: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    songs: List[Song] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Playlist":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            name=row.get("name") or "Untitled Playlist",
            description=row.get("description"),
            prompt=row.get("prompt"),
            mood=row.get("mood"),
            is_public=bool(row.get("is_public", False)),
            cover_url=row.get("cover_url"),
            spotify_id=row.get("spotify_id"),
            song_count=row.get("song_count") or 0,
            total_duration=row.get("total_duration") or 0,
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
            songs=[Song.from_row(song) for song in row.get("songs") or []],
        )


@dataclass(frozen=True)
class SongSuggestion:
    """One validated entry from the completion response."""

    title: str
    artist: str
    duration: int
    album: Optional[str] = None
    year: Optional[int] = None
    bpm: Optional[int] = None

    def to_song_fields(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "artist": self.artist,
            "album": self.album,
            "year": self.year,
            "bpm": self.bpm,
            "duration": self.duration,
        }


@dataclass(frozen=True)
class GenerationResult:
    """Result of a generation - partial success is reported, not raised."""

    playlist: Playlist
    attempted: int
    succeeded: int
    failures: List[Tuple[str, str]]  # (song title, error message)

    @property
    def complete(self) -> bool:
        return self.succeeded == self.attempted
