from typing import Optional

from pydantic import BaseModel, Field


class SongInfo(BaseModel):
    id: str
    title: str
    artist: str
    album: Optional[str] = None
    year: Optional[int] = None
    bpm: Optional[int] = None
    duration: int = 0
    spotify_id: Optional[str] = None
    youtube_id: Optional[str] = None
    preview_url: Optional[str] = None


class PlaylistInfo(BaseModel):
    id: str
    user_id: str
    name: str
    description: Optional[str] = None
    prompt: Optional[str] = None
    mood: Optional[str] = None
    is_public: bool = False
    cover_url: Optional[str] = None
    song_count: int
    total_duration: int
    created_at: Optional[str] = None
    songs: list[SongInfo] = []


class PlaylistListResponse(BaseModel):
    playlists: list[PlaylistInfo]


class SongFailure(BaseModel):
    title: str
    error: str


class GeneratePlaylistRequest(BaseModel):
    prompt: str = Field(min_length=1, max_length=1000)
    mood: Optional[str] = None
    song_count: Optional[int] = Field(default=None, ge=1)


class GeneratePlaylistResponse(BaseModel):
    playlist: PlaylistInfo
    attempted: int
    succeeded: int
    failures: list[SongFailure] = []


class SuggestionOptions(BaseModel):
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    maxTokens: Optional[int] = Field(default=None, ge=1)
    systemPrompt: Optional[str] = None


class SuggestionRequest(BaseModel):
    prompt: str = Field(min_length=1)
    options: SuggestionOptions = SuggestionOptions()


class SuggestionResponse(BaseModel):
    content: str


class AddSongRequest(BaseModel):
    title: str = Field(min_length=1)
    artist: str = Field(min_length=1)
    album: Optional[str] = None
    year: Optional[int] = None
    bpm: Optional[int] = None
    key: Optional[str] = None
    duration: Optional[int] = Field(default=None, ge=0)
    spotify_id: Optional[str] = None
    youtube_id: Optional[str] = None
    preview_url: Optional[str] = None


class VisibilityRequest(BaseModel):
    is_public: bool


class NotificationSettings(BaseModel):
    email_notifications: bool = True
    playlist_updates: bool = True
    new_features: bool = True
    marketing_emails: bool = False


class PreferencesInfo(BaseModel):
    preferred_genres: list[str] = []
    favorite_artists: list[str] = []
    preferred_moods: list[str] = []
    preferred_bpm_min: Optional[int] = None
    preferred_bpm_max: Optional[int] = None
    public_profile: bool = False
    show_playlists: bool = True
    allow_data_collection: bool = True
    share_listening_history: bool = False
    notification_settings: NotificationSettings = NotificationSettings()


class PreferencesUpdate(BaseModel):
    preferred_genres: Optional[list[str]] = None
    favorite_artists: Optional[list[str]] = None
    preferred_moods: Optional[list[str]] = None
    preferred_bpm_min: Optional[int] = Field(default=None, ge=1)
    preferred_bpm_max: Optional[int] = Field(default=None, ge=1)
    public_profile: Optional[bool] = None
    show_playlists: Optional[bool] = None
    allow_data_collection: Optional[bool] = None
    share_listening_history: Optional[bool] = None
    notification_settings: Optional[NotificationSettings] = None


class ErrorResponse(BaseModel):
    detail: str
    code: str
