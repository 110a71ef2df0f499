from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException

from smart_playlist.core.config import Config
from smart_playlist.domain import playlists
from smart_playlist.domain.ai import SYSTEM_PROMPT, request_playlist_suggestions
from smart_playlist.domain.models import Playlist
from smart_playlist.domain.session import SessionContext, require_user

from ..deps import get_config, get_session
from ..schemas import (
    AddSongRequest,
    GeneratePlaylistRequest,
    GeneratePlaylistResponse,
    PlaylistInfo,
    PlaylistListResponse,
    SongFailure,
    SongInfo,
    SuggestionRequest,
    SuggestionResponse,
    VisibilityRequest,
)

router = APIRouter()


def to_playlist_info(playlist: Playlist) -> PlaylistInfo:
    return PlaylistInfo.model_validate(asdict(playlist))


def _get_visible_playlist(session: SessionContext, playlist_id: str) -> Playlist:
    """Playlist the user owns, or someone else's public playlist."""
    user = require_user(session)
    playlist = playlists.get_playlist(session, playlist_id)
    if playlist is None or (playlist.user_id != user.id and not playlist.is_public):
        raise HTTPException(status_code=404, detail="Playlist not found")
    return playlist


def _get_owned_playlist(session: SessionContext, playlist_id: str) -> Playlist:
    """Playlist the user owns; anyone else's is reported as missing."""
    user = require_user(session)
    playlist = playlists.get_playlist(session, playlist_id)
    if playlist is None or playlist.user_id != user.id:
        raise HTTPException(status_code=404, detail="Playlist not found")
    return playlist


@router.post("/playlist/generate", response_model=SuggestionResponse)
def generate_suggestions(
    request: SuggestionRequest,
    session: SessionContext = Depends(get_session),
    config: Config = Depends(get_config),
):
    """Raw completion proxy: returns the model's song array text unparsed."""
    require_user(session)
    content = request_playlist_suggestions(
        request.prompt,
        config.ai,
        system_prompt=request.options.systemPrompt or SYSTEM_PROMPT,
        temperature=request.options.temperature,
        max_tokens=request.options.maxTokens,
    )
    return SuggestionResponse(content=content)


@router.post("/playlists", response_model=GeneratePlaylistResponse, status_code=201)
def create_generated_playlist(
    request: GeneratePlaylistRequest,
    session: SessionContext = Depends(get_session),
    config: Config = Depends(get_config),
):
    """Generate a playlist from a prompt and store it."""
    result = playlists.generate_playlist(
        session,
        request.prompt,
        mood=request.mood,
        song_count=request.song_count,
        config=config,
    )
    return GeneratePlaylistResponse(
        playlist=to_playlist_info(result.playlist),
        attempted=result.attempted,
        succeeded=result.succeeded,
        failures=[SongFailure(title=title, error=error) for title, error in result.failures],
    )


@router.get("/playlists", response_model=PlaylistListResponse)
def list_playlists(session: SessionContext = Depends(get_session)):
    """Get all playlists for the current user."""
    user = require_user(session)
    return PlaylistListResponse(
        playlists=[
            to_playlist_info(p) for p in playlists.get_user_playlists(session, user.id)
        ]
    )


@router.get("/playlists/{playlist_id}", response_model=PlaylistInfo)
def get_playlist(playlist_id: str, session: SessionContext = Depends(get_session)):
    """Get an owned or public playlist with its songs."""
    return to_playlist_info(_get_visible_playlist(session, playlist_id))


@router.patch("/playlists/{playlist_id}", response_model=PlaylistInfo)
def update_visibility(
    playlist_id: str,
    request: VisibilityRequest,
    session: SessionContext = Depends(get_session),
):
    """Make a playlist public or private."""
    _get_owned_playlist(session, playlist_id)
    return to_playlist_info(
        playlists.set_playlist_visibility(session, playlist_id, request.is_public)
    )


@router.post("/playlists/{playlist_id}/songs", response_model=SongInfo, status_code=201)
def add_song(
    playlist_id: str,
    request: AddSongRequest,
    session: SessionContext = Depends(get_session),
):
    """Add a song to a playlist."""
    _get_owned_playlist(session, playlist_id)
    song = playlists.add_song(session, playlist_id, request.model_dump())
    return SongInfo.model_validate(asdict(song))


@router.delete("/playlists/{playlist_id}/songs/{song_id}", response_model=PlaylistInfo)
def remove_song(
    playlist_id: str,
    song_id: str,
    session: SessionContext = Depends(get_session),
):
    """Remove a song and return the updated playlist."""
    _get_owned_playlist(session, playlist_id)
    playlists.remove_song(session, playlist_id, song_id)
    return to_playlist_info(_get_owned_playlist(session, playlist_id))
