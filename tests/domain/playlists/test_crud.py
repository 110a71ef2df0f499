"""Tests for playlist and song storage."""

import pytest

from smart_playlist.core.backend import BackendError
from smart_playlist.core.errors import AuthenticationRequired, ConstraintViolation, StorageError
from smart_playlist.domain.playlists import (
    add_song,
    create_playlist,
    get_playlist,
    get_user_playlists,
    remove_song,
    set_playlist_visibility,
    update_playlist_metrics,
)


def test_create_playlist_syncs_profile_first(backend, session):
    """The owner's profile row exists before the playlist row is written."""
    playlist = create_playlist(session, name="Road Trip", prompt="road trip songs")

    assert playlist.user_id == session.user.id
    assert playlist.song_count == 0
    assert playlist.total_duration == 0
    assert playlist.is_public is False
    assert len(backend.rows("users", id=session.user.id)) == 1
    assert len(backend.rows("user_preferences", user_id=session.user.id)) == 1


def test_create_playlist_requires_user(anonymous):
    with pytest.raises(AuthenticationRequired):
        create_playlist(anonymous, name="Nope")


def test_create_playlist_translates_storage_errors(backend, session):
    backend.fail_next("insert", "playlists", BackendError("connection reset", code="08006"))
    with pytest.raises(StorageError, match="Failed to create playlist: connection reset"):
        create_playlist(session, name="Broken")


def test_add_song_updates_metrics(session):
    playlist = create_playlist(session, name="Mix")
    add_song(session, playlist.id, {"title": "One", "artist": "A", "duration": 200})
    add_song(session, playlist.id, {"title": "Two", "artist": "B", "duration": 150})

    stored = get_playlist(session, playlist.id)
    assert stored.song_count == 2
    assert stored.total_duration == 350
    assert [s.title for s in stored.songs] == ["One", "Two"]


def test_remove_song_reduces_metrics(session):
    playlist = create_playlist(session, name="Mix")
    add_song(session, playlist.id, {"title": "One", "artist": "A", "duration": 200})
    second = add_song(session, playlist.id, {"title": "Two", "artist": "B", "duration": 150})

    remove_song(session, playlist.id, second.id)

    stored = get_playlist(session, playlist.id)
    assert stored.song_count == 1
    assert stored.total_duration == 200


def test_remove_song_scoped_to_playlist(session):
    """A song id from another playlist is left alone."""
    first = create_playlist(session, name="First")
    second = create_playlist(session, name="Second")
    song = add_song(session, first.id, {"title": "One", "artist": "A", "duration": 100})

    remove_song(session, second.id, song.id)

    assert get_playlist(session, first.id).song_count == 1


def test_add_song_requires_title_and_artist(session):
    playlist = create_playlist(session, name="Mix")
    with pytest.raises(ValueError, match="title and artist"):
        add_song(session, playlist.id, {"title": "  ", "artist": "A"})


def test_add_song_truncates_long_fields(session):
    playlist = create_playlist(session, name="Mix")
    song = add_song(session, playlist.id, {"title": "x" * 300, "artist": "y" * 250, "album": "z" * 201})

    assert len(song.title) == 200
    assert len(song.artist) == 200
    assert len(song.album) == 200


def test_add_song_to_missing_playlist_is_constraint_violation(session):
    with pytest.raises(ConstraintViolation) as exc_info:
        add_song(session, "missing-playlist", {"title": "One", "artist": "A"})
    assert exc_info.value.code == "FOREIGN_KEY_VIOLATION"


def test_get_playlist_missing_returns_none(session):
    assert get_playlist(session, "does-not-exist") is None


def test_get_user_playlists_newest_first(session):
    create_playlist(session, name="Older")
    create_playlist(session, name="Newer")

    names = [p.name for p in get_user_playlists(session, session.user.id)]
    assert names == ["Newer", "Older"]


def test_set_visibility(session):
    playlist = create_playlist(session, name="Mix")
    updated = set_playlist_visibility(session, playlist.id, True)
    assert updated.is_public is True


def test_update_metrics_on_empty_playlist(session):
    playlist = create_playlist(session, name="Empty")
    assert update_playlist_metrics(session, playlist.id) == (0, 0)
