"""Tests for user profile, preferences and stats rows."""

from unittest.mock import MagicMock

import pytest

from smart_playlist.core.backend import BackendError
from smart_playlist.core.errors import AuthenticationRequired, NotFound, StorageError
from smart_playlist.domain.session import SessionContext
from smart_playlist.domain.users import profiles
from tests.fakes import FakeBackend, unique_violation


class RacingBackend(FakeBackend):
    """Another writer creates the profile between our read and our upsert."""

    def upsert(self, table, rows, on_conflict, ignore_duplicates=False):
        if table == "users":
            self.tables["users"].append(dict(rows[0]))
            self.calls.append(("upsert", table))
            raise unique_violation()
        return super().upsert(table, rows, on_conflict, ignore_duplicates)


def test_ensure_creates_profile_and_preferences(backend, session):
    profiles.ensure_user_profile(session)

    users = backend.rows("users", id=session.user.id)
    assert len(users) == 1
    assert users[0]["full_name"] == "Test Listener"
    assert users[0]["avatar_url"] == "https://img/avatar.png"

    prefs = backend.rows("user_preferences", user_id=session.user.id)
    assert len(prefs) == 1
    assert prefs[0]["notification_settings"]["marketing_emails"] is False


def test_ensure_is_idempotent(backend, session):
    """Calling twice leaves exactly one profile row."""
    profiles.ensure_user_profile(session)
    profiles.ensure_user_profile(session)

    assert len(backend.rows("users", id=session.user.id)) == 1
    assert len(backend.rows("user_preferences", user_id=session.user.id)) == 1


def test_ensure_treats_unique_violation_as_success():
    backend = RacingBackend()
    context = SessionContext.from_payload(backend, backend.sign_in_as("race@example.com"))
    sleep = MagicMock()

    profiles.ensure_user_profile(context, sleep=sleep)

    assert len(backend.rows("users", id=context.user.id)) == 1
    assert backend.calls.count(("upsert", "users")) == 1
    sleep.assert_not_called()


def test_ensure_retries_with_backoff(backend, session):
    backend.fail_next("upsert", "users", BackendError("timeout", code="57014"), times=2)
    sleep = MagicMock()

    profiles.ensure_user_profile(session, max_attempts=3, base_delay=1.0, sleep=sleep)

    assert len(backend.rows("users", id=session.user.id)) == 1
    assert [call.args[0] for call in sleep.call_args_list] == [2.0, 4.0]


def test_ensure_gives_up_after_max_attempts(backend, session):
    backend.fail_next("upsert", "users", BackendError("timeout", code="57014"), times=3)
    sleep = MagicMock()

    with pytest.raises(StorageError, match="after 3 attempts"):
        profiles.ensure_user_profile(session, max_attempts=3, base_delay=0.5, sleep=sleep)

    assert sleep.call_count == 2
    assert backend.rows("users") == []


def test_ensure_survives_preferences_failure(backend, session):
    """Preferences are best-effort and never block the profile."""
    backend.fail_next("upsert", "user_preferences", BackendError("denied", code="42501"))

    profiles.ensure_user_profile(session)

    assert len(backend.rows("users", id=session.user.id)) == 1
    assert backend.rows("user_preferences") == []


def test_ensure_fails_when_profile_cannot_be_verified(session):
    # The upsert reports success but the row never becomes visible
    session.backend.upsert = MagicMock(return_value=[])

    with pytest.raises(StorageError, match="verify"):
        profiles.ensure_user_profile(session)


def test_ensure_requires_user(anonymous):
    with pytest.raises(AuthenticationRequired):
        profiles.ensure_user_profile(anonymous)


def test_get_preferences_missing_returns_none(session):
    assert profiles.get_user_preferences(session, session.user.id) is None


def test_get_preferences_tolerates_errors(backend, session):
    backend.fail_next("select", "user_preferences", BackendError("denied", code="42501"))
    assert profiles.get_user_preferences(session, session.user.id) is None


def test_update_preferences(session):
    profiles.ensure_user_profile(session)

    prefs = profiles.update_user_preferences(
        session, session.user.id, {"preferred_genres": ["house"], "preferred_bpm_min": 120, "preferred_bpm_max": 128}
    )

    assert prefs.preferred_genres == ["house"]
    assert prefs.bpm_range == (120, 128)


def test_update_privacy_settings(session):
    profiles.ensure_user_profile(session)

    prefs = profiles.update_privacy_settings(session, session.user.id, public_profile=True)

    assert prefs.public_profile is True
    assert prefs.show_playlists is True


def test_update_privacy_rejects_unknown_flags(session):
    with pytest.raises(ValueError, match="Unknown privacy settings"):
        profiles.update_privacy_settings(session, session.user.id, telemetry=True)


def test_update_notification_settings_merges(session):
    profiles.ensure_user_profile(session)

    prefs = profiles.update_notification_settings(session, session.user.id, marketing_emails=True)

    assert prefs.notification_settings == {
        "email_notifications": True,
        "playlist_updates": True,
        "new_features": True,
        "marketing_emails": True,
    }


def test_get_user_profile(session):
    assert profiles.get_user_profile(session, session.user.id) is None
    profiles.ensure_user_profile(session)
    assert profiles.get_user_profile(session, session.user.id).full_name == "Test Listener"


def test_update_user_profile(backend, session):
    profiles.ensure_user_profile(session)

    user = profiles.update_user_profile(session, session.user.id, {"full_name": "Renamed"})

    assert user.full_name == "Renamed"
    row = backend.rows("users", id=session.user.id)[0]
    assert row["full_name"] == "Renamed"
    assert row["avatar_url"] == "https://img/avatar.png"
    assert row["updated_at"]


def test_update_missing_user_profile(session):
    with pytest.raises(NotFound):
        profiles.update_user_profile(session, session.user.id, {"full_name": "Nobody"})


def test_get_user_stats(backend, session):
    assert profiles.get_user_stats(session, session.user.id) is None
    backend.tables["user_stats"].append({"user_id": session.user.id, "total_playlists": 3})
    assert profiles.get_user_stats(session, session.user.id)["total_playlists"] == 3


def test_delete_account(backend, session):
    profiles.ensure_user_profile(session)
    profiles.delete_account(session, session.user.id)
    assert backend.rows("users") == []
