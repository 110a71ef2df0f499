"""Tests for the hosted backend client and its error translation."""

from unittest.mock import MagicMock

import pytest
import requests

from smart_playlist.core.backend import (
    BackendClient,
    BackendError,
    translate_backend_error,
)
from smart_playlist.core.config import BackendConfig
from smart_playlist.core.errors import ConstraintViolation, NotFound, StorageError


def make_response(status_code=200, body=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.content = b"x" if body is not None else b""
    response.text = text
    response.reason = "Reason"
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = body
    return response


@pytest.fixture
def http():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def client(http):
    config = BackendConfig(url="https://proj.supabase.co/", anon_key="anon")
    return BackendClient(config, http=http)


@pytest.mark.parametrize(
    "code,expected_code,message",
    [
        ("23505", "UNIQUE_VIOLATION", "A record with these details already exists"),
        ("23503", "FOREIGN_KEY_VIOLATION", "Invalid reference to another resource"),
        ("42703", "UNDEFINED_COLUMN", "Invalid field in request"),
    ],
)
def test_constraint_codes_translate_to_constraint_violation(code, expected_code, message):
    """Each known constraint code maps to a user-facing message."""
    error = translate_backend_error(BackendError("raw detail", code=code), "Failed to save")
    assert isinstance(error, ConstraintViolation)
    assert error.code == expected_code
    assert str(error) == message
    assert "raw detail" not in str(error)


def test_missing_row_translates_to_not_found():
    error = translate_backend_error(BackendError("0 rows", code="PGRST116"), "Failed to get playlist")
    assert isinstance(error, NotFound)
    assert str(error) == "Failed to get playlist: not found"


def test_unknown_code_translates_to_storage_error():
    """Anything unrecognized keeps the operation context and the message."""
    error = translate_backend_error(BackendError("boom", code="XX000"), "Failed to add song")
    assert isinstance(error, StorageError)
    assert str(error) == "Failed to add song: boom"


def test_client_requires_url_and_key():
    with pytest.raises(ValueError, match="SUPABASE_URL"):
        BackendClient(BackendConfig(url="", anon_key="anon"))


def test_headers_use_anon_key_without_token(client, http):
    http.request.return_value = make_response(body=[])
    client.select("playlists")

    headers = http.request.call_args.kwargs["headers"]
    assert headers["apikey"] == "anon"
    assert headers["Authorization"] == "Bearer anon"


def test_scoped_client_sends_user_token_and_shares_session(client, http):
    http.request.return_value = make_response(body=[])
    scoped = client.with_access_token("user-token")
    scoped.select("playlists")

    headers = http.request.call_args.kwargs["headers"]
    assert headers["Authorization"] == "Bearer user-token"
    assert client.access_token is None


def test_select_builds_postgrest_query(client, http):
    """Filters become eq. params and the request honours the timeout."""
    http.request.return_value = make_response(body=[{"id": "p1"}])
    rows = client.select(
        "playlists",
        columns="*, songs(*)",
        filters={"user_id": "u1", "is_public": True},
        order="created_at.desc",
    )

    assert rows == [{"id": "p1"}]
    args, kwargs = http.request.call_args
    assert args == ("GET", "https://proj.supabase.co/rest/v1/playlists")
    assert kwargs["params"] == {
        "select": "*, songs(*)",
        "user_id": "eq.u1",
        "is_public": "eq.true",
        "order": "created_at.desc",
    }
    assert kwargs["timeout"] == 30


def test_maybe_single_returns_none_for_no_rows(client, http):
    http.request.return_value = make_response(body=[])
    assert client.select("users", filters={"id": "u1"}, maybe_single=True) is None


def test_maybe_single_rejects_multiple_rows(client, http):
    http.request.return_value = make_response(body=[{"id": 1}, {"id": 2}])
    with pytest.raises(BackendError) as exc_info:
        client.select("users", maybe_single=True)
    assert exc_info.value.code == "PGRST116"


def test_error_body_is_parsed(client, http):
    http.request.return_value = make_response(
        status_code=409,
        body={"code": "23505", "message": "duplicate key", "details": "Key (id) exists"},
    )
    with pytest.raises(BackendError) as exc_info:
        client.insert("users", [{"id": "u1"}])

    error = exc_info.value
    assert error.code == "23505"
    assert error.status == 409
    assert error.message == "duplicate key"
    assert error.details == "Key (id) exists"


def test_auth_error_body_is_parsed(client, http):
    http.request.return_value = make_response(
        status_code=400,
        body={"error": "invalid_grant", "error_description": "Invalid login credentials"},
    )
    with pytest.raises(BackendError, match="Invalid login credentials"):
        client.sign_in_with_password("a@b.c", "wrong")


def test_non_json_error_body_uses_text(client, http):
    http.request.return_value = make_response(status_code=502, body=ValueError("no json"), text="Bad Gateway")
    with pytest.raises(BackendError, match="Bad Gateway"):
        client.get_user()


def test_network_failure_becomes_backend_error(client, http):
    http.request.side_effect = requests.ConnectionError("refused")
    with pytest.raises(BackendError) as exc_info:
        client.select("playlists")
    assert exc_info.value.code == "NETWORK_ERROR"


def test_upsert_sets_resolution_header(client, http):
    http.request.return_value = make_response(body=[])
    client.upsert("user_preferences", [{"user_id": "u1"}], on_conflict="user_id", ignore_duplicates=True)

    kwargs = http.request.call_args.kwargs
    assert kwargs["params"] == {"on_conflict": "user_id"}
    assert kwargs["headers"]["Prefer"].startswith("resolution=ignore-duplicates")


def test_delete_requires_filters(client):
    with pytest.raises(ValueError, match="without filters"):
        client.delete("songs", {})


def test_authorize_url_includes_provider_params(client):
    url = client.authorize_url(
        "spotify",
        redirect_to="http://localhost:5173/auth/callback",
        scopes="user-read-email",
        query_params={"show_dialog": "true"},
    )
    assert url.startswith("https://proj.supabase.co/auth/v1/authorize?")
    assert "provider=spotify" in url
    assert "show_dialog=true" in url
    assert "scopes=user-read-email" in url
