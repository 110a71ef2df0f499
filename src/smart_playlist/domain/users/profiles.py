"""
User profile, preferences and stats rows.

All functions take the caller's SessionContext and read/write with that
user's token.
"""

import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from loguru import logger

from smart_playlist.core.backend import BackendError, translate_backend_error
from smart_playlist.core.errors import (
    ConstraintViolation,
    NotFound,
    StorageError,
)
from smart_playlist.domain.models import (
    DEFAULT_NOTIFICATION_SETTINGS,
    AuthUser,
    User,
    UserPreferences,
)
from smart_playlist.domain.session.context import SessionContext, require_user

PRIVACY_FIELDS = (
    "public_profile",
    "show_playlists",
    "allow_data_collection",
    "share_listening_history",
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def default_preferences_row(user_id: str, now: Optional[str] = None) -> Dict[str, Any]:
    """Preferences row created alongside a new profile."""
    now = now or _now()
    return {
        "user_id": user_id,
        "preferred_genres": [],
        "favorite_artists": [],
        "preferred_moods": [],
        "public_profile": False,
        "show_playlists": True,
        "allow_data_collection": True,
        "share_listening_history": False,
        "notification_settings": dict(DEFAULT_NOTIFICATION_SETTINGS),
        "created_at": now,
        "updated_at": now,
    }


def create_user_profile(
    context: SessionContext,
    user_id: str,
    full_name: Optional[str],
    avatar_url: Optional[str] = None,
) -> User:
    """Insert a new profile row.

    Raises:
        ConstraintViolation: If the profile already exists
        StorageError: On any other storage failure
    """
    try:
        row = context.backend.insert(
            "users",
            [{"id": user_id, "full_name": full_name, "avatar_url": avatar_url}],
            single=True,
        )
    except BackendError as e:
        raise translate_backend_error(e, "Failed to create user profile") from e
    return User.from_row(row)


def create_default_preferences(
    context: SessionContext, user_id: str, now: Optional[str] = None
) -> bool:
    """Create the preferences row if missing. Best-effort: failures are logged.

    Returns:
        True if the row exists afterwards (created or already present)
    """
    try:
        context.backend.upsert(
            "user_preferences",
            [default_preferences_row(user_id, now)],
            on_conflict="user_id",
            ignore_duplicates=True,
        )
    except BackendError as e:
        logger.warning(f"Failed to create preferences for {user_id}: {e.message}")
        return False
    return True


def _fetch_profile_id(context: SessionContext, user_id: str) -> Optional[Dict[str, Any]]:
    try:
        return context.backend.select(
            "users",
            columns="id, created_at",
            filters={"id": user_id},
            maybe_single=True,
        )
    except BackendError as e:
        error = translate_backend_error(e, "Failed to fetch user profile")
        if isinstance(error, NotFound):
            return None
        raise error from e


def ensure_user_profile(
    context: SessionContext,
    auth_user: Optional[AuthUser] = None,
    max_attempts: Optional[int] = None,
    base_delay: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """
    Make sure the profile row for a user exists. Safe to call repeatedly.

    The profile is upserted keyed by id with bounded retries and exponential
    backoff; a unique violation means another call won the race and counts
    as success. The preferences row is best-effort and never blocks.

    Args:
        context: Authenticated session
        auth_user: Identity to sync (default: the session's user)
        max_attempts: Upsert attempts (default: backend config)
        base_delay: Backoff base in seconds (default: backend config)
        sleep: Sleep function (injectable for tests)

    Raises:
        AuthenticationRequired: If the session has no user
        StorageError: If the profile cannot be created or verified
    """
    session_user = require_user(context)
    user = auth_user or session_user
    backend_config = context.backend.config
    if max_attempts is None:
        max_attempts = backend_config.profile_retry_attempts
    if base_delay is None:
        base_delay = backend_config.profile_retry_base_delay

    if _fetch_profile_id(context, user.id):
        return

    logger.info(f"User profile {user.id} not found, creating new profile")
    now = _now()
    user_row = {
        "id": user.id,
        "full_name": user.full_name,
        "avatar_url": user.avatar_url,
        "spotify_id": user.spotify_id,
        "created_at": now,
        "updated_at": now,
    }

    for attempt in range(max_attempts):
        try:
            context.backend.upsert("users", [user_row], on_conflict="id")
            break
        except BackendError as e:
            error = translate_backend_error(e, "Failed to create user profile")
            if isinstance(error, ConstraintViolation) and error.code == "UNIQUE_VIOLATION":
                logger.info(f"Profile {user.id} already exists, continuing")
                break

            logger.warning(f"Retry {attempt + 1}/{max_attempts} failed: {error}")
            if attempt + 1 == max_attempts:
                raise StorageError(
                    f"Failed to create user profile after {max_attempts} attempts"
                ) from e
            sleep(base_delay * 2 ** (attempt + 1))

    create_default_preferences(context, user.id, now)

    if not _fetch_profile_id(context, user.id):
        raise StorageError("Failed to verify user profile creation")


def get_user_profile(context: SessionContext, user_id: str) -> Optional[User]:
    """Get a profile row, or None if it does not exist."""
    try:
        row = context.backend.select("users", filters={"id": user_id}, maybe_single=True)
    except BackendError as e:
        error = translate_backend_error(e, "Failed to get user profile")
        if isinstance(error, NotFound):
            return None
        raise error from e
    return User.from_row(row) if row else None


def update_user_profile(
    context: SessionContext, user_id: str, changes: Dict[str, Any]
) -> User:
    """Update profile columns (full_name, avatar_url, spotify_id)."""
    try:
        row = context.backend.update(
            "users", {**changes, "updated_at": _now()}, {"id": user_id}, single=True
        )
    except BackendError as e:
        raise translate_backend_error(e, "Failed to update user profile") from e
    return User.from_row(row)


def get_user_preferences(
    context: SessionContext, user_id: str
) -> Optional[UserPreferences]:
    """Get a user's preferences. Missing or unreadable preferences return None."""
    try:
        row = context.backend.select(
            "user_preferences", filters={"user_id": user_id}, maybe_single=True
        )
    except BackendError as e:
        logger.warning(f"Failed to get user preferences: {e.message}")
        return None
    return UserPreferences.from_row(row) if row else None


def update_user_preferences(
    context: SessionContext, user_id: str, changes: Dict[str, Any]
) -> UserPreferences:
    """Update preference columns for a user."""
    try:
        row = context.backend.update(
            "user_preferences",
            {**changes, "updated_at": _now()},
            {"user_id": user_id},
            single=True,
        )
    except BackendError as e:
        raise translate_backend_error(e, "Failed to update preferences") from e
    return UserPreferences.from_row(row)


def update_privacy_settings(
    context: SessionContext, user_id: str, **settings: bool
) -> UserPreferences:
    """Update one or more privacy flags.

    Raises:
        ValueError: If an unknown flag is given
    """
    unknown = set(settings) - set(PRIVACY_FIELDS)
    if unknown:
        raise ValueError(f"Unknown privacy settings: {sorted(unknown)}")
    return update_user_preferences(context, user_id, settings)


def update_notification_settings(
    context: SessionContext, user_id: str, **settings: bool
) -> UserPreferences:
    """Merge notification flags into the stored notification settings.

    Raises:
        ValueError: If an unknown flag is given
    """
    unknown = set(settings) - set(DEFAULT_NOTIFICATION_SETTINGS)
    if unknown:
        raise ValueError(f"Unknown notification settings: {sorted(unknown)}")

    current = get_user_preferences(context, user_id)
    merged = dict(
        current.notification_settings if current else DEFAULT_NOTIFICATION_SETTINGS
    )
    merged.update(settings)
    return update_user_preferences(context, user_id, {"notification_settings": merged})


def get_user_stats(context: SessionContext, user_id: str) -> Optional[Dict[str, Any]]:
    """Get the aggregated stats row for a user, or None if there is none yet."""
    try:
        return context.backend.select(
            "user_stats", filters={"user_id": user_id}, maybe_single=True
        )
    except BackendError as e:
        error = translate_backend_error(e, "Failed to get user stats")
        if isinstance(error, NotFound):
            return None
        raise error from e


def delete_account(context: SessionContext, user_id: str) -> None:
    """Delete the profile row. Owned rows are removed by the store's cascades."""
    require_user(context)
    try:
        context.backend.delete("users", {"id": user_id})
    except BackendError as e:
        raise translate_backend_error(e, "Failed to delete account") from e
    logger.info(f"Deleted account {user_id}")
