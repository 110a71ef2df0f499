"""Error taxonomy shared by every layer.

Messages are written for end users; no raw backend codes appear in them.
"""

from typing import Optional


class SmartPlaylistError(Exception):
    """Base exception for Smart Playlist operations."""

    default_code = "SMART_PLAYLIST_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        self.code = code or self.default_code
        super().__init__(message)


class AuthenticationRequired(SmartPlaylistError):
    """Raised when an operation needs a signed-in user and there is none."""

    default_code = "AUTHENTICATION_REQUIRED"

    def __init__(self, message: str = "User not authenticated", code: Optional[str] = None):
        super().__init__(message, code)


class AuthProviderError(SmartPlaylistError):
    """Raised when the hosted auth service rejects a request."""

    default_code = "AUTH_PROVIDER_ERROR"

    def __init__(
        self, message: str, code: Optional[str] = None, status: Optional[int] = None
    ):
        self.status = status
        super().__init__(message, code)


class GenerationFailed(SmartPlaylistError):
    """Raised when the completion API fails or returns unusable content."""

    default_code = "GENERATION_FAILED"


class MalformedResponse(SmartPlaylistError):
    """Raised when completion content is not the expected JSON song array."""

    default_code = "MALFORMED_RESPONSE"


class ConstraintViolation(SmartPlaylistError):
    """Raised on uniqueness, foreign-key or column errors from the store."""

    default_code = "CONSTRAINT_VIOLATION"


class NotFound(SmartPlaylistError):
    """Raised when a requested row does not exist."""

    default_code = "NOT_FOUND"


class StorageError(SmartPlaylistError):
    """Raised for any other storage failure."""

    default_code = "STORAGE_ERROR"
