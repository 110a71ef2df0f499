"""
Session context passed explicitly to every operation that needs a user.

Immutable: sign-in, refresh and sign-out produce new contexts instead of
mutating shared state.
"""

import time
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from smart_playlist.core.backend import BackendClient
from smart_playlist.core.errors import AuthenticationRequired
from smart_playlist.domain.models import AuthUser

# Refresh this many seconds before the token actually expires
EXPIRY_BUFFER_SECONDS = 60


@dataclass(frozen=True)
class SessionContext:
    """Current user (or none) plus the backend client scoped to their token."""

    backend: BackendClient
    user: Optional[AuthUser] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[float] = None  # Unix timestamp

    @classmethod
    def anonymous(cls, backend: BackendClient) -> "SessionContext":
        """Context with no user; rows are accessed with the anon key."""
        return cls(backend=backend.with_access_token(None))

    @classmethod
    def from_payload(
        cls,
        backend: BackendClient,
        payload: Dict[str, Any],
        user_payload: Optional[Dict[str, Any]] = None,
        now: Optional[float] = None,
    ) -> "SessionContext":
        """Build a context from an auth session payload.

        Args:
            backend: Unscoped backend client
            payload: Session payload (access_token, refresh_token, expires_at/expires_in, user)
            user_payload: User payload when not embedded in the session payload
            now: Current time, for computing expiry from expires_in
        """
        access_token = payload["access_token"]
        expires_at = payload.get("expires_at")
        if expires_at is None and payload.get("expires_in") is not None:
            expires_at = (now or time.time()) + int(payload["expires_in"])

        user_data = user_payload or payload.get("user")
        return cls(
            backend=backend.with_access_token(access_token),
            user=AuthUser.from_payload(user_data) if user_data else None,
            access_token=access_token,
            refresh_token=payload.get("refresh_token"),
            expires_at=float(expires_at) if expires_at is not None else None,
        )

    @classmethod
    def from_record(cls, backend: BackendClient, record: Dict[str, Any]) -> "SessionContext":
        """Restore a context persisted with ``to_record``."""
        return cls.from_payload(backend, record)

    def to_record(self) -> Dict[str, Any]:
        """Serializable form for the local store (no backend handle)."""
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_at": self.expires_at,
            "user": {
                "id": self.user.id,
                "email": self.user.email,
                "user_metadata": self.user.user_metadata,
            }
            if self.user
            else None,
        }

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None and self.access_token is not None

    def is_expired(self, now: Optional[float] = None) -> bool:
        """Check if the access token is expired (with a small buffer)."""
        if self.expires_at is None:
            return False
        return (now or time.time()) >= self.expires_at - EXPIRY_BUFFER_SECONDS

    def with_user(self, user: AuthUser) -> "SessionContext":
        """Return new context with updated user."""
        return replace(self, user=user)


def require_user(context: SessionContext) -> AuthUser:
    """Return the signed-in user.

    Raises:
        AuthenticationRequired: If the context has no user
    """
    if not context.is_authenticated:
        raise AuthenticationRequired()
    return context.user
