"""Session domain - sign-in state passed explicitly to operations.

This domain handles:
- The immutable SessionContext (user + scoped backend client)
- Password, sign-up and OAuth provider sign-in
- Token refresh and sign-out
- Redirect records that survive an OAuth round-trip
"""

from .context import SessionContext, require_user
from .store import LocalStore, AUTH_REDIRECT_KEY, AUTH_STATE_KEY, SESSION_KEY
from .manager import (
    SessionManager,
    INITIAL_SESSION,
    SIGNED_IN,
    SIGNED_OUT,
    TOKEN_REFRESHED,
    USER_UPDATED,
)

__all__ = [
    "SessionContext",
    "require_user",
    "LocalStore",
    "AUTH_REDIRECT_KEY",
    "AUTH_STATE_KEY",
    "SESSION_KEY",
    "SessionManager",
    "INITIAL_SESSION",
    "SIGNED_IN",
    "SIGNED_OUT",
    "TOKEN_REFRESHED",
    "USER_UPDATED",
]
