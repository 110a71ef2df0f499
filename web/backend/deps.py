from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header

from smart_playlist.core.backend import BackendClient, BackendError
from smart_playlist.core.config import Config, load_config
from smart_playlist.core.errors import AuthenticationRequired
from smart_playlist.domain.session import SessionContext


def get_config() -> Config:
    """FastAPI dependency for configuration."""
    return load_config()


@lru_cache(maxsize=1)
def get_backend() -> BackendClient:
    """FastAPI dependency for the shared (unscoped) backend client."""
    return BackendClient(load_config().backend)


def get_session(
    authorization: Optional[str] = Header(default=None),
    backend: BackendClient = Depends(get_backend),
) -> SessionContext:
    """FastAPI dependency resolving the bearer token into a session context."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise AuthenticationRequired()

    token = authorization[len("bearer ") :].strip()
    try:
        user_payload = backend.with_access_token(token).get_user()
    except BackendError as e:
        raise AuthenticationRequired("Invalid or expired session") from e

    return SessionContext.from_payload(
        backend, {"access_token": token}, user_payload=user_payload
    )
