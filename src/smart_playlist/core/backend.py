"""
HTTP client for the hosted auth/storage service.

Speaks the GoTrue auth endpoints (/auth/v1) and the PostgREST row endpoints
(/rest/v1). This is the only module that knows the service's error codes:
everything above it sees the taxonomy from core.errors.
"""

from typing import Any, Dict, List, Optional, Union
from urllib.parse import urlencode

import requests
from loguru import logger

from .config import BackendConfig
from .errors import (
    ConstraintViolation,
    NotFound,
    SmartPlaylistError,
    StorageError,
)

Row = Dict[str, Any]
Filters = Dict[str, Any]

# Accept header that makes PostgREST return one object (or PGRST116)
SINGLE_OBJECT = "application/vnd.pgrst.object+json"


class BackendError(Exception):
    """Low-level error returned by the hosted service."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status: int = 0,
        details: Optional[str] = None,
    ):
        self.message = message
        self.code = code
        self.status = status
        self.details = details
        super().__init__(message)

    def __repr__(self) -> str:
        return f"BackendError(status={self.status}, code={self.code!r}, message={self.message!r})"


# code -> (taxonomy class, taxonomy code, user-facing message)
_CONSTRAINT_ERRORS = {
    "23505": ("UNIQUE_VIOLATION", "A record with these details already exists"),
    "23503": ("FOREIGN_KEY_VIOLATION", "Invalid reference to another resource"),
    "42703": ("UNDEFINED_COLUMN", "Invalid field in request"),
}
_NOT_FOUND_CODE = "PGRST116"


def translate_backend_error(error: BackendError, context: str) -> SmartPlaylistError:
    """Map a backend error onto the application error taxonomy.

    Args:
        error: Error raised by BackendClient
        context: Human-readable description of the failed operation

    Returns:
        ConstraintViolation, NotFound or StorageError (never raised here)
    """
    logger.debug(f"{context}: {error!r}")

    if error.code in _CONSTRAINT_ERRORS:
        code, message = _CONSTRAINT_ERRORS[error.code]
        return ConstraintViolation(message, code=code)

    if error.code == _NOT_FOUND_CODE:
        return NotFound(f"{context}: not found")

    return StorageError(f"{context}: {error.message}")


def _eq_params(filters: Optional[Filters]) -> Dict[str, str]:
    """Convert {column: value} into PostgREST equality filters."""
    if not filters:
        return {}
    params = {}
    for column, value in filters.items():
        if isinstance(value, bool):
            value = "true" if value else "false"
        params[column] = f"eq.{value}"
    return params


class BackendClient:
    """Thin synchronous client over the hosted service's REST endpoints.

    A client carries at most one user access token; rows are read and written
    with that token so the service's row-level security applies.
    """

    def __init__(
        self,
        config: BackendConfig,
        access_token: Optional[str] = None,
        http: Optional[requests.Session] = None,
    ) -> None:
        if not config.url or not config.anon_key:
            raise ValueError(
                "Backend URL and anon key must be configured "
                "(set SUPABASE_URL and SUPABASE_ANON_KEY)"
            )
        self.config = config
        self.access_token = access_token
        self._http = http or requests.Session()
        self._base = config.url.rstrip("/")

    def with_access_token(self, access_token: Optional[str]) -> "BackendClient":
        """Return a client sharing this connection pool but using another token."""
        return BackendClient(self.config, access_token=access_token, http=self._http)

    # -- transport ---------------------------------------------------------

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        token = self.access_token or self.config.anon_key
        headers = {
            "apikey": self.config.anon_key,
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        if extra:
            headers.update(extra)
        return headers

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        url = f"{self._base}{path}"
        logger.debug(f"{method} {path} params={params}")

        try:
            response = self._http.request(
                method,
                url,
                params=params,
                json=json,
                headers=self._headers(headers),
                timeout=self.config.timeout_seconds,
            )
        except requests.RequestException as e:
            raise BackendError(f"Network error: {e}", code="NETWORK_ERROR") from e

        if response.status_code >= 400:
            raise self._error_from_response(response)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    @staticmethod
    def _error_from_response(response: requests.Response) -> BackendError:
        """Build a BackendError from a PostgREST or GoTrue error body."""
        try:
            body = response.json()
        except ValueError:
            return BackendError(
                response.text or response.reason or "Unknown error",
                status=response.status_code,
            )

        if not isinstance(body, dict):
            return BackendError(str(body), status=response.status_code)

        message = (
            body.get("message")
            or body.get("msg")
            or body.get("error_description")
            or body.get("error")
            or "Unknown error"
        )
        code = body.get("code") or body.get("error_code")
        if code is not None:
            code = str(code)
        return BackendError(
            message, code=code, status=response.status_code, details=body.get("details")
        )

    # -- auth --------------------------------------------------------------

    def sign_up(
        self, email: str, password: str, data: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Create an auth identity. Returns a session payload or a bare user."""
        return self._request(
            "POST",
            "/auth/v1/signup",
            json={"email": email, "password": password, "data": data or {}},
        )

    def sign_in_with_password(self, email: str, password: str) -> Dict[str, Any]:
        """Exchange email/password for a session payload."""
        return self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )

    def refresh_session(self, refresh_token: str) -> Dict[str, Any]:
        """Exchange a refresh token for a new session payload."""
        return self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
        )

    def get_user(self) -> Dict[str, Any]:
        """Return the auth user for this client's access token."""
        return self._request("GET", "/auth/v1/user")

    def sign_out(self) -> None:
        """Revoke this client's session."""
        self._request("POST", "/auth/v1/logout")

    def authorize_url(
        self,
        provider: str,
        redirect_to: str,
        scopes: Optional[str] = None,
        query_params: Optional[Dict[str, str]] = None,
    ) -> str:
        """Build the OAuth authorize URL for a third-party provider."""
        params: Dict[str, str] = {"provider": provider, "redirect_to": redirect_to}
        if scopes:
            params["scopes"] = scopes
        if query_params:
            params.update(query_params)
        return f"{self._base}/auth/v1/authorize?{urlencode(params)}"

    # -- rows --------------------------------------------------------------

    def select(
        self,
        table: str,
        columns: str = "*",
        filters: Optional[Filters] = None,
        order: Optional[str] = None,
        single: bool = False,
        maybe_single: bool = False,
    ) -> Union[List[Row], Row, None]:
        """Read rows from a table.

        Args:
            table: Table name
            columns: PostgREST select expression (e.g. "*, songs(*)")
            filters: Equality filters
            order: Order expression (e.g. "created_at.desc")
            single: Exactly one row expected; PGRST116 otherwise
            maybe_single: Zero or one row expected; None when absent

        Returns:
            List of rows, one row, or None
        """
        params: Dict[str, Any] = {"select": columns, **_eq_params(filters)}
        if order:
            params["order"] = order

        if single:
            return self._request(
                "GET", f"/rest/v1/{table}", params=params, headers={"Accept": SINGLE_OBJECT}
            )

        rows = self._request("GET", f"/rest/v1/{table}", params=params) or []
        if maybe_single:
            if len(rows) > 1:
                raise BackendError(
                    "Multiple rows returned where at most one was expected",
                    code=_NOT_FOUND_CODE,
                    status=406,
                )
            return rows[0] if rows else None
        return rows

    def insert(self, table: str, rows: List[Row], single: bool = False) -> Union[List[Row], Row]:
        """Insert rows and return the stored representation."""
        headers = {"Prefer": "return=representation"}
        if single:
            headers["Accept"] = SINGLE_OBJECT
        return self._request("POST", f"/rest/v1/{table}", json=rows, headers=headers)

    def upsert(
        self,
        table: str,
        rows: List[Row],
        on_conflict: str,
        ignore_duplicates: bool = False,
    ) -> List[Row]:
        """Insert rows, merging (or ignoring) rows whose key already exists."""
        resolution = "ignore-duplicates" if ignore_duplicates else "merge-duplicates"
        return self._request(
            "POST",
            f"/rest/v1/{table}",
            params={"on_conflict": on_conflict},
            json=rows,
            headers={"Prefer": f"resolution={resolution},return=representation"},
        ) or []

    def update(
        self, table: str, values: Row, filters: Filters, single: bool = False
    ) -> Union[List[Row], Row]:
        """Update rows matching filters and return them."""
        headers = {"Prefer": "return=representation"}
        if single:
            headers["Accept"] = SINGLE_OBJECT
        return self._request(
            "PATCH",
            f"/rest/v1/{table}",
            params=_eq_params(filters),
            json=values,
            headers=headers,
        )

    def delete(self, table: str, filters: Filters) -> None:
        """Delete rows matching filters."""
        if not filters:
            raise ValueError("Refusing to delete without filters")
        self._request("DELETE", f"/rest/v1/{table}", params=_eq_params(filters))
