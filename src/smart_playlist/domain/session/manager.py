"""
Session lifecycle: sign-up, sign-in (password and OAuth provider), refresh
and sign-out against the hosted auth service.

The manager owns the current SessionContext, persists it to the local store,
and notifies subscribers on every change. Operations read the context from
the manager and pass it explicitly.
"""

import json
import time
import webbrowser
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import parse_qs, urlparse

from loguru import logger

from smart_playlist.core.backend import BackendClient, BackendError
from smart_playlist.core.config import Config
from smart_playlist.core.errors import (
    AuthenticationRequired,
    AuthProviderError,
    SmartPlaylistError,
)

from ..models import AuthUser
from ..users import profiles
from .context import SessionContext
from .store import AUTH_REDIRECT_KEY, AUTH_STATE_KEY, SESSION_KEY, LocalStore

# Auth events delivered to subscribers
INITIAL_SESSION = "INITIAL_SESSION"
SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
TOKEN_REFRESHED = "TOKEN_REFRESHED"
USER_UPDATED = "USER_UPDATED"

# OAuth scopes requested per provider
PROVIDER_SCOPES = {
    "spotify": "playlist-modify-public playlist-modify-private user-read-private user-read-email",
    "google": "profile email",
}

# A provider sign-in must complete within this window
AUTH_STATE_MAX_AGE_MS = 10 * 60 * 1000

Listener = Callable[[str, SessionContext], None]
Navigator = Callable[[str], Any]


def is_rejection(error: AuthProviderError) -> bool:
    """True if the auth service refused the request (4xx), not if it was unreachable."""
    return error.status is not None and 400 <= error.status < 500


class SessionManager:
    """Holds the current session and exposes the auth operations."""

    def __init__(
        self,
        config: Config,
        backend: BackendClient,
        store: Optional[LocalStore] = None,
        navigator: Navigator = webbrowser.open,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config
        self._backend = backend
        self._store = store or LocalStore()
        self._navigator = navigator
        self._clock = clock
        self._listeners: List[Listener] = []
        self._context = SessionContext.anonymous(backend)

    @property
    def context(self) -> SessionContext:
        return self._context

    @property
    def user(self) -> Optional[AuthUser]:
        return self._context.user

    # -- lifecycle ---------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a callback for auth events. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_context(self, context: SessionContext, event: str, persist: bool = True) -> None:
        self._context = context
        if persist and context.is_authenticated:
            self._store.set(SESSION_KEY, context.to_record())
        elif persist:
            self._store.remove(SESSION_KEY)

        logger.debug(f"Auth event {event} (user={context.user.id if context.user else None})")
        for listener in list(self._listeners):
            try:
                listener(event, context)
            except Exception:
                logger.exception(f"Auth listener failed on {event}")

    def start(self) -> SessionContext:
        """Restore the persisted session at app start, refreshing it if expired."""
        record = self._store.get(SESSION_KEY)
        if not record or not record.get("access_token"):
            self._set_context(SessionContext.anonymous(self._backend), INITIAL_SESSION)
            return self._context

        context = SessionContext.from_record(self._backend, record)
        if context.is_expired(self._clock()):
            self._context = context
            try:
                return self.refresh()
            except AuthenticationRequired as e:
                logger.warning(f"Stored session could not be refreshed: {e}")
                context = SessionContext.anonymous(self._backend)
            except AuthProviderError as e:
                if not is_rejection(e):
                    # Keep the stored session so a later run can refresh it
                    logger.warning(f"Session refresh unavailable ({e.code}): {e}")
                    self._set_context(
                        SessionContext.anonymous(self._backend), INITIAL_SESSION, persist=False
                    )
                    return self._context
                logger.warning(f"Stored session was rejected: {e}")
                context = SessionContext.anonymous(self._backend)

        self._set_context(context, INITIAL_SESSION)
        return self._context

    def refresh(self) -> SessionContext:
        """Exchange the refresh token for a new access token.

        Raises:
            AuthenticationRequired: If there is no refresh token
            AuthProviderError: If the auth service rejects the refresh
        """
        refresh_token = self._context.refresh_token
        if not refresh_token:
            raise AuthenticationRequired("No session to refresh")

        try:
            payload = self._backend.refresh_session(refresh_token)
        except BackendError as e:
            raise AuthProviderError(e.message, code=e.code, status=e.status) from e

        context = SessionContext.from_payload(self._backend, payload, now=self._clock())
        if context.user is None and self._context.user is not None:
            context = context.with_user(self._context.user)
        self._set_context(context, TOKEN_REFRESHED)
        logger.info("Session token refreshed")
        return context

    def refresh_user(self) -> AuthUser:
        """Re-read the current user from the auth service."""
        if not self._context.is_authenticated:
            raise AuthenticationRequired()
        try:
            payload = self._context.backend.get_user()
        except BackendError as e:
            raise AuthProviderError(e.message, code=e.code, status=e.status) from e

        user = AuthUser.from_payload(payload)
        self._set_context(self._context.with_user(user), USER_UPDATED)
        return user

    # -- password auth -----------------------------------------------------

    def register(self, email: str, password: str, display_name: str) -> SessionContext:
        """
        Create an auth identity, its profile row and its preferences row.

        Profile creation failure fails the call; preferences failure is only
        logged.

        Raises:
            AuthProviderError: If sign-up or profile creation fails
        """
        try:
            payload = self._backend.sign_up(
                email, password, data={"full_name": display_name}
            )
        except BackendError as e:
            raise AuthProviderError(e.message, code=e.code, status=e.status) from e

        payload = payload or {}
        user_data = payload.get("user") or (payload if payload.get("id") else None)
        if not user_data:
            raise AuthProviderError(
                "User creation failed", code="USER_CREATION_FAILED", status=400
            )

        if payload.get("access_token"):
            context = SessionContext.from_payload(
                self._backend, payload, user_payload=user_data, now=self._clock()
            )
        else:
            # Email confirmation pending: no session yet
            context = SessionContext.anonymous(self._backend)

        try:
            profiles.create_user_profile(context, user_data["id"], display_name)
        except SmartPlaylistError as e:
            raise AuthProviderError(
                str(e), code="PROFILE_CREATION_FAILED", status=400
            ) from e

        if not profiles.create_default_preferences(context, user_data["id"]):
            logger.warning("Failed to create initial preferences")

        if context.is_authenticated:
            self._set_context(context, SIGNED_IN)
        logger.info(f"Registered user {user_data['id']}")
        return context

    def authenticate(self, email: str, password: str) -> SessionContext:
        """Sign in with email and password.

        Raises:
            AuthProviderError: Carrying the auth service's message unchanged
        """
        try:
            payload = self._backend.sign_in_with_password(email, password)
        except BackendError as e:
            raise AuthProviderError(e.message, code=e.code, status=e.status) from e

        context = SessionContext.from_payload(self._backend, payload, now=self._clock())
        self._set_context(context, SIGNED_IN)
        logger.info(f"Signed in {context.user.id if context.user else email}")
        return context

    # -- provider auth -----------------------------------------------------

    def _clear_auth_records(self) -> None:
        self._store.remove(AUTH_REDIRECT_KEY)
        self._store.remove(AUTH_STATE_KEY)

    def authenticate_with_provider(self, provider: str, current_path: str = "/") -> str:
        """
        Start an OAuth sign-in by sending the user to the provider.

        Stores where to return after login and a timestamped state record,
        then hands the authorize URL to the navigator.

        Args:
            provider: OAuth provider name (spotify, google, ...)
            current_path: Path the user is on now

        Returns:
            The authorize URL

        Raises:
            AuthProviderError: If the browser could not be opened
        """
        self._clear_auth_records()

        redirect_path = "/" if current_path.startswith("/auth/") else current_path
        origin = self.config.auth.site_url.rstrip("/")
        timestamp = int(self._clock() * 1000)

        self._store.set(AUTH_REDIRECT_KEY, redirect_path)
        self._store.set(
            AUTH_STATE_KEY,
            {
                "provider": provider,
                "timestamp": timestamp,
                "redirect_path": redirect_path,
                "origin": origin,
            },
        )

        query_params: Optional[Dict[str, str]] = None
        if provider == "spotify":
            query_params = {
                "show_dialog": "true",
                "response_type": "code",
                "state": json.dumps(
                    {"provider": provider, "timestamp": timestamp, "origin": origin}
                ),
            }

        redirect_url = f"{origin}{self.config.auth.callback_path}"
        auth_url = self._backend.authorize_url(
            provider,
            redirect_to=redirect_url,
            scopes=PROVIDER_SCOPES.get(provider),
            query_params=query_params,
        )
        logger.info(f"Starting provider sign in: provider={provider} redirect={redirect_url}")

        try:
            opened = self._navigator(auth_url)
        except webbrowser.Error as e:
            self._clear_auth_records()
            raise AuthProviderError(
                f"Could not open browser for {provider} sign in: {e}",
                code="PROVIDER_REDIRECT_FAILED",
            ) from e

        if opened is False:
            logger.warning(f"Browser did not open, authorize URL: {auth_url}")
        return auth_url

    def complete_provider_sign_in(self, callback_url: str) -> Optional[str]:
        """
        Finish an OAuth sign-in from the callback URL.

        Args:
            callback_url: Full URL the provider redirected to

        Returns:
            Path to navigate to after login, or None if the user cancelled

        Raises:
            AuthProviderError: On provider errors, stale state, or missing token
        """
        parsed = urlparse(callback_url)
        raw = {**parse_qs(parsed.query), **parse_qs(parsed.fragment)}
        params = {key: values[0] for key, values in raw.items()}

        try:
            error = params.get("error")
            if error:
                description = params.get("error_description", "")
                if error == "access_denied" or "cancel" in description.lower():
                    logger.info("Provider sign in cancelled by user")
                    return None
                raise AuthProviderError(
                    description or error, code=params.get("error_code") or error
                )

            auth_state = self._store.get(AUTH_STATE_KEY)
            now_ms = int(self._clock() * 1000)
            if not auth_state or now_ms - auth_state.get("timestamp", 0) > AUTH_STATE_MAX_AGE_MS:
                raise AuthProviderError(
                    "Sign in session expired, please try again", code="AUTH_STATE_EXPIRED"
                )

            access_token = params.get("access_token")
            if not access_token:
                raise AuthProviderError(
                    "No access token in sign in callback", code="MISSING_TOKEN"
                )

            redirect_path = self._store.get(AUTH_REDIRECT_KEY) or "/"

            try:
                user_payload = self._backend.with_access_token(access_token).get_user()
            except BackendError as e:
                raise AuthProviderError(e.message, code=e.code, status=e.status) from e

            context = SessionContext.from_payload(
                self._backend, params, user_payload=user_payload, now=self._clock()
            )
            self._set_context(context, SIGNED_IN)
            logger.info(f"Provider sign in complete for {context.user.id}")
            return redirect_path
        finally:
            self._clear_auth_records()

    # -- sign out ----------------------------------------------------------

    def deauthenticate(self) -> None:
        """
        Sign out and go back to the home location.

        Local records are cleared first and the redirect happens whether or not
        the auth service acknowledged the sign-out.
        """
        self._clear_auth_records()
        try:
            if self._context.access_token:
                self._context.backend.sign_out()
        except BackendError as e:
            logger.error(f"Sign out error: {e.message}")
        finally:
            self._set_context(SessionContext.anonymous(self._backend), SIGNED_OUT)
            home = f"{self.config.auth.site_url.rstrip('/')}{self.config.auth.home_path}"
            self._navigator(home)
