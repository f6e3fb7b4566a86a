"""Session manager: single source of truth for who is signed in.

Part of the session/conversation synchronization layer.

State machine:
    unauthenticated -> initializing -> {authenticated, unauthenticated}
    authenticated <-> unauthenticated   (sign in / sign out / provider push)

Every call that can change the session takes a monotonic request token
when it starts. A result is adopted only if no newer token has already
been adopted, so a slow response can never overwrite a session set by a
later, faster call.
"""

import asyncio
import logging
from typing import Callable, List, Optional

from application.errors import AuthError, ValidationError
from application.models import Session, SessionStatus
from application.ports.identity_provider import IdentityProvider, Subscription
from application.ports.preferences_repository import PreferencesRepository
from backend.observability import ConversationMetrics, traced

logger = logging.getLogger(__name__)

SessionListener = Callable[[Optional[Session]], None]


class SessionManager:
    """Owns the Session and keeps it in sync with the identity provider."""

    def __init__(
        self,
        provider: IdentityProvider,
        preferences: Optional[PreferencesRepository] = None,
        oauth_redirect_url: str = "http://localhost:5173/auth/callback",
    ) -> None:
        self._provider = provider
        self._preferences = preferences
        self._oauth_redirect_url = oauth_redirect_url

        self._session: Optional[Session] = None
        self._status = SessionStatus.unauthenticated
        self._last_error: Optional[str] = None
        self._pending = 0

        self._initialized = False
        self._ready = asyncio.Event()
        self._subscription: Optional[Subscription] = None

        self._issued_token = 0
        self._adopted_token = 0
        self._listeners: List[SessionListener] = []

    # -------------------------------------------------------------------------
    # Read-only state
    # -------------------------------------------------------------------------
    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def is_loading(self) -> bool:
        return self._pending > 0

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    def clear_error(self) -> None:
        self._last_error = None

    def add_listener(self, listener: SessionListener) -> Callable[[], None]:
        """Call ``listener`` with the new session on every adopted change.

        Returns:
            A callable that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -------------------------------------------------------------------------
    # Initialization
    # -------------------------------------------------------------------------
    async def initialize(self) -> None:
        """Adopt the provider's current session and subscribe to changes.

        Idempotent: the flag is set before the first await, so concurrent
        callers cannot both start the work. Later callers wait for the first
        adoption to finish. Provider errors are recorded in ``last_error``
        and never raised.
        """
        if self._initialized:
            await self._ready.wait()
            return
        self._initialized = True

        self._status = SessionStatus.initializing
        self._pending += 1
        try:
            await self._adopt_current_session()
            try:
                self._subscription = self._provider.on_session_change(
                    self._handle_session_change
                )
            except Exception as e:
                logger.error("Failed to subscribe to session changes: %s", e)
                self._last_error = str(e)
        finally:
            self._pending -= 1
            if self._status is SessionStatus.initializing:
                self._status = self._status_for(self._session)
            self._ready.set()

    async def handle_oauth_callback(self) -> Optional[Session]:
        """Adopt the session produced by a completed OAuth redirect.

        Runs the initialize() adoption step again; the change subscription
        is only ever created once.
        """
        if not self._initialized:
            await self.initialize()
        else:
            self._pending += 1
            try:
                await self._adopt_current_session()
            finally:
                self._pending -= 1
        return self._session

    @traced(name="session.get_current")
    async def _adopt_current_session(self) -> None:
        token = self._next_token()
        try:
            session = await self._provider.get_current_session()
        except Exception as e:
            logger.error("Session error: %s", e)
            self._last_error = str(e)
            return
        self._adopt(token, session, source="initialize")

    def _handle_session_change(self, session: Optional[Session]) -> None:
        if session is not None:
            self._last_error = None
        self._adopt(self._next_token(), session, source="provider")

    # -------------------------------------------------------------------------
    # Sign in / sign up / sign out
    # -------------------------------------------------------------------------
    @traced(name="session.sign_in_with_password")
    async def sign_in_with_password(self, email: str, password: str) -> Session:
        if not email or not password:
            raise ValidationError("Email and password are required")

        token = self._next_token()
        self._last_error = None
        self._pending += 1
        try:
            session = await self._provider.sign_in_with_password(email, password)
        except AuthError as e:
            self._record_failure("Email sign in", e)
            raise
        except Exception as e:
            self._record_failure("Email sign in", e)
            raise AuthError(f"Email sign in failed: {e}") from e
        finally:
            self._pending -= 1

        self._adopt(token, session, source="sign_in")
        return session

    @traced(name="session.sign_up_with_password")
    async def sign_up_with_password(
        self, email: str, password: str, display_name: str
    ) -> Optional[Session]:
        if not email or not password:
            raise ValidationError("Email and password are required")
        if not display_name or not display_name.strip():
            raise ValidationError("Display name is required")

        token = self._next_token()
        self._last_error = None
        self._pending += 1
        try:
            session = await self._provider.sign_up(email, password, display_name.strip())
        except AuthError as e:
            self._record_failure("Email sign up", e)
            raise
        except Exception as e:
            self._record_failure("Email sign up", e)
            raise AuthError(f"Email sign up failed: {e}") from e
        finally:
            self._pending -= 1

        if session is not None:
            self._adopt(token, session, source="sign_up")
        return session

    @traced(name="session.sign_in_with_oauth")
    async def sign_in_with_oauth_redirect(self, provider: str = "google") -> str:
        """Start an OAuth redirect; the session arrives via handle_oauth_callback()."""
        self._last_error = None
        self._pending += 1
        try:
            return await self._provider.sign_in_with_oauth(
                provider, self._oauth_redirect_url
            )
        except AuthError as e:
            self._record_failure(f"{provider} sign in", e)
            raise
        except Exception as e:
            self._record_failure(f"{provider} sign in", e)
            raise AuthError(f"{provider} authentication failed: {e}") from e
        finally:
            self._pending -= 1

    @traced(name="session.sign_out")
    async def sign_out(self) -> None:
        """Sign out remotely, then clear local state whatever the remote outcome.

        A remote failure is recorded and re-raised as AuthError after the
        local session has been cleared.
        """
        token = self._next_token()
        self._last_error = None
        self._pending += 1
        failure: Optional[Exception] = None
        try:
            await self._provider.sign_out()
        except Exception as e:
            logger.warning("Sign out error (clearing local session anyway): %s", e)
            self._last_error = str(e)
            failure = e
        finally:
            self._pending -= 1
            self._adopt(token, None, source="sign_out")

        if failure is not None:
            if isinstance(failure, AuthError):
                raise failure
            raise AuthError(f"Sign out failed: {failure}") from failure

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------
    def dispose(self) -> None:
        """Tear down the provider subscription and drop all listeners."""
        if self._subscription is not None:
            try:
                self._subscription.unsubscribe()
            except Exception as e:
                logger.warning("Failed to unsubscribe from session changes: %s", e)
            self._subscription = None
        self._listeners.clear()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------
    def _next_token(self) -> int:
        self._issued_token += 1
        return self._issued_token

    def _adopt(self, token: int, session: Optional[Session], source: str) -> bool:
        if token < self._adopted_token:
            logger.debug(
                "Dropping stale %s result (token %d < %d)",
                source,
                token,
                self._adopted_token,
            )
            ConversationMetrics.stale_responses_dropped_total().add(1, {"source": source})
            return False

        self._adopted_token = token
        previous = self._session
        self._session = session
        if self._status is not SessionStatus.initializing or session is not None:
            self._status = self._status_for(session)

        changed = (previous is None) != (session is None)
        if changed:
            logger.info(
                "Session %s via %s",
                "established" if session is not None else "cleared",
                source,
            )
        ConversationMetrics.session_changes_total().add(1, {"source": source})
        if changed or source == "initialize":
            self._persist_auth_flag(session is not None)
        self._notify(session)
        return True

    def _notify(self, session: Optional[Session]) -> None:
        for listener in list(self._listeners):
            try:
                listener(session)
            except Exception:
                logger.exception("Session listener failed")

    def _persist_auth_flag(self, authenticated: bool) -> None:
        if self._preferences is None:
            return
        try:
            self._preferences.update(was_authenticated=authenticated)
        except OSError as e:
            logger.warning("Could not persist auth flag: %s", e)

    def _record_failure(self, action: str, error: Exception) -> None:
        logger.error("%s error: %s", action, error)
        self._last_error = str(error) or f"{action} failed"

    @staticmethod
    def _status_for(session: Optional[Session]) -> SessionStatus:
        if session is None:
            return SessionStatus.unauthenticated
        return SessionStatus.authenticated
