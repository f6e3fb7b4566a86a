"""Port interface for the remote identity provider."""

from typing import Callable, Optional, Protocol

from application.models import Session

SessionChangeHandler = Callable[[Optional[Session]], None]


class Subscription(Protocol):
    """Handle returned by a listener registration."""

    def unsubscribe(self) -> None:
        ...


class IdentityProvider(Protocol):
    """Opaque session issuer.

    Implementations raise ``AuthError`` for rejected credentials and
    ``RemoteError`` for transport failures.
    """

    async def get_current_session(self) -> Optional[Session]:
        """Return the persisted session, if any."""
        ...

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        ...

    async def sign_up(
        self, email: str, password: str, display_name: str
    ) -> Optional[Session]:
        """Register a user.

        Returns:
            The new session, or None when the provider requires email
            confirmation before issuing one.
        """
        ...

    async def sign_in_with_oauth(self, provider: str, redirect_url: str) -> str:
        """Start an OAuth redirect flow. Returns the URL to send the browser to."""
        ...

    async def sign_out(self) -> None:
        ...

    def on_session_change(self, handler: SessionChangeHandler) -> Subscription:
        """Register ``handler`` for every session change (None on sign-out)."""
        ...
