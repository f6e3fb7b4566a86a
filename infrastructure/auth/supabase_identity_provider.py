"""Supabase Auth implementation of IdentityProvider."""

import logging
from typing import Any, Optional

import httpx
from supabase import AsyncClient, AuthError as SupabaseAuthError

from application.errors import AuthError, RemoteError
from application.models import Session
from application.ports.identity_provider import SessionChangeHandler, Subscription

logger = logging.getLogger(__name__)


def session_from_supabase(session: Any) -> Optional[Session]:
    """Map a Supabase auth session (or None) to the domain Session."""
    if session is None or getattr(session, "user", None) is None:
        return None
    user = session.user
    metadata = user.user_metadata or {}
    return Session(
        user_id=user.id,
        email=user.email,
        display_name=metadata.get("full_name") or metadata.get("name"),
        avatar_url=metadata.get("avatar_url"),
        access_token=getattr(session, "access_token", None),
    )


class SupabaseIdentityProvider:
    """Wraps ``AsyncClient.auth`` and translates its errors."""

    def __init__(self, client: AsyncClient) -> None:
        self._client = client

    async def get_current_session(self) -> Optional[Session]:
        try:
            session = await self._client.auth.get_session()
        except SupabaseAuthError as e:
            raise AuthError(e.message) from e
        except httpx.HTTPError as e:
            raise RemoteError(f"Session lookup failed: {e}") from e
        return session_from_supabase(session)

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        try:
            response = await self._client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except SupabaseAuthError as e:
            raise AuthError(e.message or "Email authentication failed") from e
        except httpx.HTTPError as e:
            raise RemoteError(f"Sign in failed: {e}") from e

        session = session_from_supabase(response.session)
        if session is None:
            raise AuthError("Email authentication failed")
        return session

    async def sign_up(
        self, email: str, password: str, display_name: str
    ) -> Optional[Session]:
        try:
            response = await self._client.auth.sign_up(
                {
                    "email": email,
                    "password": password,
                    "options": {"data": {"full_name": display_name}},
                }
            )
        except SupabaseAuthError as e:
            raise AuthError(e.message or "Email registration failed") from e
        except httpx.HTTPError as e:
            raise RemoteError(f"Sign up failed: {e}") from e

        # No session until the email is confirmed, when confirmation is on
        return session_from_supabase(response.session)

    async def sign_in_with_oauth(self, provider: str, redirect_url: str) -> str:
        try:
            response = await self._client.auth.sign_in_with_oauth(
                {"provider": provider, "options": {"redirect_to": redirect_url}}
            )
        except SupabaseAuthError as e:
            raise AuthError(e.message or f"{provider} authentication failed") from e
        return response.url

    async def sign_out(self) -> None:
        try:
            await self._client.auth.sign_out()
        except SupabaseAuthError as e:
            raise AuthError(e.message or "Sign out failed") from e
        except httpx.HTTPError as e:
            raise RemoteError(f"Sign out failed: {e}") from e

    def on_session_change(self, handler: SessionChangeHandler) -> Subscription:
        def _callback(event: Any, session: Any) -> None:
            logger.info("Auth state changed: %s", event)
            handler(session_from_supabase(session))

        return self._client.auth.on_auth_state_change(_callback)
