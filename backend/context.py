"""
Application context: owns one SessionManager and one ConversationStore.

Replaces process-wide store singletons with explicit instances handed to
consumers. Lifecycle is construct -> initialize -> operate -> dispose.

Usage:
    from backend.context import AppContext

    async with await AppContext.create() as ctx:
        await ctx.sessions.sign_in_with_password("a@b.com", "secret")
        await ctx.conversations.load_chats()
        groups = ctx.conversations.groups()
"""

import logging
from typing import Optional

from supabase import AsyncClient, create_async_client

from application.models import Preferences
from application.ports.chat_api import ChatApi
from application.use_cases.chat_messages import OpenChatUseCase, SendMessageUseCase
from application.use_cases.conversation_store import ConversationStore
from application.use_cases.session_manager import SessionManager
from backend.observability import configure_observability, shutdown_observability
from backend.settings import Settings, get_settings
from infrastructure.api.chat_api_client import HttpChatApiClient
from infrastructure.auth.supabase_identity_provider import SupabaseIdentityProvider
from infrastructure.db.async_chat_repository import AsyncSupabaseChatRepository
from infrastructure.db.async_project_repository import AsyncSupabaseProjectRepository
from infrastructure.preferences.json_preferences_repository import JsonPreferencesRepository

logger = logging.getLogger(__name__)


class AppContext:
    """Wires adapters, managers and use cases for one process."""

    def __init__(
        self,
        settings: Settings,
        sessions: SessionManager,
        conversations: ConversationStore,
        chat_api: ChatApi,
    ) -> None:
        self.settings = settings
        self.sessions = sessions
        self.conversations = conversations
        self.chat_api = chat_api
        self.send_message = SendMessageUseCase(sessions, conversations, chat_api)
        self.open_chat = OpenChatUseCase(sessions, conversations, chat_api)
        self._disposed = False

    @classmethod
    async def create(cls, settings: Optional[Settings] = None) -> "AppContext":
        """Build a context against the configured Supabase project.

        Raises:
            ValueError: If the Supabase URL or anon key is missing.
        """
        settings = settings or get_settings()
        settings.require_supabase()
        client = await create_async_client(settings.supabase_url, settings.supabase_anon_key)
        return cls.from_client(client, settings)

    @classmethod
    def from_client(cls, client: AsyncClient, settings: Settings) -> "AppContext":
        """Build a context around an existing Supabase client."""
        preferences = JsonPreferencesRepository(
            settings.preferences_path,
            defaults=Preferences(selected_model=settings.default_model),
        )
        sessions = SessionManager(
            SupabaseIdentityProvider(client),
            preferences=preferences,
            oauth_redirect_url=settings.oauth_redirect_url,
        )
        conversations = ConversationStore(
            sessions,
            AsyncSupabaseChatRepository(client),
            AsyncSupabaseProjectRepository(client),
            preferences,
            available_models=settings.available_models,
        )

        def access_token() -> Optional[str]:
            session = sessions.session
            return session.access_token if session is not None else None

        chat_api = HttpChatApiClient(
            settings.api_base_url,
            token_provider=access_token,
            timeout=settings.api_timeout_seconds,
        )
        return cls(settings, sessions, conversations, chat_api)

    async def initialize(self) -> None:
        """Start observability and adopt the current session."""
        configure_observability(self.settings)
        await self.sessions.initialize()
        logger.info(
            "App context initialized (authenticated=%s)", self.sessions.is_authenticated
        )

    async def dispose(self) -> None:
        """Unsubscribe listeners and release network resources. Idempotent."""
        if self._disposed:
            return
        self._disposed = True
        self.conversations.dispose()
        self.sessions.dispose()
        aclose = getattr(self.chat_api, "aclose", None)
        if aclose is not None:
            await aclose()
        shutdown_observability()

    async def __aenter__(self) -> "AppContext":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.dispose()
