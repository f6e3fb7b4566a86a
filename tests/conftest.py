"""Shared fixtures for the session and conversation layers."""

import pytest

from application.use_cases.conversation_store import ConversationStore
from application.use_cases.session_manager import SessionManager
from tests.fakes import (
    FakeIdentityProvider,
    InMemoryChatRepository,
    InMemoryPreferencesRepository,
    InMemoryProjectRepository,
    make_chat,
    make_project,
)

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def provider():
    return FakeIdentityProvider()


@pytest.fixture
def preferences():
    return InMemoryPreferencesRepository()


@pytest.fixture
def sessions(provider, preferences):
    return SessionManager(provider, preferences=preferences)


@pytest.fixture
def chat_repo():
    return InMemoryChatRepository(
        [
            make_chat("chat-1", None, minutes=1),
            make_chat("chat-2", "proj-1", minutes=2),
            make_chat("chat-3", "proj-1", minutes=3),
        ]
    )


@pytest.fixture
def project_repo():
    return InMemoryProjectRepository(
        [make_project("proj-1", "Research", minutes=0), make_project("proj-2", "Writing", minutes=5)]
    )


@pytest.fixture
def store(sessions, chat_repo, project_repo, preferences):
    return ConversationStore(sessions, chat_repo, project_repo, preferences)
