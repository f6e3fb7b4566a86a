"""Application domain models for sessions and conversations."""

from .conversation import (
    AVAILABLE_MODELS,
    DEFAULT_MODEL,
    UNGROUPED,
    Attachment,
    Chat,
    ChatMessage,
    ChatTranscript,
    ConversationSnapshot,
    Preferences,
    Project,
    SendMessageResult,
    Session,
    SessionStatus,
)

__all__ = [
    "AVAILABLE_MODELS",
    "DEFAULT_MODEL",
    "UNGROUPED",
    "Attachment",
    "Chat",
    "ChatMessage",
    "ChatTranscript",
    "ConversationSnapshot",
    "Preferences",
    "Project",
    "SendMessageResult",
    "Session",
    "SessionStatus",
]
