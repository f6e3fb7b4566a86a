"""Domain models for sessions, chats and projects.

Chat and project models mirror the rows of the ``chats`` and ``projects``
tables; extra columns (``user_id``, ``content``) are ignored on parse.
All models are frozen: state changes go through ``model_copy(update=...)``
so snapshots handed to readers can never be mutated in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import List, Literal, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


AVAILABLE_MODELS: Tuple[str, ...] = (
    "gpt-4.1",
    "gpt-4.1-mini",
    "gpt-4.1-nano",
    "gpt-4o",
    "gpt-4o-mini",
    "gpt-3.5-turbo",
)

DEFAULT_MODEL = "gpt-4o"

# Group key for chats with no (or a dangling) project_id
UNGROUPED = "ungrouped"


class SessionStatus(str, Enum):
    unauthenticated = "unauthenticated"
    initializing = "initializing"
    authenticated = "authenticated"


class Session(BaseModel):
    """The authenticated identity bound to this process."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    access_token: Optional[str] = Field(default=None, repr=False)


class Chat(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    title: str = "New Chat"
    project_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class Project(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str
    created_at: datetime


class Attachment(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    filename: str
    original_name: str
    mime_type: str
    file_size: int


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime
    model: Optional[str] = None
    tools_used: List[str] = Field(default_factory=list)
    attachments: List[Attachment] = Field(default_factory=list)


class ChatTranscript(BaseModel):
    """A chat as returned by the message backend: metadata plus its messages."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    title: Optional[str] = None
    messages: List[ChatMessage] = Field(default_factory=list)


class SendMessageResult(BaseModel):
    """Reply from the message backend for one sent message."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    chat_id: str = Field(alias="chatId")
    response: str
    model: Optional[str] = None
    tools_used: List[str] = Field(default_factory=list, alias="toolsUsed")
    attachments: List[Attachment] = Field(default_factory=list)


class Preferences(BaseModel):
    """The locally persisted subset of UI state; survives restarts."""

    model_config = ConfigDict(frozen=True)

    selected_model: str = DEFAULT_MODEL
    enabled_tools: List[str] = Field(default_factory=list)
    sidebar_open: bool = True
    was_authenticated: bool = False


@dataclass(frozen=True)
class ConversationSnapshot:
    """Immutable read view over the conversation state."""

    chats: Tuple[Chat, ...] = ()
    projects: Tuple[Project, ...] = ()
    groups: Mapping[str, Tuple[Chat, ...]] = field(
        default_factory=lambda: MappingProxyType({UNGROUPED: ()})
    )
    current_chat_id: Optional[str] = None
    messages: Tuple[ChatMessage, ...] = ()

    def project_name(self, project_id: str) -> Optional[str]:
        for project in self.projects:
            if project.id == project_id:
                return project.name
        return None
