"""Port interface for the outbound chat message API."""

from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence

from application.models import ChatTranscript, SendMessageResult


class ChatApi(Protocol):
    """Request/response API that sends messages and serves transcripts.

    Chats are created server-side by the first message sent without a chat id.
    """

    async def send_message(
        self,
        message: str,
        chat_id: Optional[str] = None,
        model: Optional[str] = None,
        enabled_tools: Optional[List[str]] = None,
    ) -> SendMessageResult:
        ...

    async def send_message_with_attachments(
        self,
        message: str,
        attachments: Sequence[Path],
        chat_id: Optional[str] = None,
        model: Optional[str] = None,
        enabled_tools: Optional[List[str]] = None,
    ) -> SendMessageResult:
        ...

    async def get_chat(self, chat_id: str) -> ChatTranscript:
        ...

    async def get_available_tools(self) -> List[Dict[str, Any]]:
        ...

    async def update_tool_preferences(self, enabled_tools: List[str]) -> None:
        ...

    async def get_health(self) -> Dict[str, Any]:
        ...

    async def download_attachment(self, attachment_id: str) -> bytes:
        ...
