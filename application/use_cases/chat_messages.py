"""Use cases that talk to the chat message backend.

The backend creates chats; this layer only records the exchange in the
conversation store and refreshes the chat list afterwards.
"""

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

from application.errors import AuthRequired, ChatClientError, ValidationError
from application.models import ChatMessage, ChatTranscript
from application.ports.chat_api import ChatApi
from application.use_cases.conversation_store import ConversationStore
from application.use_cases.session_manager import SessionManager
from backend.observability import traced

logger = logging.getLogger(__name__)


class SendMessageUseCase:
    """Send one user message and record both sides of the exchange."""

    def __init__(
        self,
        sessions: SessionManager,
        conversations: ConversationStore,
        chat_api: ChatApi,
    ) -> None:
        self._sessions = sessions
        self._conversations = conversations
        self._chat_api = chat_api

    @traced(name="chat.send_message")
    async def execute(
        self,
        message: str,
        chat_id: Optional[str] = None,
        attachments: Optional[Sequence[Path]] = None,
    ) -> ChatMessage:
        """Send ``message`` to ``chat_id`` (a new chat when None).

        Uses the persisted model and tool preferences. The user and
        assistant messages are recorded only after the backend replied.

        Returns:
            The assistant's reply.
        """
        if self._sessions.session is None:
            raise AuthRequired()
        if not message.strip() and not attachments:
            raise ValidationError("Message must not be empty")

        prefs = self._conversations.preferences
        sent_at = datetime.now(timezone.utc)
        if attachments:
            result = await self._chat_api.send_message_with_attachments(
                message,
                attachments,
                chat_id=chat_id,
                model=prefs.selected_model,
                enabled_tools=prefs.enabled_tools,
            )
        else:
            result = await self._chat_api.send_message(
                message,
                chat_id=chat_id,
                model=prefs.selected_model,
                enabled_tools=prefs.enabled_tools,
            )

        user_message = ChatMessage(
            id=str(uuid.uuid4()),
            role="user",
            content=message,
            timestamp=sent_at,
            attachments=result.attachments,
        )
        reply = ChatMessage(
            id=str(uuid.uuid4()),
            role="assistant",
            content=result.response,
            timestamp=datetime.now(timezone.utc),
            model=result.model or prefs.selected_model,
            tools_used=result.tools_used,
        )

        if self._conversations.current_chat_id == result.chat_id:
            self._conversations.add_message(user_message)
            self._conversations.add_message(reply)
        else:
            self._conversations.show_chat(result.chat_id, [user_message, reply])

        try:
            await self._conversations.load_chats()
        except ChatClientError as e:
            # The reply is already recorded; the store keeps the error in last_error
            logger.warning("Chat list refresh after send failed: %s", e)

        return reply


class OpenChatUseCase:
    """Load a chat's transcript and make it the open chat."""

    def __init__(
        self,
        sessions: SessionManager,
        conversations: ConversationStore,
        chat_api: ChatApi,
    ) -> None:
        self._sessions = sessions
        self._conversations = conversations
        self._chat_api = chat_api

    @traced(name="chat.open")
    async def execute(self, chat_id: str) -> ChatTranscript:
        if self._sessions.session is None:
            raise AuthRequired()
        transcript = await self._chat_api.get_chat(chat_id)
        self._conversations.show_chat(transcript.id, transcript.messages)
        return transcript
