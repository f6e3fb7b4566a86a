"""
HTTP client for the chat message backend.

Wraps the backend's REST endpoints:
- POST   /api/chat                          send a message (JSON or multipart)
- GET    /api/chat/{chat_id}                fetch a transcript
- GET    /api/chats/{user_id}               list a user's chats
- DELETE /api/chat/{chat_id}                delete a chat
- GET    /api/tools                         list available tools
- PUT    /api/tools/preferences             store enabled tools
- GET    /api/health                        liveness
- GET    /api/attachments/{id}/download     raw attachment bytes

Requests carry the current session's access token as a bearer token.
"""

import asyncio
import json
import logging
import mimetypes
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import httpx

from application.errors import AuthError, NotFoundError, RemoteError, ValidationError
from application.models import ChatTranscript, SendMessageResult

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Optional[str]]


def _read_attachments(attachments: Sequence[Path]) -> List[Tuple[str, Tuple[str, bytes, str]]]:
    """Read attachment files into multipart tuples; unreadable files raise ValidationError."""
    files = []
    for path in attachments:
        path = Path(path)
        mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        try:
            content = path.read_bytes()
        except OSError as e:
            raise ValidationError(f"Cannot read attachment {path.name}: {e}") from e
        files.append(("attachments", (path.name, content, mime_type)))
    return files


class HttpChatApiClient:
    """Async chat API client backed by a shared ``httpx.AsyncClient``."""

    def __init__(
        self,
        base_url: str,
        token_provider: Optional[TokenProvider] = None,
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._token_provider = token_provider or (lambda: None)
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self) -> Dict[str, str]:
        token = self._token_provider()
        return {"Authorization": f"Bearer {token}"} if token else {}

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(
                method, path, headers=self._headers(), **kwargs
            )
        except httpx.HTTPError as e:
            logger.error("Chat API %s %s failed: %s", method, path, e)
            raise RemoteError(f"Chat API request failed: {e}") from e

        if response.status_code == 401:
            raise AuthError("Session expired or not authorized")
        if response.status_code == 404:
            raise NotFoundError(f"{path} not found")
        if response.is_error:
            logger.error(
                "Chat API %s %s returned %s", method, path, response.status_code
            )
            raise RemoteError(
                f"Chat API returned {response.status_code} for {method} {path}"
            )
        return response

    async def send_message(
        self,
        message: str,
        chat_id: Optional[str] = None,
        model: Optional[str] = None,
        enabled_tools: Optional[List[str]] = None,
    ) -> SendMessageResult:
        payload = {
            "message": message,
            "chatId": chat_id,
            "model": model,
            "enabledTools": enabled_tools or [],
        }
        response = await self._request("POST", "/api/chat", json=payload)
        return SendMessageResult.model_validate(response.json())

    async def send_message_with_attachments(
        self,
        message: str,
        attachments: Sequence[Path],
        chat_id: Optional[str] = None,
        model: Optional[str] = None,
        enabled_tools: Optional[List[str]] = None,
    ) -> SendMessageResult:
        data = {"message": message, "enabledTools": json.dumps(enabled_tools or [])}
        if chat_id:
            data["chatId"] = chat_id
        if model:
            data["model"] = model

        files = await asyncio.to_thread(_read_attachments, attachments)

        response = await self._request("POST", "/api/chat", data=data, files=files)
        return SendMessageResult.model_validate(response.json())

    async def get_chat(self, chat_id: str) -> ChatTranscript:
        response = await self._request("GET", f"/api/chat/{chat_id}")
        return ChatTranscript.model_validate(response.json())

    async def get_user_chats(self, user_id: str) -> List[Dict[str, Any]]:
        response = await self._request("GET", f"/api/chats/{user_id}")
        return response.json()

    async def delete_chat(self, chat_id: str) -> None:
        await self._request("DELETE", f"/api/chat/{chat_id}")

    async def get_available_tools(self) -> List[Dict[str, Any]]:
        response = await self._request("GET", "/api/tools")
        return response.json()

    async def update_tool_preferences(self, enabled_tools: List[str]) -> None:
        await self._request(
            "PUT", "/api/tools/preferences", json={"enabledTools": enabled_tools}
        )

    async def get_health(self) -> Dict[str, Any]:
        response = await self._request("GET", "/api/health")
        return response.json()

    async def download_attachment(self, attachment_id: str) -> bytes:
        response = await self._request(
            "GET", f"/api/attachments/{attachment_id}/download"
        )
        return response.content
