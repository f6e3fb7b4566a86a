"""Async Supabase implementation of ChatRepository."""

from typing import List, Optional

from supabase import AsyncClient

from application.models import Chat
from infrastructure.db.supabase_errors import execute, parse_first, parse_rows


class AsyncSupabaseChatRepository:
    """Async Supabase-backed chat repository.

    Every query carries ``user_id`` so one user can never touch another's rows.
    """

    TABLE = "chats"
    COLUMNS = "id, project_id, title, created_at, updated_at"

    def __init__(self, client: AsyncClient) -> None:
        self._client = client

    async def list_for_user(self, user_id: str) -> List[Chat]:
        result = await execute(
            self._client.table(self.TABLE)
            .select(self.COLUMNS)
            .eq("user_id", user_id)
            .order("updated_at", desc=True),
            "load chats",
        )
        return parse_rows(Chat, result.data, "load chats")

    async def set_project(
        self, chat_id: str, user_id: str, project_id: Optional[str]
    ) -> Optional[Chat]:
        result = await execute(
            self._client.table(self.TABLE)
            .update({"project_id": project_id})
            .eq("id", chat_id)
            .eq("user_id", user_id),
            "move chat",
        )
        return parse_first(Chat, result.data, "move chat")

    async def detach_project(self, project_id: str, user_id: str) -> int:
        result = await execute(
            self._client.table(self.TABLE)
            .update({"project_id": None})
            .eq("project_id", project_id)
            .eq("user_id", user_id),
            "detach chats",
        )
        return len(result.data or [])

    async def delete(self, chat_id: str, user_id: str) -> bool:
        """Delete a chat if it belongs to the user.

        Returns:
            True if a chat was deleted, False if not found.
        """
        result = await execute(
            self._client.table(self.TABLE)
            .delete()
            .eq("id", chat_id)
            .eq("user_id", user_id),
            "delete chat",
        )
        return len(result.data) > 0 if result.data else False
