"""Port interface for chat row operations."""

from typing import List, Optional, Protocol

from application.models import Chat


class ChatRepository(Protocol):
    """Repository protocol for the ``chats`` table, always scoped to one user."""

    async def list_for_user(self, user_id: str) -> List[Chat]:
        """List the user's chats, most recently updated first."""
        ...

    async def set_project(
        self, chat_id: str, user_id: str, project_id: Optional[str]
    ) -> Optional[Chat]:
        """Point a chat at a project (or detach it with None).

        Returns:
            The updated chat, or None if no chat with that id is owned by the user.
        """
        ...

    async def detach_project(self, project_id: str, user_id: str) -> int:
        """Clear project_id on every chat referencing the project.

        Returns:
            Number of chats detached.
        """
        ...

    async def delete(self, chat_id: str, user_id: str) -> bool:
        """Delete a chat. Returns False if nothing was deleted."""
        ...
