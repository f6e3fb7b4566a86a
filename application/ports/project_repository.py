"""Port interface for project row operations."""

from typing import List, Optional, Protocol

from application.models import Project


class ProjectRepository(Protocol):
    """Repository protocol for the ``projects`` table, always scoped to one user."""

    async def list_for_user(self, user_id: str) -> List[Project]:
        """List the user's projects, newest first."""
        ...

    async def create(self, user_id: str, name: str) -> Project:
        """Insert a project and return the stored row."""
        ...

    async def rename(self, project_id: str, user_id: str, name: str) -> Optional[Project]:
        """Rename a project. Returns None if not found / not owned by user."""
        ...

    async def delete(self, project_id: str, user_id: str) -> bool:
        """Delete a project. Returns False if nothing was deleted."""
        ...
