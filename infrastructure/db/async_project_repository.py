"""Async Supabase implementation of ProjectRepository."""

from typing import List, Optional

from supabase import AsyncClient

from application.errors import RemoteError
from application.models import Project
from infrastructure.db.supabase_errors import execute, parse_first, parse_rows


class AsyncSupabaseProjectRepository:
    """Async Supabase-backed project repository."""

    TABLE = "projects"

    def __init__(self, client: AsyncClient) -> None:
        self._client = client

    async def list_for_user(self, user_id: str) -> List[Project]:
        result = await execute(
            self._client.table(self.TABLE)
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True),
            "load projects",
        )
        return parse_rows(Project, result.data, "load projects")

    async def create(self, user_id: str, name: str) -> Project:
        result = await execute(
            self._client.table(self.TABLE).insert({"name": name, "user_id": user_id}),
            "create project",
        )
        project = parse_first(Project, result.data, "create project")
        if project is None:
            raise RemoteError("create project returned no row")
        return project

    async def rename(self, project_id: str, user_id: str, name: str) -> Optional[Project]:
        result = await execute(
            self._client.table(self.TABLE)
            .update({"name": name})
            .eq("id", project_id)
            .eq("user_id", user_id),
            "rename project",
        )
        return parse_first(Project, result.data, "rename project")

    async def delete(self, project_id: str, user_id: str) -> bool:
        result = await execute(
            self._client.table(self.TABLE)
            .delete()
            .eq("id", project_id)
            .eq("user_id", user_id),
            "delete project",
        )
        return len(result.data) > 0 if result.data else False
