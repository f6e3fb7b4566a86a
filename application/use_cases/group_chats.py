"""Derive the sidebar grouping: chats bucketed by project.

Pure functions, no I/O. Recomputed on every read and never cached.
"""

from typing import Dict, Iterable, List, Sequence, Tuple

from application.models import UNGROUPED, Chat, Project


def group_chats(
    chats: Sequence[Chat], projects: Iterable[Project]
) -> Dict[str, Tuple[Chat, ...]]:
    """Bucket ``chats`` by project id.

    Keys are ``UNGROUPED`` plus every project id, in project order, each
    present even when empty. A chat whose project_id names no known
    project lands in ``UNGROUPED``, so every chat appears in exactly one
    group. The chats' relative order is preserved inside each group.
    """
    buckets: Dict[str, List[Chat]] = {UNGROUPED: []}
    for project in projects:
        buckets.setdefault(project.id, [])

    for chat in chats:
        key = chat.project_id if chat.project_id in buckets else UNGROUPED
        buckets[key].append(chat)

    return {key: tuple(members) for key, members in buckets.items()}


def sort_chats(chats: Iterable[Chat]) -> Tuple[Chat, ...]:
    """Most recently updated first."""
    return tuple(sorted(chats, key=lambda chat: chat.updated_at, reverse=True))


def sort_projects(projects: Iterable[Project]) -> Tuple[Project, ...]:
    """Newest first."""
    return tuple(sorted(projects, key=lambda project: project.created_at, reverse=True))
