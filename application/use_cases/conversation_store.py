"""Conversation store: the signed-in user's chats and projects.

Part of the session/conversation synchronization layer.

Every mutation is persist-then-mutate: the remote write happens first and
local state changes only after it succeeds, so a failed call leaves the
held state untouched and no rollback path is needed. Each local change is
one assignment step with no await in between, and listeners fire once per
change with a complete snapshot.

Two overlapping ``load_chats()`` (or ``load_projects()``) calls are not
coalesced: whichever response resolves last overwrites the list.
"""

import logging
from types import MappingProxyType
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from application.errors import (
    AuthRequired,
    ChatClientError,
    NotFoundError,
    ValidationError,
)
from application.models import (
    AVAILABLE_MODELS,
    Chat,
    ChatMessage,
    ConversationSnapshot,
    Preferences,
    Project,
    Session,
)
from application.ports.chat_repository import ChatRepository
from application.ports.preferences_repository import PreferencesRepository
from application.ports.project_repository import ProjectRepository
from application.use_cases.group_chats import group_chats, sort_chats, sort_projects
from application.use_cases.session_manager import SessionManager
from backend.observability import add_span_attributes, record_operation, traced

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[ConversationSnapshot], None]


class ConversationStore:
    """Holds chats, projects and the open chat's messages for the current user."""

    def __init__(
        self,
        sessions: SessionManager,
        chats: ChatRepository,
        projects: ProjectRepository,
        preferences: PreferencesRepository,
        available_models: Sequence[str] = AVAILABLE_MODELS,
    ) -> None:
        self._sessions = sessions
        self._chat_repo = chats
        self._project_repo = projects
        self._preferences_repo = preferences
        self._available_models = tuple(available_models)

        self._chats: Tuple[Chat, ...] = ()
        self._projects: Tuple[Project, ...] = ()
        self._messages: Tuple[ChatMessage, ...] = ()
        self._current_chat_id: Optional[str] = None
        self._last_error: Optional[str] = None
        self._preferences = preferences.load()

        self._owner_id: Optional[str] = sessions.session.user_id if sessions.session else None
        self._listeners: List[SnapshotListener] = []
        self._unsubscribe_session = sessions.add_listener(self._on_session_change)

    # -------------------------------------------------------------------------
    # Read-only state
    # -------------------------------------------------------------------------
    @property
    def chats(self) -> Tuple[Chat, ...]:
        return sort_chats(self._chats)

    @property
    def projects(self) -> Tuple[Project, ...]:
        return sort_projects(self._projects)

    @property
    def messages(self) -> Tuple[ChatMessage, ...]:
        return self._messages

    @property
    def current_chat_id(self) -> Optional[str]:
        return self._current_chat_id

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def preferences(self) -> Preferences:
        return self._preferences

    def groups(self) -> Dict[str, Tuple[Chat, ...]]:
        """Chats bucketed by project id plus ``"ungrouped"``."""
        return group_chats(self.chats, self.projects)

    def snapshot(self) -> ConversationSnapshot:
        chats = self.chats
        projects = self.projects
        return ConversationSnapshot(
            chats=chats,
            projects=projects,
            groups=MappingProxyType(group_chats(chats, projects)),
            current_chat_id=self._current_chat_id,
            messages=self._messages,
        )

    def add_listener(self, listener: SnapshotListener) -> Callable[[], None]:
        """Call ``listener`` with a fresh snapshot after every state change."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------
    @traced(name="conversations.load_chats")
    async def load_chats(self) -> Tuple[Chat, ...]:
        """Replace the held chats with the user's chats from the store.

        On failure the previous list is kept, the error is recorded in
        ``last_error`` and re-raised.
        """
        user_id = self._require_user()
        try:
            chats = await self._chat_repo.list_for_user(user_id)
        except ChatClientError as e:
            self._record_failure("load_chats", e)
            raise
        add_span_attributes({"user.id": user_id, "chats.count": len(chats)})

        if self._is_current_user(user_id):
            self._last_error = None
            self._commit(chats=tuple(chats))
        record_operation("load_chats", "success")
        return self.chats

    @traced(name="conversations.load_projects")
    async def load_projects(self) -> Tuple[Project, ...]:
        """Replace the held projects with the user's projects from the store."""
        user_id = self._require_user()
        try:
            projects = await self._project_repo.list_for_user(user_id)
        except ChatClientError as e:
            self._record_failure("load_projects", e)
            raise
        add_span_attributes({"user.id": user_id, "projects.count": len(projects)})

        if self._is_current_user(user_id):
            self._last_error = None
            self._commit(projects=tuple(projects))
        record_operation("load_projects", "success")
        return self.projects

    # -------------------------------------------------------------------------
    # Projects
    # -------------------------------------------------------------------------
    @traced(name="conversations.create_project")
    async def create_project(self, name: str) -> Project:
        name = self._validate_project_name(name)
        user_id = self._require_user()
        try:
            project = await self._project_repo.create(user_id, name)
        except ChatClientError as e:
            self._record_failure("create_project", e)
            raise

        if self._is_current_user(user_id):
            self._commit(projects=self._projects + (project,))
        record_operation("create_project", "success")
        logger.info("Created project %s", project.id)
        return project

    @traced(name="conversations.update_project")
    async def update_project(self, project_id: str, name: str) -> Project:
        name = self._validate_project_name(name)
        user_id = self._require_user()
        try:
            project = await self._project_repo.rename(project_id, user_id, name)
        except ChatClientError as e:
            self._record_failure("update_project", e)
            raise
        if project is None:
            error = NotFoundError(f"Project {project_id} not found")
            self._record_failure("update_project", error)
            raise error

        if self._is_current_user(user_id):
            self._commit(
                projects=tuple(
                    p.model_copy(update={"name": name}) if p.id == project_id else p
                    for p in self._projects
                )
            )
        record_operation("update_project", "success")
        return project

    @traced(name="conversations.delete_project")
    async def delete_project(self, project_id: str) -> None:
        """Detach every chat from the project, then delete the project.

        The delete only runs once the detach succeeded. Locally both effects
        land in a single commit.
        """
        user_id = self._require_user()
        try:
            detached = await self._chat_repo.detach_project(project_id, user_id)
            deleted = await self._project_repo.delete(project_id, user_id)
        except ChatClientError as e:
            self._record_failure("delete_project", e)
            raise
        if not deleted:
            error = NotFoundError(f"Project {project_id} not found")
            self._record_failure("delete_project", error)
            raise error

        if self._is_current_user(user_id):
            self._commit(
                projects=tuple(p for p in self._projects if p.id != project_id),
                chats=tuple(
                    c.model_copy(update={"project_id": None})
                    if c.project_id == project_id
                    else c
                    for c in self._chats
                ),
            )
        record_operation("delete_project", "success")
        logger.info("Deleted project %s (%d chats detached)", project_id, detached)

    # -------------------------------------------------------------------------
    # Chats
    # -------------------------------------------------------------------------
    @traced(name="conversations.move_chat_to_project")
    async def move_chat_to_project(
        self, chat_id: str, project_id: Optional[str]
    ) -> None:
        """Reassign a chat's project; ``None`` moves it to ungrouped.

        The target project need not be loaded locally; the store rejects ids
        it does not know and that failure surfaces as RemoteError.
        """
        user_id = self._require_user()
        try:
            chat = await self._chat_repo.set_project(chat_id, user_id, project_id)
        except ChatClientError as e:
            self._record_failure("move_chat_to_project", e)
            raise
        if chat is None:
            error = NotFoundError(f"Chat {chat_id} not found")
            self._record_failure("move_chat_to_project", error)
            raise error

        if self._is_current_user(user_id):
            self._commit(
                chats=tuple(
                    c.model_copy(update={"project_id": project_id}) if c.id == chat_id else c
                    for c in self._chats
                )
            )
        record_operation("move_chat_to_project", "success")

    @traced(name="conversations.delete_chat")
    async def delete_chat(self, chat_id: str) -> None:
        user_id = self._require_user()
        try:
            deleted = await self._chat_repo.delete(chat_id, user_id)
        except ChatClientError as e:
            self._record_failure("delete_chat", e)
            raise
        if not deleted:
            error = NotFoundError(f"Chat {chat_id} not found")
            self._record_failure("delete_chat", error)
            raise error

        if self._is_current_user(user_id):
            changes = {"chats": tuple(c for c in self._chats if c.id != chat_id)}
            if self._current_chat_id == chat_id:
                changes.update(current_chat_id=None, messages=())
            self._commit(**changes)
        record_operation("delete_chat", "success")

    # -------------------------------------------------------------------------
    # Open chat / messages
    # -------------------------------------------------------------------------
    def show_chat(self, chat_id: Optional[str], messages: Iterable[ChatMessage]) -> None:
        """Make ``chat_id`` the open chat, showing ``messages``."""
        self._commit(current_chat_id=chat_id, messages=tuple(messages))

    def add_message(self, message: ChatMessage) -> None:
        self._commit(messages=self._messages + (message,))

    def clear_messages(self) -> None:
        """Close the open chat (start a new one)."""
        self._commit(current_chat_id=None, messages=())

    # -------------------------------------------------------------------------
    # Preferences
    # -------------------------------------------------------------------------
    @property
    def available_models(self) -> Tuple[str, ...]:
        return self._available_models

    def set_selected_model(self, model: str) -> Preferences:
        if model not in self._available_models:
            raise ValidationError(f"Unknown model {model!r}")
        return self._update_preferences(selected_model=model)

    def set_enabled_tools(self, tools: Iterable[str]) -> Preferences:
        return self._update_preferences(enabled_tools=list(dict.fromkeys(tools)))

    def set_sidebar_open(self, open_: bool) -> Preferences:
        return self._update_preferences(sidebar_open=open_)

    def _update_preferences(self, **changes) -> Preferences:
        self._preferences = self._preferences_repo.update(**changes)
        return self._preferences

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------
    def reset(self) -> None:
        """Discard every held chat, project and message."""
        self._last_error = None
        self._commit(chats=(), projects=(), messages=(), current_chat_id=None)

    def dispose(self) -> None:
        self._unsubscribe_session()
        self._listeners.clear()

    def _on_session_change(self, session: Optional[Session]) -> None:
        # SessionManager writes was_authenticated before notifying listeners
        self._preferences = self._preferences_repo.load()
        new_owner = session.user_id if session is not None else None
        if new_owner != self._owner_id:
            if self._owner_id is not None:
                logger.info("Session owner changed, discarding conversation state")
                self.reset()
            self._owner_id = new_owner

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------
    def _require_user(self) -> str:
        session = self._sessions.session
        if session is None:
            raise AuthRequired()
        return session.user_id

    def _is_current_user(self, user_id: str) -> bool:
        """False when the session changed while a remote call was in flight."""
        session = self._sessions.session
        if session is None or session.user_id != user_id:
            logger.debug("Discarding result for user %s: session changed", user_id)
            return False
        return True

    @staticmethod
    def _validate_project_name(name: Optional[str]) -> str:
        stripped = (name or "").strip()
        if not stripped:
            raise ValidationError("Project name must not be blank")
        return stripped

    def _record_failure(self, operation: str, error: Exception) -> None:
        logger.error("Error during %s: %s", operation, error)
        self._last_error = str(error)
        record_operation(operation, "error")

    def _commit(self, **changes) -> None:
        if "chats" in changes:
            self._chats = changes["chats"]
        if "projects" in changes:
            self._projects = changes["projects"]
        if "messages" in changes:
            self._messages = changes["messages"]
        if "current_chat_id" in changes:
            self._current_chat_id = changes["current_chat_id"]

        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Conversation listener failed")
