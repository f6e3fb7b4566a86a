"""Tests for ConversationStore.

Covers loading, project CRUD, chat relocation/deletion, the derived
grouping, failure semantics and session-scoped reset.
"""

import asyncio

import pytest

from application.errors import AuthRequired, NotFoundError, RemoteError, ValidationError
from application.models import UNGROUPED, ChatMessage
from application.use_cases.conversation_store import ConversationStore
from tests.fakes import TEST_USER_ID, BASE_TIME, make_session


async def sign_in(sessions):
    await sessions.sign_in_with_password("a@b.com", "secret")


async def loaded(store, sessions):
    await sign_in(sessions)
    await store.load_chats()
    await store.load_projects()
    return store


def group_of(snapshot, chat_id):
    return [key for key, chats in snapshot.groups.items() if any(c.id == chat_id for c in chats)]


class TestAuthRequired:
    """Every operation needs a resolved session."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "call",
        [
            lambda s: s.load_chats(),
            lambda s: s.load_projects(),
            lambda s: s.create_project("Research"),
            lambda s: s.update_project("proj-1", "New"),
            lambda s: s.delete_project("proj-1"),
            lambda s: s.move_chat_to_project("chat-1", None),
            lambda s: s.delete_chat("chat-1"),
        ],
    )
    async def test_fails_fast_without_remote_call(self, store, chat_repo, project_repo, call):
        with pytest.raises(AuthRequired):
            await call(store)

        assert chat_repo.calls == []
        assert project_repo.calls == []


class TestLoading:
    """Tests for load_chats() / load_projects()."""

    @pytest.mark.asyncio
    async def test_load_chats_filters_by_signed_in_user(self, store, sessions, chat_repo):
        await sign_in(sessions)

        chats = await store.load_chats()

        assert chat_repo.calls == [("list_for_user", TEST_USER_ID)]
        assert [c.id for c in chats] == ["chat-3", "chat-2", "chat-1"]

    @pytest.mark.asyncio
    async def test_load_projects_sorted_newest_first(self, store, sessions):
        await sign_in(sessions)

        projects = await store.load_projects()

        assert [p.id for p in projects] == ["proj-2", "proj-1"]

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_list(self, store, sessions, chat_repo):
        """Stale-but-present beats empty."""
        await loaded(store, sessions)
        chat_repo.fail_next = RemoteError("store unavailable")

        with pytest.raises(RemoteError):
            await store.load_chats()

        assert len(store.chats) == 3
        assert store.last_error == "store unavailable"

    @pytest.mark.asyncio
    async def test_successful_retry_clears_error(self, store, sessions, chat_repo):
        await sign_in(sessions)
        chat_repo.fail_next = RemoteError("blip")
        with pytest.raises(RemoteError):
            await store.load_chats()

        await store.load_chats()

        assert store.last_error is None
        assert len(store.chats) == 3

    @pytest.mark.asyncio
    async def test_result_discarded_if_signed_out_meanwhile(self, store, sessions, provider):
        """A load that resolves after sign-out must not repopulate state."""
        await sessions.initialize()
        await sign_in(sessions)

        task = asyncio.create_task(store.load_chats())
        await asyncio.sleep(0)
        provider.push(None)
        await task

        assert store.chats == ()


class TestCreateProject:
    """Tests for create_project()."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["", "   ", "\t\n"])
    async def test_blank_name_never_reaches_remote(self, store, sessions, project_repo, name):
        await sign_in(sessions)

        with pytest.raises(ValidationError):
            await store.create_project(name)

        assert project_repo.calls == []

    @pytest.mark.asyncio
    async def test_appends_trimmed_project(self, store, sessions, project_repo):
        await loaded(store, sessions)
        project_repo.calls.clear()

        project = await store.create_project("  Ideas  ")

        assert project.name == "Ideas"
        assert project_repo.calls == [("create", TEST_USER_ID, "Ideas")]
        assert project in store.projects
        assert len(store.projects) == 3
        # Appended locally, no reload
        assert ("list_for_user", TEST_USER_ID) not in project_repo.calls

    @pytest.mark.asyncio
    async def test_remote_failure_leaves_list_unchanged(self, store, sessions, project_repo):
        await loaded(store, sessions)
        before = store.projects
        project_repo.fail_next = RemoteError("insert failed")

        with pytest.raises(RemoteError):
            await store.create_project("Ideas")

        assert store.projects == before


class TestUpdateProject:
    """Tests for update_project()."""

    @pytest.mark.asyncio
    async def test_renames_after_remote_success(self, store, sessions):
        await loaded(store, sessions)

        await store.update_project("proj-1", "Deep Research")

        assert store.snapshot().project_name("proj-1") == "Deep Research"

    @pytest.mark.asyncio
    async def test_remote_failure_keeps_name(self, store, sessions, project_repo):
        await loaded(store, sessions)
        project_repo.fail_next = RemoteError("update failed")

        with pytest.raises(RemoteError):
            await store.update_project("proj-1", "Renamed")

        assert store.snapshot().project_name("proj-1") == "Research"

    @pytest.mark.asyncio
    async def test_no_local_change_before_remote_resolves(self, store, sessions):
        await loaded(store, sessions)

        task = asyncio.create_task(store.update_project("proj-1", "Renamed"))
        await asyncio.sleep(0)
        assert store.snapshot().project_name("proj-1") == "Research"

        await task
        assert store.snapshot().project_name("proj-1") == "Renamed"

    @pytest.mark.asyncio
    async def test_unknown_project_raises_not_found(self, store, sessions):
        await loaded(store, sessions)

        with pytest.raises(NotFoundError):
            await store.update_project("missing", "Name")

    @pytest.mark.asyncio
    async def test_blank_rename_rejected(self, store, sessions, project_repo):
        await loaded(store, sessions)
        project_repo.calls.clear()

        with pytest.raises(ValidationError):
            await store.update_project("proj-1", "  ")

        assert project_repo.calls == []


class TestDeleteProject:
    """Tests for delete_project()."""

    @pytest.mark.asyncio
    async def test_detaches_chats_and_removes_project_atomically(self, store, sessions):
        await loaded(store, sessions)
        snapshots = []
        store.add_listener(snapshots.append)

        await store.delete_project("proj-1")

        assert "proj-1" not in [p.id for p in store.projects]
        chats = {c.id: c for c in store.chats}
        assert chats["chat-2"].project_id is None
        assert chats["chat-3"].project_id is None

        # Exactly one visible change, already consistent
        assert len(snapshots) == 1
        for snap in snapshots:
            project_ids = {p.id for p in snap.projects}
            assert all(c.project_id in project_ids or c.project_id is None for c in snap.chats)

    @pytest.mark.asyncio
    async def test_detach_runs_before_delete(self, store, sessions, chat_repo, project_repo):
        await loaded(store, sessions)

        await store.delete_project("proj-1")

        assert ("detach_project", "proj-1", TEST_USER_ID) in chat_repo.calls
        assert ("delete", "proj-1", TEST_USER_ID) in project_repo.calls
        # Detached rows survive remotely
        assert chat_repo.rows["chat-2"].project_id is None

    @pytest.mark.asyncio
    async def test_detach_failure_skips_delete(self, store, sessions, chat_repo, project_repo):
        await loaded(store, sessions)
        before = store.snapshot()
        chat_repo.fail_next = RemoteError("detach failed")

        with pytest.raises(RemoteError):
            await store.delete_project("proj-1")

        assert not any(call[0] == "delete" for call in project_repo.calls)
        assert store.projects == before.projects
        assert store.chats == before.chats

    @pytest.mark.asyncio
    async def test_chats_move_to_ungrouped(self, store, sessions):
        await loaded(store, sessions)

        await store.delete_project("proj-1")

        groups = store.groups()
        assert "proj-1" not in groups
        assert {c.id for c in groups[UNGROUPED]} == {"chat-1", "chat-2", "chat-3"}


class TestMoveChat:
    """Tests for move_chat_to_project()."""

    @pytest.mark.asyncio
    async def test_move_then_ungroup_never_in_two_groups(self, store, sessions):
        await loaded(store, sessions)
        snapshots = []
        store.add_listener(snapshots.append)

        await store.move_chat_to_project("chat-1", "proj-2")
        assert group_of(store.snapshot(), "chat-1") == ["proj-2"]

        await store.move_chat_to_project("chat-1", None)

        assert group_of(store.snapshot(), "chat-1") == [UNGROUPED]
        assert all(len(group_of(snap, "chat-1")) == 1 for snap in snapshots)

    @pytest.mark.asyncio
    async def test_remote_failure_keeps_project(self, store, sessions, chat_repo):
        await loaded(store, sessions)
        chat_repo.fail_next = RemoteError("update failed")

        with pytest.raises(RemoteError):
            await store.move_chat_to_project("chat-2", "proj-2")

        assert {c.id: c for c in store.chats}["chat-2"].project_id == "proj-1"

    @pytest.mark.asyncio
    async def test_move_before_projects_loaded(self, store, sessions, chat_repo):
        """A project not yet loaded locally is still a valid target."""
        await sign_in(sessions)
        await store.load_chats()
        assert store.projects == ()

        await store.move_chat_to_project("chat-1", "proj-2")

        assert ("set_project", "chat-1", TEST_USER_ID, "proj-2") in chat_repo.calls
        assert {c.id: c for c in store.chats}["chat-1"].project_id == "proj-2"

    @pytest.mark.asyncio
    async def test_project_rejected_by_store_surfaces_remote_error(
        self, store, sessions, chat_repo
    ):
        await loaded(store, sessions)
        chat_repo.fail_next = RemoteError("move chat failed: violates foreign key constraint")

        with pytest.raises(RemoteError):
            await store.move_chat_to_project("chat-1", "proj-deleted")

        assert {c.id: c for c in store.chats}["chat-1"].project_id is None
        assert "foreign key" in store.last_error

    @pytest.mark.asyncio
    async def test_missing_chat_raises_not_found(self, store, sessions):
        await loaded(store, sessions)

        with pytest.raises(NotFoundError):
            await store.move_chat_to_project("chat-404", None)


class TestDeleteChat:
    """Tests for delete_chat()."""

    @pytest.mark.asyncio
    async def test_removes_chat_and_closes_it(self, store, sessions):
        await loaded(store, sessions)
        message = ChatMessage(id="m1", role="user", content="hi", timestamp=BASE_TIME)
        store.show_chat("chat-1", [message])

        await store.delete_chat("chat-1")

        assert "chat-1" not in [c.id for c in store.chats]
        assert store.current_chat_id is None
        assert store.messages == ()

    @pytest.mark.asyncio
    async def test_missing_chat_raises_not_found(self, store, sessions):
        await loaded(store, sessions)

        with pytest.raises(NotFoundError):
            await store.delete_chat("chat-404")

        assert len(store.chats) == 3


class TestSessionScope:
    """State is discarded when the session ends or changes owner."""

    @pytest.mark.asyncio
    async def test_sign_out_resets_state(self, store, sessions):
        await loaded(store, sessions)
        store.show_chat("chat-1", [])

        await sessions.sign_out()

        assert store.chats == ()
        assert store.projects == ()
        assert store.current_chat_id is None

    @pytest.mark.asyncio
    async def test_switching_user_resets_state(self, store, sessions, provider):
        await sessions.initialize()
        await loaded(store, sessions)

        provider.push(make_session("someone-else"))

        assert store.chats == ()

    @pytest.mark.asyncio
    async def test_token_refresh_for_same_user_keeps_state(self, store, sessions, provider):
        await sessions.initialize()
        await loaded(store, sessions)

        provider.push(make_session(TEST_USER_ID))

        assert len(store.chats) == 3


class TestSnapshotAndPreferences:
    """Tests for snapshot() and preference setters."""

    @pytest.mark.asyncio
    async def test_snapshot_groups_are_read_only(self, store, sessions):
        await loaded(store, sessions)

        snapshot = store.snapshot()

        with pytest.raises(TypeError):
            snapshot.groups["x"] = ()
        assert isinstance(snapshot.chats, tuple)

    def test_selected_model_must_be_available(self, store, preferences):
        with pytest.raises(ValidationError):
            store.set_selected_model("not-a-model")

        prefs = store.set_selected_model("gpt-4o-mini")

        assert prefs.selected_model == "gpt-4o-mini"
        assert preferences.prefs.selected_model == "gpt-4o-mini"

    def test_enabled_tools_deduplicated(self, store):
        prefs = store.set_enabled_tools(["web", "code", "web"])

        assert prefs.enabled_tools == ["web", "code"]

    def test_sidebar_flag_persisted(self, store, preferences):
        store.set_sidebar_open(False)

        assert preferences.prefs.sidebar_open is False

    def test_preferences_loaded_at_construction(self, sessions, chat_repo, project_repo, preferences):
        preferences.update(selected_model="gpt-4.1")

        store = ConversationStore(sessions, chat_repo, project_repo, preferences)

        assert store.preferences.selected_model == "gpt-4.1"

    @pytest.mark.asyncio
    async def test_auth_flag_visible_through_store(self, store, sessions):
        """Preferences written by the session manager show up in the store."""
        assert store.preferences.was_authenticated is False

        await sign_in(sessions)
        assert store.preferences.was_authenticated is True

        await sessions.sign_out()
        assert store.preferences.was_authenticated is False

    @pytest.mark.asyncio
    async def test_auth_flag_refresh_keeps_other_preferences(self, store, sessions):
        store.set_selected_model("gpt-4.1")

        await sign_in(sessions)

        assert store.preferences.selected_model == "gpt-4.1"
        assert store.preferences.was_authenticated is True
