"""Tests for the optimistic drag controller.

A fake in-memory store records what the board looked like when each store
call started, can be told to fail, and can be held open with an
``asyncio.Event`` to exercise the single in-flight drop rule.
"""

from __future__ import annotations

import asyncio
from typing import Optional, Sequence

import pytest
from loguru import logger

from stash.db.models import Folder, Resource, ResourceType
from stash.drag.controller import (
    MSG_BUSY,
    MSG_COPIED,
    MSG_CREATE_FAILED,
    MSG_FAILED,
    MSG_FOLDER_CREATED,
    MSG_FOLDER_MOVED,
    MSG_MOVED,
    BoardState,
    DragController,
    DropOutcome,
)
from stash.drag.session import IDLE


# ---------------------------------------------------------------------------
# Fixtures / helpers
# ---------------------------------------------------------------------------

def _resource(rid: str, rtype: ResourceType = ResourceType.LINK) -> Resource:
    return Resource(id=rid, user_id="u1", type=rtype, title=rid, created_at=1, updated_at=1)


def _folder(fid: str, rtype: ResourceType = ResourceType.LINK, parent_id: str | None = None) -> Folder:
    return Folder(
        id=fid, user_id="u1", name=fid, resource_type=rtype,
        created_at=1, updated_at=1, parent_id=parent_id,
    )


class FakeStore:
    def __init__(self, state: BoardState, fail: bool = False) -> None:
        self.state = state
        self.fail = fail
        self.gate: Optional[asyncio.Event] = None
        self.calls: list[tuple] = []
        self.seen_resources: list[list[str]] = []
        self.seen_folders: list[list[str]] = []

    async def _call(self, *call):
        self.calls.append(call)
        self.seen_resources.append([r.id for r in self.state.resources])
        self.seen_folders.append([f.id for f in self.state.folders])
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise RuntimeError("store unavailable")

    async def create_folder_from_resources(
        self,
        user_id: str,
        resource_ids: Sequence[str],
        resources: Sequence[Resource],
        name=None,
        parent_id=None,
    ) -> Folder:
        await self._call("create", user_id, list(resource_ids), name, parent_id)
        return _folder("real-folder", resources[0].type, parent_id=parent_id)

    async def move_resource_to_folder(self, resource_id, folder_id):
        await self._call("move_resource", resource_id, folder_id)

    async def copy_resource_to_folder(self, resource_id, folder_id):
        await self._call("copy_resource", resource_id, folder_id)

    async def move_folder_to_folder(self, folder_id, target_folder_id):
        await self._call("move_folder", folder_id, target_folder_id)


@pytest.fixture()
def board():
    state = BoardState(
        resources=[
            _resource("r1"), _resource("r2"), _resource("r3"),
            _resource("img", ResourceType.IMAGE),
        ],
        folders=[_folder("f1"), _folder("f2"), _folder("fimg", ResourceType.IMAGE)],
    )
    store = FakeStore(state)
    messages: dict[str, list] = {"success": [], "error": [], "refresh": []}
    controller = DragController(
        "u1",
        store,
        state,
        on_success=messages["success"].append,
        on_error=messages["error"].append,
        on_refresh=lambda: messages["refresh"].append(True),
    )
    return controller, store, state, messages


def _ids(items) -> list[str]:
    return [i.id for i in items]


# ---------------------------------------------------------------------------
# Resource on resource: new folder
# ---------------------------------------------------------------------------

class TestMerge:
    async def test_success_replaces_placeholder(self, board):
        controller, store, state, messages = board
        r1, r2 = state.resources[0], state.resources[1]
        controller.drag_start(r1)
        controller.drag_enter_resource(r2)

        outcome = await controller.drop()

        assert outcome == DropOutcome.COMMITTED
        assert _ids(state.resources) == ["r3", "img"]
        assert _ids(state.folders) == ["real-folder", "f1", "f2", "fimg"]
        assert messages["success"] == [MSG_FOLDER_CREATED]
        assert store.calls[0] == ("create", "u1", ["r1", "r2"], "New folder", None)
        assert controller.session == IDLE

    async def test_local_change_visible_before_store_call(self, board):
        controller, store, state, _ = board
        controller.drag_start(state.resources[0])
        controller.drag_enter_resource(state.resources[1])
        await controller.drop()

        assert store.seen_resources[0] == ["r3", "img"]
        placeholder = store.seen_folders[0][0]
        assert placeholder.startswith("temp-")
        assert store.seen_folders[0][1:] == ["f1", "f2", "fimg"]

    async def test_failure_restores_both_lists(self, board):
        controller, store, state, messages = board
        store.fail = True
        before_resources = list(state.resources)
        before_folders = list(state.folders)
        controller.drag_start(state.resources[0])
        controller.drag_enter_resource(state.resources[1])

        outcome = await controller.drop()

        assert outcome == DropOutcome.ROLLED_BACK
        assert state.resources == before_resources
        assert state.folders == before_folders
        assert messages["error"] == [MSG_CREATE_FAILED]
        assert messages["success"] == []
        assert controller.session == IDLE

    async def test_mixed_types_not_droppable(self, board):
        controller, store, state, messages = board
        controller.drag_start(state.resources[0])
        controller.drag_enter_resource(state.resources[3])

        assert await controller.drop() == DropOutcome.IGNORED
        assert store.calls == []
        assert messages == {"success": [], "error": [], "refresh": []}

    async def test_sub_level_merge_keeps_parent(self):
        parent = _folder("p")
        state = BoardState(resources=[_resource("a"), _resource("b")])
        store = FakeStore(state)
        controller = DragController("u1", store, state, folder_id=parent.id)
        controller.drag_start(state.resources[0])
        controller.drag_enter_resource(state.resources[1])

        placeholders: list[Folder] = []
        original_call = store._call

        async def capture(*call):
            placeholders.extend(state.folders)
            await original_call(*call)

        store._call = capture
        assert await controller.drop() == DropOutcome.COMMITTED

        assert placeholders[0].parent_id == "p"
        assert store.calls[0][-1] == "p"
        assert state.folders[0].parent_id == "p"

    @pytest.mark.parametrize("rtype", [ResourceType.LINK, ResourceType.IMAGE])
    async def test_merge_is_symmetric(self, rtype):
        outcomes = []
        for dragged, target in (("a", "b"), ("b", "a")):
            state = BoardState(resources=[_resource("a", rtype), _resource("b", rtype)])
            store = FakeStore(state)
            placeholder_types: list[ResourceType] = []
            original_call = store._call

            async def capture(*call, state=state, seen=placeholder_types, inner=original_call):
                seen.extend(f.resource_type for f in state.folders)
                await inner(*call)

            store._call = capture
            controller = DragController("u1", store, state)
            by_id = {r.id: r for r in state.resources}
            controller.drag_start(by_id[dragged])
            controller.drag_enter_resource(by_id[target])

            assert await controller.drop() == DropOutcome.COMMITTED
            outcomes.append((set(store.calls[0][2]), placeholder_types[0], state.resources))

        (members_ab, type_ab, left_ab), (members_ba, type_ba, left_ba) = outcomes
        assert members_ab == members_ba == {"a", "b"}
        assert type_ab == type_ba == rtype
        assert left_ab == left_ba == []


# ---------------------------------------------------------------------------
# Resource on folder: move / copy
# ---------------------------------------------------------------------------

class TestResourceIntoFolder:
    async def test_move_removes_card_first(self, board):
        controller, store, state, messages = board
        controller.drag_start(state.resources[0])
        controller.drag_enter_folder(state.folders[0])

        assert await controller.drop() == DropOutcome.COMMITTED
        assert store.seen_resources[0] == ["r2", "r3", "img"]
        assert store.calls == [("move_resource", "r1", "f1")]
        assert messages["success"] == [MSG_MOVED]

    async def test_move_failure_puts_card_back_in_place(self, board):
        controller, store, state, messages = board
        store.fail = True
        before = _ids(state.resources)
        controller.drag_start(state.resources[1])
        controller.drag_enter_folder(state.folders[0])

        assert await controller.drop() == DropOutcome.ROLLED_BACK
        assert _ids(state.resources) == before
        assert messages["error"] == [MSG_FAILED]

    async def test_copy_leaves_lists_and_refreshes(self, board):
        controller, store, state, messages = board
        before = _ids(state.resources)
        controller.drag_start(state.resources[0], copy_key=False)
        controller.drag(15, 15, copy_key=True)
        controller.drag_enter_folder(state.folders[1])

        assert await controller.drop() == DropOutcome.COMMITTED
        assert _ids(state.resources) == before
        assert store.calls == [("copy_resource", "r1", "f2")]
        assert messages["success"] == [MSG_COPIED]
        assert messages["refresh"] == [True]

    async def test_type_mismatch_not_droppable(self, board):
        controller, store, state, _ = board
        controller.drag_start(state.resources[3])  # image
        controller.drag_enter_folder(state.folders[0])  # link folder

        assert controller.session.reason == "this folder only accepts Link resources"
        assert await controller.drop() == DropOutcome.IGNORED
        assert store.calls == []


# ---------------------------------------------------------------------------
# Folder on folder
# ---------------------------------------------------------------------------

class TestFolderIntoFolder:
    async def test_move_folder(self, board):
        controller, store, state, messages = board
        controller.folder_drag_start(state.folders[0])
        controller.drag_enter_folder(state.folders[1])

        assert await controller.drop() == DropOutcome.COMMITTED
        assert store.seen_folders[0] == ["f2", "fimg"]
        assert store.calls == [("move_folder", "f1", "f2")]
        assert messages["success"] == [MSG_FOLDER_MOVED]

    async def test_move_folder_failure_restores(self, board):
        controller, store, state, messages = board
        store.fail = True
        controller.folder_drag_start(state.folders[0])
        controller.drag_enter_folder(state.folders[1])

        assert await controller.drop() == DropOutcome.ROLLED_BACK
        assert _ids(state.folders) == ["f1", "f2", "fimg"]
        assert messages["error"] == [MSG_FAILED]

    async def test_descendant_from_folder_index(self):
        g = _folder("g")
        h = _folder("h", parent_id="g")
        k = _folder("k", parent_id="h")
        state = BoardState(folders=[g, k])  # h is not on this board
        store = FakeStore(state)
        controller = DragController("u1", store, state, folder_index=lambda: [g, h, k])

        controller.folder_drag_start(g)
        controller.drag_enter_folder(k)

        assert controller.session.can_drop is False
        assert await controller.drop() == DropOutcome.IGNORED
        assert store.calls == []


# ---------------------------------------------------------------------------
# Session handling
# ---------------------------------------------------------------------------

class TestSessionHandling:
    async def test_drop_without_target_is_ignored(self, board):
        controller, store, state, _ = board
        controller.drag_start(state.resources[0])
        assert await controller.drop() == DropOutcome.IGNORED
        assert controller.session == IDLE

    async def test_leave_then_drop_does_nothing(self, board):
        controller, store, state, _ = board
        controller.drag_start(state.resources[0])
        controller.drag_enter_folder(state.folders[0])
        controller.drag_leave()
        assert await controller.drop() == DropOutcome.IGNORED
        assert store.calls == []

    async def test_drag_end_has_no_side_effects(self, board):
        controller, store, state, messages = board
        before = (_ids(state.resources), _ids(state.folders))
        controller.drag_start(state.resources[0])
        controller.drag_enter_resource(state.resources[1])
        controller.drag_end()
        assert controller.session == IDLE
        assert (_ids(state.resources), _ids(state.folders)) == before
        assert store.calls == []


class TestSingleInFlight:
    async def test_second_drop_refused_while_pending(self, board):
        controller, store, state, messages = board
        store.gate = asyncio.Event()

        controller.drag_start(state.resources[0])
        controller.drag_enter_folder(state.folders[0])
        first = asyncio.create_task(controller.drop())
        await asyncio.sleep(0)
        assert controller.busy

        controller.drag_start(state.resources[1])
        controller.drag_enter_folder(state.folders[1])
        second = await controller.drop()

        assert second == DropOutcome.REFUSED
        assert messages["error"] == [MSG_BUSY]
        assert _ids(state.resources) == ["r2", "r3", "img"]

        store.gate.set()
        assert await first == DropOutcome.COMMITTED
        assert not controller.busy
        assert len(store.calls) == 1


class TestErrorLogging:
    @pytest.fixture()
    def log_lines(self):
        lines: list[str] = []
        sink_id = logger.add(lines.append, level="WARNING", format="{level} {message}")
        yield lines
        logger.remove(sink_id)

    async def test_failure_logged_with_cause(self, board, log_lines):
        controller, store, state, messages = board
        store.fail = True
        controller.drag_start(state.resources[0])
        controller.drag_enter_folder(state.folders[0])

        await controller.drop()

        assert messages["error"] == [MSG_FAILED]
        assert len(log_lines) == 1
        assert log_lines[0].startswith(f"ERROR [u1] {MSG_FAILED}: RuntimeError")

    async def test_refusal_logged_as_warning(self, board, log_lines):
        controller, store, state, _ = board
        store.gate = asyncio.Event()
        controller.drag_start(state.resources[0])
        controller.drag_enter_folder(state.folders[0])
        first = asyncio.create_task(controller.drop())
        await asyncio.sleep(0)

        controller.drag_start(state.resources[1])
        controller.drag_enter_folder(state.folders[1])
        await controller.drop()
        store.gate.set()
        await first

        assert [line.strip() for line in log_lines] == [f"WARNING [u1] {MSG_BUSY}"]
