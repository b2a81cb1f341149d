"""Tests for the drag session state machine."""

from __future__ import annotations

from stash.db.models import Folder, Resource, ResourceType
from stash.drag.session import (
    BLANK_DRAG_IMAGE,
    IDLE,
    DraggedFolder,
    DraggedResource,
    DragPhase,
    FolderTarget,
    Point,
    ResourceTarget,
    start_folder_drag,
    start_resource_drag,
)


def _resource(rid: str, rtype: ResourceType = ResourceType.LINK) -> Resource:
    return Resource(id=rid, user_id="u1", type=rtype, title=rid, created_at=1, updated_at=1)


def _folder(fid: str, rtype: ResourceType = ResourceType.LINK, parent_id: str | None = None) -> Folder:
    return Folder(
        id=fid, user_id="u1", name=fid, resource_type=rtype,
        created_at=1, updated_at=1, parent_id=parent_id,
    )


class TestStart:
    def test_idle_defaults(self):
        assert IDLE.phase == DragPhase.IDLE
        assert not IDLE.is_dragging
        assert not IDLE.can_drop

    def test_resource_drag_hints(self):
        r = _resource("r1")
        session, hints = start_resource_drag(r, 10, 20, copy_key=True)
        assert session.phase == DragPhase.DRAGGING_RESOURCE
        assert session.dragged == DraggedResource(r)
        assert session.position == Point(10, 20)
        assert session.copy_mode is True
        assert hints.payload == "r1"
        assert hints.effect_allowed == "copyMove"
        assert hints.drag_image == BLANK_DRAG_IMAGE

    def test_folder_drag_never_copies(self):
        f = _folder("f1")
        session, hints = start_folder_drag(f, 5, 5)
        assert session.phase == DragPhase.DRAGGING_FOLDER
        assert session.dragged == DraggedFolder(f)
        assert session.copy_mode is False
        assert hints.effect_allowed == "move"


class TestMove:
    def test_zero_zero_ignored(self):
        session, _ = start_resource_drag(_resource("r1"), 10, 20)
        assert session.moved(0, 0, copy_key=True) is session

    def test_updates_position_and_copy_mode(self):
        session, _ = start_resource_drag(_resource("r1"), 10, 20)
        moved = session.moved(30, 40, copy_key=True)
        assert moved.position == Point(30, 40)
        assert moved.copy_mode is True
        assert session.position == Point(10, 20)  # original untouched

    def test_folder_drag_ignores_copy_key(self):
        session, _ = start_folder_drag(_folder("f1"))
        assert session.moved(1, 1, copy_key=True).copy_mode is False


class TestEnterResource:
    def test_same_type_shows_preview(self):
        session, _ = start_resource_drag(_resource("a"))
        hovering = session.entered_resource(_resource("b"))
        assert hovering.target == ResourceTarget(_resource("b"))
        assert hovering.can_drop is True
        assert hovering.show_folder_preview is True
        assert hovering.reason is None

    def test_mixed_type_reason(self):
        session, _ = start_resource_drag(_resource("a", ResourceType.LINK))
        hovering = session.entered_resource(_resource("b", ResourceType.IMAGE))
        assert hovering.can_drop is False
        assert hovering.show_folder_preview is False
        assert hovering.reason == "cannot place Link and Image in the same folder"

    def test_entering_itself_is_noop(self):
        a = _resource("a")
        session, _ = start_resource_drag(a)
        assert session.entered_resource(a) is session

    def test_folder_drag_ignores_resources(self):
        session, _ = start_folder_drag(_folder("f1"))
        assert session.entered_resource(_resource("a")) is session


class TestEnterFolder:
    def test_resource_into_matching_folder(self):
        session, _ = start_resource_drag(_resource("a", ResourceType.IMAGE))
        hovering = session.entered_folder(_folder("f", ResourceType.IMAGE))
        assert hovering.can_drop is True
        assert isinstance(hovering.target, FolderTarget)
        assert hovering.show_folder_preview is False

    def test_resource_into_mismatched_folder(self):
        session, _ = start_resource_drag(_resource("a", ResourceType.IMAGE))
        hovering = session.entered_folder(_folder("f", ResourceType.DOCUMENT))
        assert hovering.can_drop is False
        assert hovering.reason == "this folder only accepts Document resources"

    def test_folder_into_descendant_uses_index(self):
        g = _folder("g", ResourceType.GITHUB)
        h = _folder("h", ResourceType.GITHUB, parent_id="g")
        k = _folder("k", ResourceType.GITHUB, parent_id="h")
        session, _ = start_folder_drag(g)
        hovering = session.entered_folder(k, [g, h, k])
        assert hovering.can_drop is False
        assert hovering.reason == "cannot place a folder inside its own sub-folder"

    def test_folder_into_itself(self):
        g = _folder("g")
        session, _ = start_folder_drag(g)
        assert session.entered_folder(g).can_drop is False

    def test_idle_hover_cannot_drop(self):
        hovering = IDLE.entered_folder(_folder("f"))
        assert hovering.target is not None
        assert hovering.can_drop is False


class TestLeave:
    def test_clears_target_keeps_drag(self):
        session, _ = start_resource_drag(_resource("a"))
        left = session.entered_resource(_resource("b")).left()
        assert left.target is None
        assert left.can_drop is False
        assert left.reason is None
        assert left.show_folder_preview is False
        assert left.is_dragging
