"""Tests for folder placement rules (pure functions, no DB)."""

from __future__ import annotations

from stash.db.models import Folder, Resource, ResourceType
from stash.rules import (
    ALLOWED,
    can_add_resource_to_folder,
    can_merge_resources,
    can_move_folder_into,
    is_descendant,
)


def _resource(rid: str, rtype: ResourceType) -> Resource:
    return Resource(id=rid, user_id="u1", type=rtype, title=rid, created_at=1, updated_at=1)


def _folder(fid: str, rtype: ResourceType, parent_id: str | None = None) -> Folder:
    return Folder(
        id=fid, user_id="u1", name=fid, resource_type=rtype,
        created_at=1, updated_at=1, parent_id=parent_id,
    )


class TestMergeResources:
    def test_same_type_allowed(self):
        verdict = can_merge_resources(
            _resource("a", ResourceType.LINK), _resource("b", ResourceType.LINK)
        )
        assert verdict == ALLOWED
        assert verdict.reason is None

    def test_mixed_types_rejected_with_both_labels(self):
        verdict = can_merge_resources(
            _resource("a", ResourceType.LINK), _resource("b", ResourceType.IMAGE)
        )
        assert not verdict
        assert verdict.reason == "cannot place Link and Image in the same folder"

    def test_symmetric(self):
        a = _resource("a", ResourceType.GITHUB)
        b = _resource("b", ResourceType.DOCUMENT)
        assert bool(can_merge_resources(a, b)) == bool(can_merge_resources(b, a))


class TestAddResourceToFolder:
    def test_matching_type(self):
        assert can_add_resource_to_folder(
            _resource("r", ResourceType.ARTICLE), _folder("f", ResourceType.ARTICLE)
        )

    def test_mismatch_names_folder_type(self):
        verdict = can_add_resource_to_folder(
            _resource("r", ResourceType.IMAGE), _folder("f", ResourceType.DOCUMENT)
        )
        assert not verdict.allowed
        assert verdict.reason == "this folder only accepts Document resources"


class TestIsDescendant:
    def test_deep_chain(self):
        folders = [
            _folder("a", ResourceType.LINK),
            _folder("b", ResourceType.LINK, "a"),
            _folder("c", ResourceType.LINK, "b"),
            _folder("d", ResourceType.LINK, "c"),
        ]
        assert is_descendant("a", "d", folders)
        assert is_descendant("b", "c", folders)
        assert not is_descendant("d", "a", folders)

    def test_not_its_own_descendant(self):
        assert not is_descendant("a", "a", [_folder("a", ResourceType.LINK)])

    def test_cyclic_data_terminates(self):
        folders = [
            _folder("x", ResourceType.LINK, "y"),
            _folder("y", ResourceType.LINK, "x"),
        ]
        assert not is_descendant("z", "x", folders)

    def test_unknown_candidate(self):
        assert not is_descendant("a", "missing", [_folder("a", ResourceType.LINK)])


class TestMoveFolderInto:
    def test_sibling_same_type_allowed(self):
        g = _folder("g", ResourceType.GITHUB)
        h = _folder("h", ResourceType.GITHUB)
        assert can_move_folder_into(g, h, [g, h])

    def test_into_itself(self):
        g = _folder("g", ResourceType.GITHUB)
        verdict = can_move_folder_into(g, g, [g])
        assert verdict.reason == "cannot place a folder inside itself"

    def test_type_mismatch(self):
        g = _folder("g", ResourceType.GITHUB)
        h = _folder("h", ResourceType.LINK)
        verdict = can_move_folder_into(g, h, [g, h])
        assert verdict.reason == "only Link folders can be placed in this folder"

    def test_into_direct_child(self):
        g = _folder("g", ResourceType.GITHUB)
        h = _folder("h", ResourceType.GITHUB, parent_id="g")
        verdict = can_move_folder_into(g, h, [g, h])
        assert not verdict
        assert verdict.reason == "cannot place a folder inside its own sub-folder"

    def test_into_grandchild(self):
        g = _folder("g", ResourceType.GITHUB)
        h = _folder("h", ResourceType.GITHUB, parent_id="g")
        k = _folder("k", ResourceType.GITHUB, parent_id="h")
        assert not can_move_folder_into(g, k, [g, h, k])

    def test_child_into_parent_allowed(self):
        g = _folder("g", ResourceType.GITHUB)
        h = _folder("h", ResourceType.GITHUB, parent_id="g")
        k = _folder("k", ResourceType.GITHUB, parent_id="h")
        assert can_move_folder_into(k, g, [g, h, k])
