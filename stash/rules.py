"""Folder placement rules.

Pure, synchronous predicates used for drag hover feedback and by the store
before it writes.  A failed rule is a normal result carrying a reason for
the UI, never an exception.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from stash.db.models import Folder, Resource, ResourceType


@dataclass(frozen=True)
class DropVerdict:
    allowed: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOWED = DropVerdict(True)


def _label(resource_type: ResourceType | str) -> str:
    return ResourceType(resource_type).label


def can_merge_resources(a: Resource, b: Resource) -> DropVerdict:
    """Two resources can form a new folder only when their types match."""
    if a.type == b.type:
        return ALLOWED
    return DropVerdict(
        False, f"cannot place {_label(a.type)} and {_label(b.type)} in the same folder"
    )


def can_add_resource_to_folder(resource: Resource, folder: Folder) -> DropVerdict:
    if resource.type == folder.resource_type:
        return ALLOWED
    return DropVerdict(
        False, f"this folder only accepts {_label(folder.resource_type)} resources"
    )


def is_descendant(ancestor_id: str, candidate_id: Optional[str], folders: Iterable[Folder]) -> bool:
    """Return ``True`` if *candidate_id* sits somewhere below *ancestor_id*.

    Walks ``parent_id`` links upward from the candidate.  The walk stops after
    visiting every known folder once, so a corrupted cyclic chain terminates.
    """
    parents = {f.id: f.parent_id for f in folders}
    seen: set[str] = set()
    current = parents.get(candidate_id) if candidate_id else None
    while current is not None and current not in seen:
        if current == ancestor_id:
            return True
        seen.add(current)
        current = parents.get(current)
    return False


def can_move_folder_into(
    folder: Folder, target: Folder, folders: Iterable[Folder]
) -> DropVerdict:
    """Check a folder-into-folder move: not self, same type, no cycle."""
    if folder.id == target.id:
        return DropVerdict(False, "cannot place a folder inside itself")
    if folder.resource_type != target.resource_type:
        return DropVerdict(
            False, f"only {_label(target.resource_type)} folders can be placed in this folder"
        )
    if is_descendant(folder.id, target.id, folders):
        return DropVerdict(False, "cannot place a folder inside its own sub-folder")
    return ALLOWED
