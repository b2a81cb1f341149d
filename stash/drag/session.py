"""Drag session state machine.

A session is an immutable snapshot; every transition returns a new one.
``IDLE`` is the empty session.  A drag carries exactly one entity, either a
resource or a folder, and at most one hover target::

    Idle -> DraggingResource -> hovering {resource | folder | nothing} -> Idle
    Idle -> DraggingFolder   -> hovering {folder | nothing}            -> Idle

Hover feasibility (``can_drop`` and ``reason``) is computed synchronously on
entering a target using :mod:`stash.rules`.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Optional, Union

from stash.db.models import Folder, Resource
from stash.rules import (
    DropVerdict,
    can_add_resource_to_folder,
    can_merge_resources,
    can_move_folder_into,
)

# 1x1 transparent GIF used to hide the platform's default drag image.
BLANK_DRAG_IMAGE = (
    "data:image/gif;base64,R0lGODlhAQABAIAAAAAAAP///yH5BAEAAAAALAAAAAABAAEAAAIBRAA7"
)


class DragPhase(str, Enum):
    IDLE = "idle"
    DRAGGING_RESOURCE = "dragging_resource"
    DRAGGING_FOLDER = "dragging_folder"


@dataclass(frozen=True)
class DraggedResource:
    resource: Resource


@dataclass(frozen=True)
class DraggedFolder:
    folder: Folder


DraggedEntity = Union[DraggedResource, DraggedFolder, None]


@dataclass(frozen=True)
class ResourceTarget:
    resource: Resource

    @property
    def id(self) -> str:
        return self.resource.id


@dataclass(frozen=True)
class FolderTarget:
    folder: Folder

    @property
    def id(self) -> str:
        return self.folder.id


HoverTarget = Union[ResourceTarget, FolderTarget, None]


@dataclass(frozen=True)
class Point:
    x: float = 0
    y: float = 0


@dataclass(frozen=True)
class DragStartHints:
    """What the UI should put on the platform drag event when a drag starts."""

    payload: str
    effect_allowed: str
    drag_image: str = BLANK_DRAG_IMAGE


@dataclass(frozen=True)
class DragSession:
    dragged: DraggedEntity = None
    position: Point = Point()
    target: HoverTarget = None
    can_drop: bool = False
    reason: Optional[str] = None
    copy_mode: bool = False
    show_folder_preview: bool = False

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------
    @property
    def phase(self) -> DragPhase:
        if isinstance(self.dragged, DraggedResource):
            return DragPhase.DRAGGING_RESOURCE
        if isinstance(self.dragged, DraggedFolder):
            return DragPhase.DRAGGING_FOLDER
        return DragPhase.IDLE

    @property
    def is_dragging(self) -> bool:
        return self.dragged is not None

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def moved(self, x: float, y: float, copy_key: bool = False) -> DragSession:
        """Pointer moved.  ``(0, 0)`` is the platform's "no movement" signal."""
        if x == 0 and y == 0:
            return self
        return replace(
            self,
            position=Point(x, y),
            copy_mode=copy_key if isinstance(self.dragged, DraggedResource) else False,
        )

    def entered_resource(self, resource: Resource) -> DragSession:
        """Hover over a resource card.  Only resource drags react."""
        if not isinstance(self.dragged, DraggedResource):
            return self
        if self.dragged.resource.id == resource.id:
            return self
        verdict = can_merge_resources(self.dragged.resource, resource)
        return self._hovering(ResourceTarget(resource), verdict, preview=verdict.allowed)

    def entered_folder(self, folder: Folder, folders: Iterable[Folder] = ()) -> DragSession:
        """Hover over a folder.

        *folders* is the folder index used for the ancestry walk; the dragged
        folder and the target are always included.
        """
        target = FolderTarget(folder)
        if isinstance(self.dragged, DraggedResource):
            return self._hovering(target, can_add_resource_to_folder(self.dragged.resource, folder))
        if isinstance(self.dragged, DraggedFolder):
            index = {f.id: f for f in folders}
            index[self.dragged.folder.id] = self.dragged.folder
            index[folder.id] = folder
            verdict = can_move_folder_into(self.dragged.folder, folder, index.values())
            return self._hovering(target, verdict)
        return self._hovering(target, DropVerdict(False))

    def left(self) -> DragSession:
        """Pointer left the current target; the drag continues."""
        return replace(
            self, target=None, can_drop=False, reason=None, show_folder_preview=False
        )

    def _hovering(self, target: HoverTarget, verdict: DropVerdict, preview: bool = False) -> DragSession:
        return replace(
            self,
            target=target,
            can_drop=verdict.allowed,
            reason=verdict.reason,
            show_folder_preview=preview,
        )


IDLE = DragSession()


def start_resource_drag(
    resource: Resource, x: float = 0, y: float = 0, copy_key: bool = False
) -> tuple[DragSession, DragStartHints]:
    session = DragSession(
        dragged=DraggedResource(resource), position=Point(x, y), copy_mode=copy_key
    )
    return session, DragStartHints(payload=resource.id, effect_allowed="copyMove")


def start_folder_drag(
    folder: Folder, x: float = 0, y: float = 0
) -> tuple[DragSession, DragStartHints]:
    # Folders are never copied, whatever the modifier keys say.
    session = DragSession(dragged=DraggedFolder(folder), position=Point(x, y))
    return session, DragStartHints(payload=folder.id, effect_allowed="move")
