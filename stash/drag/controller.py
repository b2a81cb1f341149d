"""Drag-and-drop controller with optimistic updates.

The controller owns the current :class:`~stash.drag.session.DragSession`
and mutates the caller's :class:`BoardState` when a drop is accepted:

1. snapshot the resource and folder lists,
2. apply the expected change locally and reset the session,
3. await the store call,
4. on success reconcile (placeholder folder -> real folder) and notify,
5. on failure restore the snapshot wholesale and notify.

Steps 1 and 2 run before the first ``await``, so the local change is visible
before the store is even called.  Only one drop may be in flight per
controller; a drop arriving while another is pending is refused without
touching local state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from time import time
from typing import Callable, Iterable, Optional

from loguru import logger

from stash.config import settings
from stash.db.models import Folder, Resource
from stash.drag.session import (
    IDLE,
    DraggedFolder,
    DraggedResource,
    DragSession,
    DragStartHints,
    FolderTarget,
    ResourceTarget,
    start_folder_drag,
    start_resource_drag,
)
from stash.store import ResourceStore

Notify = Callable[[str], None]

MSG_FOLDER_CREATED = "Folder created"
MSG_COPIED = "Copied to folder"
MSG_MOVED = "Moved to folder"
MSG_FOLDER_MOVED = "Folder moved"
MSG_CREATE_FAILED = "Failed to create folder"
MSG_FAILED = "Operation failed"
MSG_BUSY = "Another operation is still in progress"


@dataclass
class BoardState:
    """The in-memory resource and folder lists a board renders."""

    resources: list[Resource] = field(default_factory=list)
    folders: list[Folder] = field(default_factory=list)

    def snapshot(self) -> BoardSnapshot:
        return BoardSnapshot(resources=list(self.resources), folders=list(self.folders))

    def restore(self, snapshot: BoardSnapshot) -> None:
        self.resources = list(snapshot.resources)
        self.folders = list(snapshot.folders)


@dataclass(frozen=True)
class BoardSnapshot:
    resources: list[Resource]
    folders: list[Folder]


class DropOutcome(str, Enum):
    IGNORED = "ignored"          # nothing droppable; session just reset
    REFUSED = "refused"          # another drop still pending
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class DragController:
    def __init__(
        self,
        user_id: str,
        store: ResourceStore,
        state: Optional[BoardState] = None,
        on_success: Optional[Notify] = None,
        on_error: Optional[Notify] = None,
        on_refresh: Optional[Callable[[], None]] = None,
        folder_index: Optional[Callable[[], Iterable[Folder]]] = None,
        folder_id: Optional[str] = None,
    ) -> None:
        self.user_id = user_id
        # Folder level the board shows; None is the root.
        self.folder_id = folder_id
        self.store = store
        self.state = state if state is not None else BoardState()
        self.session: DragSession = IDLE
        self._on_success = on_success
        self._on_error = on_error
        self._on_refresh = on_refresh
        # Folders visible to the ancestry check; defaults to the board's own list.
        self._folder_index = folder_index or (lambda: self.state.folders)
        self._rollback: Optional[BoardSnapshot] = None

    @property
    def busy(self) -> bool:
        """``True`` while a drop's store call is outstanding."""
        return self._rollback is not None

    # ------------------------------------------------------------------
    # Session transitions
    # ------------------------------------------------------------------
    def drag_start(
        self, resource: Resource, x: float = 0, y: float = 0, copy_key: bool = False
    ) -> DragStartHints:
        self.session, hints = start_resource_drag(resource, x, y, copy_key)
        return hints

    def folder_drag_start(self, folder: Folder, x: float = 0, y: float = 0) -> DragStartHints:
        self.session, hints = start_folder_drag(folder, x, y)
        return hints

    def drag(self, x: float, y: float, copy_key: bool = False) -> None:
        self.session = self.session.moved(x, y, copy_key)

    def drag_enter_resource(self, resource: Resource) -> None:
        self.session = self.session.entered_resource(resource)

    def drag_enter_folder(self, folder: Folder) -> None:
        self.session = self.session.entered_folder(folder, self._folder_index())

    def drag_leave(self) -> None:
        self.session = self.session.left()

    def drag_end(self) -> None:
        """Drag abandoned without a drop."""
        self.reset()

    def reset(self) -> None:
        self.session = IDLE

    # ------------------------------------------------------------------
    # Drop
    # ------------------------------------------------------------------
    async def drop(self) -> DropOutcome:
        """Consume the session and perform the drop it describes."""
        session = self.session
        dragged, target = session.dragged, session.target
        if dragged is None or target is None or not session.can_drop:
            self.reset()
            return DropOutcome.IGNORED
        if self.busy:
            self.reset()
            self._error(MSG_BUSY)
            return DropOutcome.REFUSED

        self._rollback = self.state.snapshot()
        failure_message = MSG_FAILED
        try:
            if isinstance(dragged, DraggedResource) and isinstance(target, ResourceTarget):
                failure_message = MSG_CREATE_FAILED
                await self._merge_into_new_folder(dragged.resource, target.resource)
            elif isinstance(dragged, DraggedResource) and isinstance(target, FolderTarget):
                if session.copy_mode:
                    await self._copy_resource(dragged.resource, target.folder)
                else:
                    await self._move_resource(dragged.resource, target.folder)
            elif isinstance(dragged, DraggedFolder) and isinstance(target, FolderTarget):
                await self._move_folder(dragged.folder, target.folder)
            else:
                self.reset()
                return DropOutcome.IGNORED
        except Exception as exc:
            self.state.restore(self._rollback)
            self._error(failure_message, exc)
            return DropOutcome.ROLLED_BACK
        finally:
            self._rollback = None
            self.reset()
        return DropOutcome.COMMITTED

    async def _merge_into_new_folder(self, dragged: Resource, target: Resource) -> None:
        now = int(time())
        placeholder = Folder(
            id=f"temp-{int(time() * 1000)}",
            user_id=self.user_id,
            name=settings.default_folder_name,
            resource_type=dragged.type,
            parent_id=self.folder_id,
            created_at=now,
            updated_at=now,
        )
        merged = {dragged.id, target.id}
        self.state.resources = [r for r in self.state.resources if r.id not in merged]
        self.state.folders = [placeholder, *self.state.folders]
        self.reset()

        folder = await self.store.create_folder_from_resources(
            self.user_id,
            [dragged.id, target.id],
            [dragged, target],
            settings.default_folder_name,
            parent_id=self.folder_id,
        )
        self.state.folders = [
            folder if f.id == placeholder.id else f for f in self.state.folders
        ]
        self._success(MSG_FOLDER_CREATED)

    async def _copy_resource(self, resource: Resource, folder: Folder) -> None:
        # Copies are not applied locally; the board reloads once the copy exists.
        self.reset()
        await self.store.copy_resource_to_folder(resource.id, folder.id)
        self._success(MSG_COPIED)
        if self._on_refresh is not None:
            self._on_refresh()

    async def _move_resource(self, resource: Resource, folder: Folder) -> None:
        self.state.resources = [r for r in self.state.resources if r.id != resource.id]
        self.reset()
        await self.store.move_resource_to_folder(resource.id, folder.id)
        self._success(MSG_MOVED)

    async def _move_folder(self, folder: Folder, target: Folder) -> None:
        self.state.folders = [f for f in self.state.folders if f.id != folder.id]
        self.reset()
        await self.store.move_folder_to_folder(folder.id, target.id)
        self._success(MSG_FOLDER_MOVED)

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------
    def _success(self, message: str) -> None:
        logger.info(f"[{self.user_id}] {message}")
        if self._on_success is not None:
            self._on_success(message)

    def _error(self, message: str, exc: Optional[BaseException] = None) -> None:
        if exc is None:
            logger.warning(f"[{self.user_id}] {message}")
        else:
            logger.error(f"[{self.user_id}] {message}: {exc!r}")
        if self._on_error is not None:
            self._on_error(message)
