"""Server-side drag board.

A board is one user's view of a folder level (root when ``folder_id`` is
omitted): the resources and sub-folders shown there plus a
:class:`~stash.drag.controller.DragController` driving drag-and-drop on
them.  Boards live in ``app.state.boards`` keyed by user id.

Routes
------
POST /board/{user_id}/load           (Re)load the board for ?folder_id
GET  /board/{user_id}                Current lists and drag session
POST /board/{user_id}/drag/start     Start dragging a resource or folder
POST /board/{user_id}/drag/move      Pointer moved
POST /board/{user_id}/drag/enter     Pointer entered a resource or folder
POST /board/{user_id}/drag/leave     Pointer left the current target
POST /board/{user_id}/drag/end       Drag abandoned
POST /board/{user_id}/drop           Drop on the current target
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, model_validator

from stash.api.serialization import folder_dict, resource_dict, session_dict
from stash.db import folders as folders_db
from stash.db.models import Folder, Resource
from stash.drag.controller import BoardState, DragController
from stash.store import SqliteResourceStore

router = APIRouter()


@dataclass
class Board:
    controller: DragController
    folder_id: Optional[str] = None
    notifications: list[dict[str, str]] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class EntityRef(BaseModel):
    resource_id: Optional[str] = None
    folder_id: Optional[str] = None

    @model_validator(mode="after")
    def _exactly_one(self) -> "EntityRef":
        if (self.resource_id is None) == (self.folder_id is None):
            raise ValueError("Give exactly one of resource_id or folder_id")
        return self


class DragStart(EntityRef):
    x: float = 0
    y: float = 0
    copy_key: bool = False


class DragMove(BaseModel):
    x: float
    y: float
    copy_key: bool = False


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _load_state(conn: sqlite3.Connection, user_id: str, folder_id: Optional[str]) -> BoardState:
    return BoardState(
        resources=folders_db.get_folder_resources(conn, folder_id, user_id),
        folders=folders_db.list_subfolders(conn, folder_id, user_id),
    )


def _build_board(conn: sqlite3.Connection, user_id: str, folder_id: Optional[str]) -> Board:
    notifications: list[dict[str, str]] = []
    state = _load_state(conn, user_id, folder_id)

    def notify(level: str):
        return lambda message: notifications.append({"level": level, "message": message})

    def refresh() -> None:
        fresh = _load_state(conn, user_id, folder_id)
        state.resources = fresh.resources
        state.folders = fresh.folders

    controller = DragController(
        user_id,
        SqliteResourceStore(conn),
        state,
        on_success=notify("success"),
        on_error=notify("error"),
        on_refresh=refresh,
        # The whole tree, so hover feedback sees every ancestor.
        folder_index=lambda: folders_db.list_folders(conn, user_id),
        folder_id=folder_id,
    )
    return Board(controller=controller, folder_id=folder_id, notifications=notifications)


def _board(request: Request, user_id: str) -> Board:
    boards: dict[str, Board] = request.app.state.boards
    if user_id not in boards:
        boards[user_id] = _build_board(request.app.state.db, user_id, None)
    return boards[user_id]


def _find_resource(board: Board, resource_id: str) -> Resource:
    for resource in board.controller.state.resources:
        if resource.id == resource_id:
            return resource
    raise HTTPException(status_code=404, detail=f"Resource not on board: {resource_id!r}")


def _find_folder(board: Board, folder_id: str) -> Folder:
    for folder in board.controller.state.folders:
        if folder.id == folder_id:
            return folder
    raise HTTPException(status_code=404, detail=f"Folder not on board: {folder_id!r}")


def _view(board: Board) -> dict[str, Any]:
    state = board.controller.state
    return {
        "folder_id": board.folder_id,
        "resources": [resource_dict(r) for r in state.resources],
        "folders": [folder_dict(f) for f in state.folders],
        "session": session_dict(board.controller.session),
        "busy": board.controller.busy,
    }


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/{user_id}/load", response_model=dict[str, Any])
def load(user_id: str, request: Request, folder_id: Optional[str] = None) -> dict[str, Any]:
    conn = request.app.state.db
    if folder_id is not None and folders_db.get_folder(conn, folder_id) is None:
        raise HTTPException(status_code=404, detail=f"Folder not found: {folder_id!r}")
    board = _build_board(conn, user_id, folder_id)
    request.app.state.boards[user_id] = board
    return _view(board)


@router.get("/{user_id}", response_model=dict[str, Any])
def show(user_id: str, request: Request) -> dict[str, Any]:
    return _view(_board(request, user_id))


@router.post("/{user_id}/drag/start", response_model=dict[str, Any])
def drag_start(user_id: str, body: DragStart, request: Request) -> dict[str, Any]:
    board = _board(request, user_id)
    if body.resource_id is not None:
        hints = board.controller.drag_start(
            _find_resource(board, body.resource_id), body.x, body.y, body.copy_key
        )
    else:
        hints = board.controller.folder_drag_start(
            _find_folder(board, body.folder_id), body.x, body.y  # type: ignore[arg-type]
        )
    return {
        "payload": hints.payload,
        "effect_allowed": hints.effect_allowed,
        "drag_image": hints.drag_image,
        "session": session_dict(board.controller.session),
    }


@router.post("/{user_id}/drag/move", response_model=dict[str, Any])
def drag_move(user_id: str, body: DragMove, request: Request) -> dict[str, Any]:
    board = _board(request, user_id)
    board.controller.drag(body.x, body.y, body.copy_key)
    return session_dict(board.controller.session)


@router.post("/{user_id}/drag/enter", response_model=dict[str, Any])
def drag_enter(user_id: str, body: EntityRef, request: Request) -> dict[str, Any]:
    board = _board(request, user_id)
    if body.resource_id is not None:
        board.controller.drag_enter_resource(_find_resource(board, body.resource_id))
    else:
        board.controller.drag_enter_folder(_find_folder(board, body.folder_id))  # type: ignore[arg-type]
    return session_dict(board.controller.session)


@router.post("/{user_id}/drag/leave", response_model=dict[str, Any])
def drag_leave(user_id: str, request: Request) -> dict[str, Any]:
    board = _board(request, user_id)
    board.controller.drag_leave()
    return session_dict(board.controller.session)


@router.post("/{user_id}/drag/end", response_model=dict[str, Any])
def drag_end(user_id: str, request: Request) -> dict[str, Any]:
    board = _board(request, user_id)
    board.controller.drag_end()
    return session_dict(board.controller.session)


@router.post("/{user_id}/drop", response_model=dict[str, Any])
async def drop(user_id: str, request: Request) -> dict[str, Any]:
    board = _board(request, user_id)
    board.notifications.clear()
    outcome = await board.controller.drop()
    return {
        "outcome": outcome.value,
        "notifications": list(board.notifications),
        **_view(board),
    }
