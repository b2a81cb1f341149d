"""JSON shapes shared by the routers, plus domain-error → HTTP translation."""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException

from stash.db.models import Folder, FolderTreeNode, Resource
from stash.drag.session import DraggedFolder, DraggedResource, DragSession, FolderTarget
from stash.errors import NotFoundError, StashError


def resource_dict(resource: Resource) -> dict[str, Any]:
    return {
        "id": resource.id,
        "user_id": resource.user_id,
        "type": resource.type.value,
        "title": resource.title,
        "description": resource.description,
        "url": resource.url,
        "storage_path": resource.storage_path,
        "file_name": resource.file_name,
        "metadata": resource.metadata,
        "folder_id": resource.folder_id,
        "position": resource.position,
        "lifecycle": resource.lifecycle.value,
        "created_at": resource.created_at,
        "updated_at": resource.updated_at,
        "archived_at": resource.archived_at,
        "deleted_at": resource.deleted_at,
    }


def folder_dict(folder: Folder) -> dict[str, Any]:
    return {
        "id": folder.id,
        "user_id": folder.user_id,
        "name": folder.name,
        "parent_id": folder.parent_id,
        "resource_type": folder.resource_type.value,
        "color": folder.color,
        "icon": folder.icon,
        "position": folder.position,
        "lifecycle": folder.lifecycle.value,
        "created_at": folder.created_at,
        "updated_at": folder.updated_at,
        "archived_at": folder.archived_at,
        "deleted_at": folder.deleted_at,
    }


def tree_dict(node: FolderTreeNode) -> dict[str, Any]:
    return {
        **folder_dict(node.folder),
        "children": [tree_dict(child) for child in node.children],
        "resources": [resource_dict(r) for r in node.resources],
    }


def session_dict(session: DragSession) -> dict[str, Any]:
    dragged: dict[str, Any] | None = None
    if isinstance(session.dragged, DraggedResource):
        dragged = {"kind": "resource", "id": session.dragged.resource.id}
    elif isinstance(session.dragged, DraggedFolder):
        dragged = {"kind": "folder", "id": session.dragged.folder.id}

    target: dict[str, Any] | None = None
    if session.target is not None:
        kind = "folder" if isinstance(session.target, FolderTarget) else "resource"
        target = {"kind": kind, "id": session.target.id}

    return {
        "phase": session.phase.value,
        "dragged": dragged,
        "target": target,
        "position": {"x": session.position.x, "y": session.position.y},
        "can_drop": session.can_drop,
        "reason": session.reason,
        "copy_mode": session.copy_mode,
        "show_folder_preview": session.show_folder_preview,
    }


def http_error(exc: StashError) -> HTTPException:
    """Not-found errors become 404; rule and lifecycle violations become 422."""
    status = 404 if isinstance(exc, NotFoundError) else 422
    return HTTPException(status_code=status, detail=str(exc))
