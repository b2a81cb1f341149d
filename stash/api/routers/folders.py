"""Folder endpoints.

Routes
------
GET    /folders                              All folders of a user (?user_id)
POST   /folders                              Create a typed folder
GET    /folders/tree                         Active folders nested, with their resources (?user_id)
GET    /folders/children                     Active sub-folders of ?parent_id (root when omitted)
GET    /folders/trash                        Soft-deleted folders (?user_id)
DELETE /folders/trash                        Empty the folder trash (?user_id)
GET    /folders/archived                     Archived folders (?user_id)
POST   /folders/classify-articles            Group root-level articles by source (?user_id)
POST   /folders/from-resources               Create a folder from two or more resources
POST   /folders/move-resource                Move a resource into a folder (or root)
POST   /folders/copy-resource                Copy a resource into a folder
GET    /folders/{id}                         Fetch one folder
PUT    /folders/{id}                         Update name / color / icon / parent / position
GET    /folders/{id}/path                    Breadcrumb from the root
GET    /folders/{id}/resources               Active resources (?user_id, limit, offset)
POST   /folders/{id}/move                    Move under another folder (or root)
DELETE /folders/{id}                         Soft delete (cascades)
POST   /folders/{id}/restore                 Restore (cascades)
DELETE /folders/{id}/permanent               Remove for good (cascades)
POST   /folders/{id}/archive                 Archive
POST   /folders/{id}/unarchive               Unarchive
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Request, Response
from pydantic import BaseModel, Field

from stash.api.serialization import folder_dict, http_error, resource_dict, tree_dict
from stash.db import folders as folders_db
from stash.db import resources as resources_db
from stash.db.models import Lifecycle, ResourceType
from stash.errors import NotFoundError, StashError

router = APIRouter()


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class FolderCreate(BaseModel):
    user_id: str
    resource_type: ResourceType
    name: Optional[str] = None
    parent_id: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None


class FolderUpdate(BaseModel):
    name: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    position: Optional[int] = None


class FromResourcesRequest(BaseModel):
    user_id: str
    resource_ids: list[str] = Field(min_length=2)
    name: Optional[str] = None
    parent_id: Optional[str] = None


class MoveResourceRequest(BaseModel):
    resource_id: str
    folder_id: Optional[str] = None


class CopyResourceRequest(BaseModel):
    resource_id: str
    folder_id: str


class MoveFolderRequest(BaseModel):
    target_folder_id: Optional[str] = None


# ---------------------------------------------------------------------------
# Collection endpoints
# ---------------------------------------------------------------------------

@router.get("", response_model=list[dict[str, Any]])
def list_all(request: Request, user_id: str) -> list[dict[str, Any]]:
    return [folder_dict(f) for f in folders_db.list_folders(request.app.state.db, user_id)]


@router.post("", status_code=201, response_model=dict[str, Any])
def create(body: FolderCreate, request: Request) -> dict[str, Any]:
    try:
        folder = folders_db.create_folder(
            request.app.state.db,
            body.user_id,
            body.resource_type,
            body.name,
            parent_id=body.parent_id,
            color=body.color,
            icon=body.icon,
        )
    except StashError as exc:
        raise http_error(exc) from exc
    return folder_dict(folder)


@router.get("/tree", response_model=list[dict[str, Any]])
def tree(request: Request, user_id: str) -> list[dict[str, Any]]:
    conn = request.app.state.db
    active = [
        f for f in folders_db.list_folders(conn, user_id) if f.lifecycle is Lifecycle.ACTIVE
    ]
    members = resources_db.list_resources(conn, user_id, exclude_folder_items=False)
    return [tree_dict(node) for node in folders_db.build_folder_tree(active, members)]


@router.get("/children", response_model=list[dict[str, Any]])
def children(request: Request, user_id: str, parent_id: Optional[str] = None) -> list[dict[str, Any]]:
    return [
        folder_dict(f)
        for f in folders_db.list_subfolders(request.app.state.db, parent_id, user_id)
    ]


@router.get("/trash", response_model=list[dict[str, Any]])
def trash(request: Request, user_id: str) -> list[dict[str, Any]]:
    return [folder_dict(f) for f in folders_db.list_deleted_folders(request.app.state.db, user_id)]


@router.delete("/trash", response_model=dict[str, int])
def empty_trash(request: Request, user_id: str) -> dict[str, int]:
    removed = folders_db.empty_folder_trash(
        request.app.state.db, user_id, getattr(request.app.state, "storage_root", None)
    )
    return {"removed": removed}


@router.get("/archived", response_model=list[dict[str, Any]])
def archived(request: Request, user_id: str) -> list[dict[str, Any]]:
    return [folder_dict(f) for f in folders_db.list_archived_folders(request.app.state.db, user_id)]


@router.post("/classify-articles", response_model=dict[str, int])
def classify_articles(request: Request, user_id: str) -> dict[str, int]:
    return folders_db.auto_classify_articles_by_source(request.app.state.db, user_id)


@router.post("/from-resources", status_code=201, response_model=dict[str, Any])
def from_resources(body: FromResourcesRequest, request: Request) -> dict[str, Any]:
    conn = request.app.state.db
    members = []
    for rid in body.resource_ids:
        resource = resources_db.get_resource(conn, rid)
        if resource is None:
            raise HTTPException(status_code=404, detail=f"Resource not found: {rid!r}")
        members.append(resource)
    try:
        folder = folders_db.create_folder_from_resources(
            conn, body.user_id, body.resource_ids, members, body.name, body.parent_id
        )
    except StashError as exc:
        raise http_error(exc) from exc
    return folder_dict(folder)


@router.post("/move-resource", response_model=dict[str, Any])
def move_resource(body: MoveResourceRequest, request: Request) -> dict[str, Any]:
    try:
        resource = folders_db.move_resource_to_folder(
            request.app.state.db, body.resource_id, body.folder_id
        )
    except StashError as exc:
        raise http_error(exc) from exc
    return resource_dict(resource)


@router.post("/copy-resource", status_code=201, response_model=dict[str, Any])
def copy_resource(body: CopyResourceRequest, request: Request) -> dict[str, Any]:
    try:
        copy = folders_db.copy_resource_to_folder(
            request.app.state.db, body.resource_id, body.folder_id
        )
    except StashError as exc:
        raise http_error(exc) from exc
    return resource_dict(copy)


# ---------------------------------------------------------------------------
# Item endpoints
# ---------------------------------------------------------------------------

def _get_or_404(request: Request, folder_id: str):
    folder = folders_db.get_folder(request.app.state.db, folder_id)
    if folder is None:
        raise http_error(NotFoundError(f"Folder not found: {folder_id!r}"))
    return folder


@router.get("/{folder_id}", response_model=dict[str, Any])
def get_one(folder_id: str, request: Request) -> dict[str, Any]:
    return folder_dict(_get_or_404(request, folder_id))


@router.put("/{folder_id}", response_model=dict[str, Any])
def update(folder_id: str, body: FolderUpdate, request: Request) -> dict[str, Any]:
    updates = body.model_dump(exclude_none=True)
    if not updates:
        raise HTTPException(status_code=422, detail="No fields provided to update.")
    try:
        folder = folders_db.update_folder(request.app.state.db, folder_id, **updates)
    except StashError as exc:
        raise http_error(exc) from exc
    return folder_dict(folder)


@router.get("/{folder_id}/path", response_model=list[dict[str, Any]])
def path(folder_id: str, request: Request) -> list[dict[str, Any]]:
    _get_or_404(request, folder_id)
    return [folder_dict(f) for f in folders_db.get_folder_path(request.app.state.db, folder_id)]


@router.get("/{folder_id}/resources", response_model=dict[str, Any])
def folder_resources(
    folder_id: str,
    request: Request,
    user_id: str,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> dict[str, Any]:
    conn = request.app.state.db
    _get_or_404(request, folder_id)
    items = folders_db.get_folder_resources(conn, folder_id, user_id, limit=limit, offset=offset)
    return {
        "total": folders_db.count_folder_resources(conn, folder_id, user_id),
        "items": [resource_dict(r) for r in items],
    }


@router.post("/{folder_id}/move", response_model=dict[str, Any])
def move(folder_id: str, body: MoveFolderRequest, request: Request) -> dict[str, Any]:
    try:
        folder = folders_db.move_folder_to_folder(
            request.app.state.db, folder_id, body.target_folder_id
        )
    except StashError as exc:
        raise http_error(exc) from exc
    return folder_dict(folder)


@router.delete("/{folder_id}")
def soft_delete(folder_id: str, request: Request) -> Response:
    try:
        folders_db.delete_folder(request.app.state.db, folder_id)
    except StashError as exc:
        raise http_error(exc) from exc
    return Response(status_code=204)


@router.post("/{folder_id}/restore", response_model=dict[str, Any])
def restore(folder_id: str, request: Request) -> dict[str, Any]:
    try:
        folders_db.restore_folder(request.app.state.db, folder_id)
    except StashError as exc:
        raise http_error(exc) from exc
    return folder_dict(_get_or_404(request, folder_id))


@router.delete("/{folder_id}/permanent")
def permanent_delete(folder_id: str, request: Request) -> Response:
    try:
        folders_db.permanent_delete_folder(
            request.app.state.db, folder_id, getattr(request.app.state, "storage_root", None)
        )
    except StashError as exc:
        raise http_error(exc) from exc
    return Response(status_code=204)


@router.post("/{folder_id}/archive", response_model=dict[str, Any])
def archive(folder_id: str, request: Request) -> dict[str, Any]:
    try:
        return folder_dict(folders_db.archive_folder(request.app.state.db, folder_id))
    except StashError as exc:
        raise http_error(exc) from exc


@router.post("/{folder_id}/unarchive", response_model=dict[str, Any])
def unarchive(folder_id: str, request: Request) -> dict[str, Any]:
    try:
        return folder_dict(folders_db.unarchive_folder(request.app.state.db, folder_id))
    except StashError as exc:
        raise http_error(exc) from exc
