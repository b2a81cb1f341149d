"""Resource endpoints.

Routes
------
GET    /resources                       List a user's resources (?user_id, type, archived, all_levels)
POST   /resources                       Create a link / GitHub resource from a URL
POST   /resources/upload                Upload a file as an image / document resource
GET    /resources/stats                 Counts per type (?user_id, archived)
GET    /resources/trash                 Soft-deleted resources (?user_id)
DELETE /resources/trash                 Empty the resource trash (?user_id)
GET    /resources/{id}                  Fetch one resource
PUT    /resources/{id}                  Update title / description / metadata / position
DELETE /resources/{id}                  Soft delete
POST   /resources/{id}/restore          Restore from the trash
DELETE /resources/{id}/permanent        Remove for good (stored file included)
POST   /resources/{id}/archive          Archive
POST   /resources/{id}/unarchive        Unarchive
GET    /resources/{id}/preview          Whether the built-in viewer can open it
GET    /resources/{id}/file             Stored file bytes (uploaded resources only)
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, File, Form, HTTPException, Request, Response, UploadFile
from pydantic import BaseModel

from stash import storage
from stash.api.serialization import http_error, resource_dict
from stash.db import resources as resources_db
from stash.db.models import ResourceType
from stash.errors import StashError
from stash.preview import can_open_in_viewer

router = APIRouter()


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class LinkCreate(BaseModel):
    user_id: str
    url: str
    description: Optional[str] = None
    fetch_repo_info: bool = True


class ResourceUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None
    position: Optional[int] = None


# ---------------------------------------------------------------------------
# Collection endpoints
# ---------------------------------------------------------------------------

@router.get("", response_model=list[dict[str, Any]])
def list_all(
    request: Request,
    user_id: str,
    type: Optional[ResourceType] = None,
    archived: bool = False,
    all_levels: bool = False,
) -> list[dict[str, Any]]:
    """Root-level resources by default; ``all_levels`` includes folder members."""
    conn = request.app.state.db
    items = resources_db.list_resources(
        conn, user_id, type, archived=archived, exclude_folder_items=not all_levels
    )
    return [resource_dict(r) for r in items]


@router.post("", status_code=201, response_model=dict[str, Any])
def create_link(body: LinkCreate, request: Request) -> dict[str, Any]:
    conn = request.app.state.db
    resource = resources_db.create_link_resource(
        conn, body.user_id, body.url, body.description, fetch_repo_info=body.fetch_repo_info
    )
    return resource_dict(resource)


@router.post("/upload", status_code=201, response_model=dict[str, Any])
async def upload(
    request: Request,
    user_id: str = Form(...),
    description: Optional[str] = Form(None),
    file: UploadFile = File(...),
) -> dict[str, Any]:
    conn = request.app.state.db
    data = await file.read()
    resource = resources_db.create_file_resource(
        conn,
        user_id,
        file.filename or "upload",
        data,
        content_type=file.content_type,
        description=description,
        storage_root=getattr(request.app.state, "storage_root", None),
    )
    return resource_dict(resource)


@router.get("/stats", response_model=dict[str, int])
def stats(request: Request, user_id: str, archived: bool = False) -> dict[str, int]:
    return resources_db.get_resource_stats(request.app.state.db, user_id, archived)


@router.get("/trash", response_model=list[dict[str, Any]])
def trash(request: Request, user_id: str) -> list[dict[str, Any]]:
    return [resource_dict(r) for r in resources_db.list_deleted_resources(request.app.state.db, user_id)]


@router.delete("/trash", response_model=dict[str, int])
def empty_trash(request: Request, user_id: str) -> dict[str, int]:
    removed = resources_db.empty_resource_trash(
        request.app.state.db, user_id, getattr(request.app.state, "storage_root", None)
    )
    return {"removed": removed}


# ---------------------------------------------------------------------------
# Item endpoints
# ---------------------------------------------------------------------------

@router.get("/{resource_id}", response_model=dict[str, Any])
def get_one(resource_id: str, request: Request) -> dict[str, Any]:
    resource = resources_db.get_resource(request.app.state.db, resource_id)
    if resource is None:
        raise HTTPException(status_code=404, detail=f"Resource not found: {resource_id!r}")
    return resource_dict(resource)


@router.put("/{resource_id}", response_model=dict[str, Any])
def update(resource_id: str, body: ResourceUpdate, request: Request) -> dict[str, Any]:
    updates = body.model_dump(exclude_none=True)
    if not updates:
        raise HTTPException(status_code=422, detail="No fields provided to update.")
    try:
        resource = resources_db.update_resource(request.app.state.db, resource_id, **updates)
    except StashError as exc:
        raise http_error(exc) from exc
    return resource_dict(resource)


@router.delete("/{resource_id}", response_model=dict[str, Any])
def soft_delete(resource_id: str, request: Request) -> dict[str, Any]:
    try:
        return resource_dict(resources_db.delete_resource(request.app.state.db, resource_id))
    except StashError as exc:
        raise http_error(exc) from exc


@router.post("/{resource_id}/restore", response_model=dict[str, Any])
def restore(resource_id: str, request: Request) -> dict[str, Any]:
    try:
        return resource_dict(resources_db.restore_resource(request.app.state.db, resource_id))
    except StashError as exc:
        raise http_error(exc) from exc


@router.delete("/{resource_id}/permanent")
def permanent_delete(resource_id: str, request: Request) -> Response:
    try:
        resources_db.permanent_delete_resource(
            request.app.state.db, resource_id, getattr(request.app.state, "storage_root", None)
        )
    except StashError as exc:
        raise http_error(exc) from exc
    return Response(status_code=204)


@router.post("/{resource_id}/archive", response_model=dict[str, Any])
def archive(resource_id: str, request: Request) -> dict[str, Any]:
    try:
        return resource_dict(resources_db.archive_resource(request.app.state.db, resource_id))
    except StashError as exc:
        raise http_error(exc) from exc


@router.post("/{resource_id}/unarchive", response_model=dict[str, Any])
def unarchive(resource_id: str, request: Request) -> dict[str, Any]:
    try:
        return resource_dict(resources_db.unarchive_resource(request.app.state.db, resource_id))
    except StashError as exc:
        raise http_error(exc) from exc


@router.get("/{resource_id}/preview", response_model=dict[str, Any])
def preview(resource_id: str, request: Request) -> dict[str, Any]:
    resource = resources_db.get_resource(request.app.state.db, resource_id)
    if resource is None:
        raise HTTPException(status_code=404, detail=f"Resource not found: {resource_id!r}")
    info = can_open_in_viewer(resource)
    return {"can_preview": info.can_preview, "preview_type": info.preview_type, "reason": info.reason}


@router.get("/{resource_id}/file")
def download_file(resource_id: str, request: Request) -> Response:
    resource = resources_db.get_resource(request.app.state.db, resource_id)
    if resource is None or not resource.storage_path:
        raise HTTPException(status_code=404, detail=f"No stored file for {resource_id!r}")
    try:
        data = storage.download(resource.storage_path, getattr(request.app.state, "storage_root", None))
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Stored file is missing") from exc
    return Response(
        content=data,
        media_type=resource.metadata.get("content_type", "application/octet-stream"),
    )
