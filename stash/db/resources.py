"""CRUD operations for the ``resources`` table.

Normal queries exclude soft-deleted rows.  Soft delete sets ``deleted_at``;
permanent delete removes the row and any stored file.
"""

from __future__ import annotations

import json
import mimetypes
import sqlite3
import uuid
from pathlib import Path
from time import time
from typing import Any, Optional
from urllib.parse import urlparse

from loguru import logger

from stash import github, storage
from stash.db.models import Resource, ResourceType
from stash.errors import NotFoundError


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _row_to_resource(row: sqlite3.Row) -> Resource:
    return Resource(
        id=row["id"],
        user_id=row["user_id"],
        type=ResourceType(row["type"]),
        title=row["title"],
        description=row["description"],
        url=row["url"],
        storage_path=row["storage_path"],
        file_name=row["file_name"],
        metadata=json.loads(row["metadata"] or "{}"),
        folder_id=row["folder_id"],
        position=row["position"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        archived_at=row["archived_at"],
        deleted_at=row["deleted_at"],
    )


def _require(conn: sqlite3.Connection, resource_id: str) -> Resource:
    resource = get_resource(conn, resource_id)
    if resource is None:
        raise NotFoundError(f"Resource not found: {resource_id!r}")
    return resource


def _set_timestamps(
    conn: sqlite3.Connection, resource: Resource, **columns: Optional[int]
) -> Resource:
    set_clause = ", ".join(f"{col} = ?" for col in columns)
    with conn:
        conn.execute(
            f"UPDATE resources SET {set_clause}, updated_at = ? WHERE id = ?",  # noqa: S608
            (*columns.values(), int(time()), resource.id),
        )
    return get_resource(conn, resource.id)  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Titles
# ---------------------------------------------------------------------------

def generate_title_from_url(url: str) -> str:
    """Return ``host + path`` without a trailing slash, or *url* if unparsable."""
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return url
    return parsed.netloc + parsed.path.rstrip("/")


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------

def create_resource(
    conn: sqlite3.Connection,
    user_id: str,
    resource_type: ResourceType | str,
    title: str,
    description: Optional[str] = None,
    url: Optional[str] = None,
    storage_path: Optional[str] = None,
    file_name: Optional[str] = None,
    metadata: Optional[dict[str, Any]] = None,
    folder_id: Optional[str] = None,
    resource_id: Optional[str] = None,
) -> Resource:
    """Insert a new resource row and return it.

    Args:
        conn: Open DB connection.
        user_id: Owner id.
        resource_type: One of :class:`~stash.db.models.ResourceType`.
        title: Display name.
        description: Optional free text.
        url: External URL for link-like resources.
        storage_path: Storage key for uploaded files.
        file_name: Original file name for uploaded files.
        metadata: Arbitrary key/value pairs stored as a JSON blob.
        folder_id: Containing folder (``None`` for root level).  Not
            type-checked here; use :mod:`stash.db.folders` to place resources.
        resource_id: Explicit UUID override (auto-generated when omitted).
    """
    rid = resource_id or str(uuid.uuid4())
    rtype = ResourceType(resource_type)
    now = int(time())

    with conn:
        conn.execute(
            """
            INSERT INTO resources (
                id, user_id, type, title, description, url, storage_path,
                file_name, metadata, folder_id, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                rid, user_id, rtype.value, title, description, url, storage_path,
                file_name, json.dumps(metadata or {}), folder_id, now, now,
            ),
        )

    return get_resource(conn, rid)  # type: ignore[return-value]


def create_link_resource(
    conn: sqlite3.Connection,
    user_id: str,
    url: str,
    description: Optional[str] = None,
    fetch_repo_info: bool = True,
) -> Resource:
    """Create a ``link`` or ``github`` resource from a URL.

    GitHub repository URLs are titled ``owner/repo`` and, when
    *fetch_repo_info* is set, enriched with stars, forks, language, topics
    and so on.  The repository description is used when no *description* is
    given.
    """
    rtype = github.detect_url_type(url)
    metadata: dict[str, Any] = {}
    title = generate_title_from_url(url)

    if rtype == "github":
        ref = github.parse_github_url(url)
        if ref is not None:
            title = f"{ref.owner}/{ref.repo}"
            info = github.fetch_repo_info(ref.owner, ref.repo) if fetch_repo_info else None
            if info is not None:
                metadata = info.as_metadata()
                if not description and info.description:
                    description = info.description
            else:
                metadata = {"owner": ref.owner, "repo": ref.repo}

    return create_resource(
        conn,
        user_id=user_id,
        resource_type=rtype,
        title=title,
        description=description,
        url=url,
        metadata=metadata,
    )


def create_file_resource(
    conn: sqlite3.Connection,
    user_id: str,
    file_name: str,
    data: bytes,
    content_type: Optional[str] = None,
    description: Optional[str] = None,
    storage_root: Optional[Path] = None,
) -> Resource:
    """Store an uploaded file and create an ``image`` or ``document`` resource.

    The stored file is removed again if the row insert fails.
    """
    content_type = content_type or mimetypes.guess_type(file_name)[0] or "application/octet-stream"
    rtype = ResourceType.IMAGE if content_type.startswith("image/") else ResourceType.DOCUMENT

    rid = str(uuid.uuid4())
    storage_path = storage.build_storage_path(user_id, rid, file_name)
    storage.upload(storage_path, data, root=storage_root)

    try:
        return create_resource(
            conn,
            user_id=user_id,
            resource_type=rtype,
            title=file_name,
            description=description,
            storage_path=storage_path,
            file_name=file_name,
            metadata={"content_type": content_type, "size": len(data)},
            resource_id=rid,
        )
    except sqlite3.Error:
        logger.error(f"Insert failed for uploaded file {file_name!r}; removing stored copy")
        storage.remove([storage_path], root=storage_root)
        raise


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------

def get_resource(conn: sqlite3.Connection, resource_id: str) -> Optional[Resource]:
    """Fetch a single resource by id (deleted rows included).  ``None`` if missing."""
    row = conn.execute(
        "SELECT * FROM resources WHERE id = ?", (resource_id,)
    ).fetchone()
    return _row_to_resource(row) if row else None


def list_resources(
    conn: sqlite3.Connection,
    user_id: str,
    resource_type: Optional[ResourceType | str] = None,
    archived: bool = False,
    exclude_folder_items: bool = True,
) -> list[Resource]:
    """Return a user's non-deleted resources, newest first.

    Args:
        resource_type: Restrict to one type.
        archived: Return archived resources instead of active ones.
        exclude_folder_items: Only root-level resources (``folder_id`` null).
    """
    clauses = ["user_id = ?", "deleted_at IS NULL"]
    params: list[Any] = [user_id]
    clauses.append("archived_at IS NOT NULL" if archived else "archived_at IS NULL")
    if exclude_folder_items:
        clauses.append("folder_id IS NULL")
    if resource_type:
        clauses.append("type = ?")
        params.append(ResourceType(resource_type).value)

    rows = conn.execute(
        f"SELECT * FROM resources WHERE {' AND '.join(clauses)} "  # noqa: S608
        "ORDER BY created_at DESC, rowid DESC",
        params,
    ).fetchall()
    return [_row_to_resource(r) for r in rows]


def list_archived_resources(
    conn: sqlite3.Connection,
    user_id: str,
    resource_type: Optional[ResourceType | str] = None,
) -> list[Resource]:
    return list_resources(conn, user_id, resource_type, archived=True)


def list_deleted_resources(conn: sqlite3.Connection, user_id: str) -> list[Resource]:
    """Return the user's soft-deleted resources, most recently deleted first."""
    rows = conn.execute(
        """
        SELECT * FROM resources
        WHERE  user_id = ? AND deleted_at IS NOT NULL
        ORDER  BY deleted_at DESC
        """,
        (user_id,),
    ).fetchall()
    return [_row_to_resource(r) for r in rows]


def get_resource_stats(
    conn: sqlite3.Connection, user_id: str, archived: bool = False
) -> dict[str, int]:
    """Count non-deleted resources per type, folder members included.

    Returns a dict with an ``all`` key plus one key per resource type.
    """
    archived_clause = "archived_at IS NOT NULL" if archived else "archived_at IS NULL"
    rows = conn.execute(
        f"""
        SELECT type, COUNT(*) AS n
        FROM   resources
        WHERE  user_id = ? AND deleted_at IS NULL AND {archived_clause}
        GROUP  BY type
        """,  # noqa: S608
        (user_id,),
    ).fetchall()

    stats = {"all": 0, **{t.value: 0 for t in ResourceType}}
    for row in rows:
        stats[row["type"]] = row["n"]
        stats["all"] += row["n"]
    return stats


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------

def update_resource(conn: sqlite3.Connection, resource_id: str, **kwargs: Any) -> Resource:
    """Update editable fields on a resource.

    Allowed keyword arguments: ``title``, ``description``, ``metadata``
    (dict), ``position``.  ``type`` is immutable and ``folder_id`` changes go
    through :mod:`stash.db.folders`.

    Raises:
        NotFoundError: If ``resource_id`` does not exist.
        ValueError: If an unknown field is given or nothing is given.
    """
    _require(conn, resource_id)

    allowed = {"title", "description", "metadata", "position"}
    updates: dict[str, Any] = {}
    for key, value in kwargs.items():
        if key not in allowed:
            raise ValueError(f"Cannot update field {key!r}")
        updates[key] = json.dumps(value) if key == "metadata" else value

    if not updates:
        raise ValueError("No valid fields provided to update_resource()")

    updates["updated_at"] = int(time())
    set_clause = ", ".join(f"{col} = ?" for col in updates)
    with conn:
        conn.execute(
            f"UPDATE resources SET {set_clause} WHERE id = ?",  # noqa: S608
            [*updates.values(), resource_id],
        )
    return get_resource(conn, resource_id)  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

def archive_resource(conn: sqlite3.Connection, resource_id: str) -> Resource:
    archived = _require(conn, resource_id).archive(int(time()))
    return _set_timestamps(conn, archived, archived_at=archived.archived_at)


def unarchive_resource(conn: sqlite3.Connection, resource_id: str) -> Resource:
    active = _require(conn, resource_id).unarchive()
    return _set_timestamps(conn, active, archived_at=None)


def delete_resource(conn: sqlite3.Connection, resource_id: str) -> Resource:
    """Soft-delete a resource (moves it to the trash)."""
    deleted = _require(conn, resource_id).soft_delete(int(time()))
    return _set_timestamps(conn, deleted, deleted_at=deleted.deleted_at)


def restore_resource(conn: sqlite3.Connection, resource_id: str) -> Resource:
    restored = _require(conn, resource_id).restore()
    return _set_timestamps(conn, restored, deleted_at=None)


def permanent_delete_resource(
    conn: sqlite3.Connection, resource_id: str, storage_root: Optional[Path] = None
) -> None:
    """Remove a resource row and its stored file (if no copy still references it)."""
    resource = _require(conn, resource_id)
    with conn:
        conn.execute("DELETE FROM resources WHERE id = ?", (resource_id,))
    if resource.storage_path:
        _remove_unreferenced_files(conn, [resource.storage_path], storage_root)


def empty_resource_trash(
    conn: sqlite3.Connection, user_id: str, storage_root: Optional[Path] = None
) -> int:
    """Permanently delete every soft-deleted resource of a user.  Returns the count."""
    deleted = list_deleted_resources(conn, user_id)
    with conn:
        conn.execute(
            "DELETE FROM resources WHERE user_id = ? AND deleted_at IS NOT NULL",
            (user_id,),
        )
    paths = [r.storage_path for r in deleted if r.storage_path]
    if paths:
        _remove_unreferenced_files(conn, paths, storage_root)
    logger.info(f"Emptied resource trash for {user_id}: {len(deleted)} removed")
    return len(deleted)


def _remove_unreferenced_files(
    conn: sqlite3.Connection, storage_paths: list[str], storage_root: Optional[Path]
) -> None:
    # Copies share the original's storage path.
    orphaned = [
        path
        for path in set(storage_paths)
        if conn.execute(
            "SELECT 1 FROM resources WHERE storage_path = ? LIMIT 1", (path,)
        ).fetchone() is None
    ]
    storage.remove(orphaned, root=storage_root)
