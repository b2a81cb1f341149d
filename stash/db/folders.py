"""Operations on the ``resource_folders`` table.

A folder holds resources of exactly one type (``resource_type``) and may
nest sub-folders of the same type.  Every write that places something in a
folder validates the type, and folder moves also reject cycles, before any
row is touched.

Deleting a folder is a soft delete that cascades to its direct resources
and, depth-first, to its sub-folders.  Restoring mirrors the cascade.
Permanent deletion removes sub-folders first, then the folder's resources,
then the folder row.
"""

from __future__ import annotations

import sqlite3
import uuid
from collections import defaultdict
from pathlib import Path
from time import time
from typing import Any, Optional, Sequence

from loguru import logger

from stash.config import settings
from stash.db import resources as resources_db
from stash.db.models import Folder, FolderTreeNode, Resource, ResourceType
from stash.db.resources import _row_to_resource
from stash.errors import FolderRuleError, NotFoundError
from stash.rules import can_add_resource_to_folder


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _row_to_folder(row: sqlite3.Row) -> Folder:
    return Folder(
        id=row["id"],
        user_id=row["user_id"],
        name=row["name"],
        parent_id=row["parent_id"],
        resource_type=ResourceType(row["resource_type"]),
        color=row["color"],
        icon=row["icon"],
        position=row["position"],
        archived_at=row["archived_at"],
        deleted_at=row["deleted_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _require(conn: sqlite3.Connection, folder_id: str) -> Folder:
    folder = get_folder(conn, folder_id)
    if folder is None:
        raise NotFoundError(f"Folder not found: {folder_id!r}")
    return folder


def _type_mismatch(folder: Folder) -> FolderRuleError:
    return FolderRuleError(
        f"Only {folder.resource_type.label} resources can be placed in this folder"
    )


def _child_ids(conn: sqlite3.Connection, folder_id: str, deleted: Optional[bool] = None) -> list[str]:
    sql = "SELECT id FROM resource_folders WHERE parent_id = ?"
    if deleted is True:
        sql += " AND deleted_at IS NOT NULL"
    elif deleted is False:
        sql += " AND deleted_at IS NULL"
    return [r["id"] for r in conn.execute(sql, (folder_id,)).fetchall()]


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------

def get_folder(conn: sqlite3.Connection, folder_id: str) -> Optional[Folder]:
    """Fetch a single folder by id.  Returns ``None`` if not found."""
    row = conn.execute(
        "SELECT * FROM resource_folders WHERE id = ?", (folder_id,)
    ).fetchone()
    return _row_to_folder(row) if row else None


def list_folders(conn: sqlite3.Connection, user_id: str) -> list[Folder]:
    """Return every folder of a user (any state), ordered by position."""
    rows = conn.execute(
        "SELECT * FROM resource_folders WHERE user_id = ? ORDER BY position ASC",
        (user_id,),
    ).fetchall()
    return [_row_to_folder(r) for r in rows]


def list_subfolders(
    conn: sqlite3.Connection, parent_id: Optional[str], user_id: str
) -> list[Folder]:
    """Active sub-folders of *parent_id* (root level when ``None``)."""
    parent_clause = "parent_id = ?" if parent_id else "parent_id IS NULL"
    params: list[Any] = [user_id] + ([parent_id] if parent_id else [])
    rows = conn.execute(
        f"""
        SELECT * FROM resource_folders
        WHERE  user_id = ? AND deleted_at IS NULL AND archived_at IS NULL
          AND  {parent_clause}
        ORDER  BY position ASC
        """,  # noqa: S608
        params,
    ).fetchall()
    return [_row_to_folder(r) for r in rows]


def _folder_resources_query(folder_id: Optional[str]) -> tuple[str, list[Any]]:
    folder_clause = "folder_id = ?" if folder_id else "folder_id IS NULL"
    where = (
        "user_id = ? AND deleted_at IS NULL AND archived_at IS NULL "
        f"AND {folder_clause}"
    )
    return where, [folder_id] if folder_id else []


def get_folder_resources(
    conn: sqlite3.Connection,
    folder_id: Optional[str],
    user_id: str,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> list[Resource]:
    """Active resources directly inside *folder_id* (root level when ``None``)."""
    where, extra = _folder_resources_query(folder_id)
    sql = f"SELECT * FROM resources WHERE {where} ORDER BY position ASC, created_at ASC, rowid ASC"  # noqa: S608
    params: list[Any] = [user_id, *extra]
    if limit is not None or offset:
        sql += " LIMIT ? OFFSET ?"
        params += [limit if limit is not None else 100, offset or 0]
    return [_row_to_resource(r) for r in conn.execute(sql, params).fetchall()]


def count_folder_resources(
    conn: sqlite3.Connection, folder_id: Optional[str], user_id: str
) -> int:
    where, extra = _folder_resources_query(folder_id)
    row = conn.execute(
        f"SELECT COUNT(*) FROM resources WHERE {where}",  # noqa: S608
        [user_id, *extra],
    ).fetchone()
    return row[0] if row else 0


def list_deleted_folders(conn: sqlite3.Connection, user_id: str) -> list[Folder]:
    rows = conn.execute(
        """
        SELECT * FROM resource_folders
        WHERE  user_id = ? AND deleted_at IS NOT NULL
        ORDER  BY deleted_at DESC
        """,
        (user_id,),
    ).fetchall()
    return [_row_to_folder(r) for r in rows]


def list_archived_folders(conn: sqlite3.Connection, user_id: str) -> list[Folder]:
    rows = conn.execute(
        """
        SELECT * FROM resource_folders
        WHERE  user_id = ? AND deleted_at IS NULL AND archived_at IS NOT NULL
        ORDER  BY archived_at DESC
        """,
        (user_id,),
    ).fetchall()
    return [_row_to_folder(r) for r in rows]


def get_folder_path(conn: sqlite3.Connection, folder_id: str) -> list[Folder]:
    """Breadcrumb from the root folder down to *folder_id* (inclusive)."""
    path: list[Folder] = []
    seen: set[str] = set()
    current: Optional[str] = folder_id
    while current and current not in seen:
        folder = get_folder(conn, current)
        if folder is None:
            break
        seen.add(current)
        path.insert(0, folder)
        current = folder.parent_id
    return path


def can_move_folder(conn: sqlite3.Connection, folder_id: str, target_folder_id: str) -> bool:
    """Return ``False`` if the move would put a folder inside itself or a descendant."""
    if folder_id == target_folder_id:
        return False
    seen: set[str] = set()
    current: Optional[str] = target_folder_id
    while current and current not in seen:
        if current == folder_id:
            return False
        seen.add(current)
        row = conn.execute(
            "SELECT parent_id FROM resource_folders WHERE id = ?", (current,)
        ).fetchone()
        current = row["parent_id"] if row else None
    return True


def build_folder_tree(
    folders: Sequence[Folder], resources: Sequence[Resource] = ()
) -> list[FolderTreeNode]:
    """Assemble flat folder/resource lists into root-level tree nodes.

    Folders whose parent is not in *folders* are treated as roots.
    """
    nodes = {f.id: FolderTreeNode(folder=f) for f in folders}
    for resource in resources:
        if resource.folder_id in nodes:
            nodes[resource.folder_id].resources.append(resource)

    roots: list[FolderTreeNode] = []
    for folder in folders:
        node = nodes[folder.id]
        parent = nodes.get(folder.parent_id) if folder.parent_id else None
        if parent is None:
            roots.append(node)
        else:
            parent.children.append(node)
    return roots


# ---------------------------------------------------------------------------
# Create / update
# ---------------------------------------------------------------------------

def _check_parent(conn: sqlite3.Connection, parent_id: Optional[str], rtype: ResourceType) -> None:
    if parent_id is None:
        return
    parent = _require(conn, parent_id)
    if parent.resource_type != rtype:
        raise FolderRuleError(
            f"Only {parent.resource_type.label} folders can be placed in this folder"
        )


def _insert_folder(
    conn: sqlite3.Connection,
    user_id: str,
    rtype: ResourceType,
    name: Optional[str],
    parent_id: Optional[str],
    color: Optional[str],
    icon: Optional[str],
    folder_id: Optional[str],
    now: int,
) -> str:
    """INSERT a folder row; the caller owns the transaction."""
    row = conn.execute(
        "SELECT COALESCE(MAX(position), 0) FROM resource_folders WHERE user_id = ?",
        (user_id,),
    ).fetchone()
    next_position = row[0] + 1

    fid = folder_id or str(uuid.uuid4())
    conn.execute(
        """
        INSERT INTO resource_folders (
            id, user_id, name, parent_id, resource_type, color, icon,
            position, created_at, updated_at
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            fid, user_id, name or settings.default_folder_name, parent_id, rtype.value,
            color or settings.default_folder_color, icon, next_position, now, now,
        ),
    )
    return fid


def create_folder(
    conn: sqlite3.Connection,
    user_id: str,
    resource_type: ResourceType | str,
    name: Optional[str] = None,
    parent_id: Optional[str] = None,
    color: Optional[str] = None,
    icon: Optional[str] = None,
    folder_id: Optional[str] = None,
) -> Folder:
    """Create a folder restricted to *resource_type*.

    The new folder is positioned after the user's current last folder.

    Raises:
        NotFoundError: If *parent_id* does not exist.
        FolderRuleError: If the parent holds a different resource type.
    """
    rtype = ResourceType(resource_type)
    _check_parent(conn, parent_id, rtype)

    with conn:
        fid = _insert_folder(
            conn, user_id, rtype, name, parent_id, color, icon, folder_id, int(time())
        )
    logger.debug(f"Created {rtype.value} folder {fid} for {user_id}")
    return get_folder(conn, fid)  # type: ignore[return-value]


def create_folder_from_resources(
    conn: sqlite3.Connection,
    user_id: str,
    resource_ids: Sequence[str],
    resources: Sequence[Resource],
    name: Optional[str] = None,
    parent_id: Optional[str] = None,
) -> Folder:
    """Create a folder typed after *resources* and move them into it.

    The folder is created under *parent_id* (root when ``None``).  Every row
    named by *resource_ids* is checked against the folder type first, then
    the insert and the moves commit together, so a rejected call writes
    nothing.

    Raises:
        NotFoundError: Unknown resource id or parent folder.
        FolderRuleError: Fewer than two resources, or mixed types.
    """
    if len(resources) < 2 or len(resource_ids) < 2:
        raise FolderRuleError("At least two resources are needed to create a folder")
    rtype = resources[0].type
    if any(r.type != rtype for r in resources):
        raise FolderRuleError("Only resources of the same type can share a folder")

    placeholders = ", ".join("?" for _ in resource_ids)
    rows = conn.execute(
        f"SELECT id, type FROM resources WHERE id IN ({placeholders})",  # noqa: S608
        list(resource_ids),
    ).fetchall()
    stored = {row["id"]: row["type"] for row in rows}
    missing = [rid for rid in resource_ids if rid not in stored]
    if missing:
        raise NotFoundError(f"Resource not found: {missing[0]!r}")
    if any(t != rtype.value for t in stored.values()):
        raise FolderRuleError("Only resources of the same type can share a folder")
    _check_parent(conn, parent_id, rtype)

    now = int(time())
    with conn:
        fid = _insert_folder(conn, user_id, rtype, name, parent_id, None, None, None, now)
        conn.executemany(
            "UPDATE resources SET folder_id = ?, updated_at = ? WHERE id = ?",
            [(fid, now, rid) for rid in resource_ids],
        )
    logger.debug(f"Created {rtype.value} folder {fid} from {len(resource_ids)} resources")
    return get_folder(conn, fid)  # type: ignore[return-value]


def update_folder(conn: sqlite3.Connection, folder_id: str, **kwargs: Any) -> Folder:
    """Update ``name``, ``color``, ``icon``, ``parent_id`` or ``position``.

    A ``parent_id`` change goes through :func:`move_folder_to_folder` so the
    type and cycle rules apply.
    """
    _require(conn, folder_id)
    allowed = {"name", "color", "icon", "parent_id", "position"}
    unknown = set(kwargs) - allowed
    if unknown:
        raise ValueError(f"Cannot update field(s) {sorted(unknown)!r}")
    if not kwargs:
        raise ValueError("No valid fields provided to update_folder()")

    updates = dict(kwargs)
    if "parent_id" in updates:
        move_folder_to_folder(conn, folder_id, updates.pop("parent_id"))
    if updates:
        updates["updated_at"] = int(time())
        set_clause = ", ".join(f"{col} = ?" for col in updates)
        with conn:
            conn.execute(
                f"UPDATE resource_folders SET {set_clause} WHERE id = ?",  # noqa: S608
                [*updates.values(), folder_id],
            )
    return get_folder(conn, folder_id)  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Moves and copies
# ---------------------------------------------------------------------------

def move_resources_to_folder(
    conn: sqlite3.Connection, resource_ids: Sequence[str], folder_id: Optional[str]
) -> None:
    """Move several resources at once; all must match the folder's type."""
    if folder_id is not None:
        folder = _require(conn, folder_id)
        placeholders = ", ".join("?" for _ in resource_ids)
        rows = conn.execute(
            f"SELECT * FROM resources WHERE id IN ({placeholders})",  # noqa: S608
            list(resource_ids),
        ).fetchall()
        if any(not can_add_resource_to_folder(_row_to_resource(r), folder) for r in rows):
            raise _type_mismatch(folder)

    now = int(time())
    with conn:
        conn.executemany(
            "UPDATE resources SET folder_id = ?, updated_at = ? WHERE id = ?",
            [(folder_id, now, rid) for rid in resource_ids],
        )


def move_resource_to_folder(
    conn: sqlite3.Connection, resource_id: str, folder_id: Optional[str]
) -> Resource:
    """Move one resource into *folder_id*, or to the root when ``None``.

    Raises:
        NotFoundError: Unknown resource or folder.
        FolderRuleError: The resource type does not match the folder.
    """
    resource = resources_db._require(conn, resource_id)
    if folder_id is not None:
        folder = _require(conn, folder_id)
        if not can_add_resource_to_folder(resource, folder):
            raise _type_mismatch(folder)

    with conn:
        conn.execute(
            "UPDATE resources SET folder_id = ?, updated_at = ? WHERE id = ?",
            (folder_id, int(time()), resource_id),
        )
    return resources_db.get_resource(conn, resource_id)  # type: ignore[return-value]


def copy_resource_to_folder(
    conn: sqlite3.Connection, resource_id: str, folder_id: str
) -> Resource:
    """Duplicate a resource into *folder_id*.

    The copy is titled ``"<title> (copy)"`` and references the original's
    stored file rather than duplicating it.
    """
    original = resources_db._require(conn, resource_id)
    folder = _require(conn, folder_id)
    if not can_add_resource_to_folder(original, folder):
        raise _type_mismatch(folder)

    return resources_db.create_resource(
        conn,
        user_id=original.user_id,
        resource_type=original.type,
        title=f"{original.title} (copy)",
        description=original.description,
        url=original.url,
        storage_path=original.storage_path,
        file_name=original.file_name,
        metadata=original.metadata,
        folder_id=folder_id,
    )


def move_folder_to_folder(
    conn: sqlite3.Connection, folder_id: str, target_folder_id: Optional[str]
) -> Folder:
    """Re-parent a folder (``None`` moves it to the root).

    Moving a folder onto itself is a no-op.

    Raises:
        NotFoundError: Unknown folder or target.
        FolderRuleError: Type mismatch, or the target is a descendant.
    """
    folder = _require(conn, folder_id)
    if folder_id == target_folder_id:
        return folder

    if target_folder_id is not None:
        target = _require(conn, target_folder_id)
        if target.resource_type != folder.resource_type:
            raise FolderRuleError(
                f"Only {target.resource_type.label} folders can be placed in this folder"
            )
        if not can_move_folder(conn, folder_id, target_folder_id):
            raise FolderRuleError("Cannot place a folder inside its own sub-folder")

    with conn:
        conn.execute(
            "UPDATE resource_folders SET parent_id = ?, updated_at = ? WHERE id = ?",
            (target_folder_id, int(time()), folder_id),
        )
    return get_folder(conn, folder_id)  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Lifecycle (cascading)
# ---------------------------------------------------------------------------

def delete_folder(conn: sqlite3.Connection, folder_id: str, _at: Optional[int] = None) -> None:
    """Soft-delete a folder, its direct resources and, recursively, its sub-folders.

    Every row touched by one call shares the same ``deleted_at`` timestamp.
    """
    folder = _require(conn, folder_id)
    now = _at if _at is not None else int(time())
    if _at is None:
        folder.soft_delete(now)  # validates the transition for the folder the user picked

    with conn:
        conn.execute(
            "UPDATE resource_folders SET deleted_at = ?, updated_at = ? WHERE id = ?",
            (now, now, folder_id),
        )
        conn.execute(
            "UPDATE resources SET deleted_at = ?, updated_at = ? WHERE folder_id = ?",
            (now, now, folder_id),
        )
    for child_id in _child_ids(conn, folder_id, deleted=False):
        delete_folder(conn, child_id, _at=now)


def restore_folder(conn: sqlite3.Connection, folder_id: str, _cascade: bool = False) -> None:
    """Undo :func:`delete_folder`: the folder, its resources, and deleted sub-folders."""
    folder = _require(conn, folder_id)
    if not _cascade:
        folder.restore()

    now = int(time())
    with conn:
        conn.execute(
            "UPDATE resource_folders SET deleted_at = NULL, updated_at = ? WHERE id = ?",
            (now, folder_id),
        )
        conn.execute(
            "UPDATE resources SET deleted_at = NULL, updated_at = ? WHERE folder_id = ?",
            (now, folder_id),
        )
    for child_id in _child_ids(conn, folder_id, deleted=True):
        restore_folder(conn, child_id, _cascade=True)


def permanent_delete_folder(
    conn: sqlite3.Connection, folder_id: str, storage_root: Optional[Path] = None
) -> None:
    """Remove a folder for good: sub-folders first, then resources, then the row."""
    _require(conn, folder_id)
    for child_id in _child_ids(conn, folder_id):
        permanent_delete_folder(conn, child_id, storage_root)

    resource_ids = [
        r["id"]
        for r in conn.execute(
            "SELECT id FROM resources WHERE folder_id = ?", (folder_id,)
        ).fetchall()
    ]
    for rid in resource_ids:
        resources_db.permanent_delete_resource(conn, rid, storage_root)

    with conn:
        conn.execute("DELETE FROM resource_folders WHERE id = ?", (folder_id,))


def empty_folder_trash(
    conn: sqlite3.Connection, user_id: str, storage_root: Optional[Path] = None
) -> int:
    """Permanently delete every soft-deleted folder of a user.  Returns the count."""
    count = 0
    for folder in list_deleted_folders(conn, user_id):
        # An earlier iteration may already have removed it as a sub-folder.
        if get_folder(conn, folder.id) is not None:
            permanent_delete_folder(conn, folder.id, storage_root)
            count += 1
    logger.info(f"Emptied folder trash for {user_id}: {count} removed")
    return count


def archive_folder(conn: sqlite3.Connection, folder_id: str) -> Folder:
    archived = _require(conn, folder_id).archive(int(time()))
    with conn:
        conn.execute(
            "UPDATE resource_folders SET archived_at = ?, updated_at = ? WHERE id = ?",
            (archived.archived_at, int(time()), folder_id),
        )
    return get_folder(conn, folder_id)  # type: ignore[return-value]


def unarchive_folder(conn: sqlite3.Connection, folder_id: str) -> Folder:
    _require(conn, folder_id).unarchive()
    with conn:
        conn.execute(
            "UPDATE resource_folders SET archived_at = NULL, updated_at = ? WHERE id = ?",
            (int(time()), folder_id),
        )
    return get_folder(conn, folder_id)  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Article classification by feed / author
# ---------------------------------------------------------------------------

_UNKNOWN_SOURCE = "Unknown source"


def _article_folder_id(conn: sqlite3.Connection, user_id: str, name: str) -> Optional[str]:
    row = conn.execute(
        """
        SELECT id FROM resource_folders
        WHERE  user_id = ? AND resource_type = 'article' AND name = ?
          AND  deleted_at IS NULL
        ORDER  BY position ASC
        LIMIT  1
        """,
        (user_id, name),
    ).fetchone()
    return row["id"] if row else None


def auto_classify_articles_by_source(conn: sqlite3.Connection, user_id: str) -> dict[str, int]:
    """Group root-level articles into one folder per subscription / author.

    Sources with a single article are left alone.  Existing article folders
    whose name matches the source are reused.

    Returns:
        ``{"created": <new folders>, "moved": <articles moved>, "skipped": <articles left>}``
    """
    articles = resources_db.list_resources(
        conn, user_id, ResourceType.ARTICLE, archived=False, exclude_folder_items=True
    )
    groups: dict[str, list[str]] = defaultdict(list)
    for article in articles:
        source = (
            article.metadata.get("subscription_title")
            or article.metadata.get("author")
            or _UNKNOWN_SOURCE
        )
        groups[source].append(article.id)

    created = moved = skipped = 0
    for source, article_ids in groups.items():
        if len(article_ids) < 2:
            skipped += len(article_ids)
            continue

        folder_id = _article_folder_id(conn, user_id, source)
        if folder_id is None:
            folder_id = create_folder(
                conn, user_id, ResourceType.ARTICLE, source,
                color=settings.article_folder_color,
            ).id
            created += 1

        move_resources_to_folder(conn, article_ids, folder_id)
        moved += len(article_ids)

    logger.info(
        f"Classified articles for {user_id}: created={created} moved={moved} skipped={skipped}"
    )
    return {"created": created, "moved": moved, "skipped": skipped}


def find_or_create_article_folder(
    conn: sqlite3.Connection, user_id: str, source_name: str
) -> Optional[str]:
    """Return the folder id for *source_name*, creating it once a second article arrives.

    A folder is only created when at least one article from the source
    already exists, so the incoming article makes two.
    """
    if not source_name:
        return None

    existing = _article_folder_id(conn, user_id, source_name)
    if existing is not None:
        return existing

    row = conn.execute(
        """
        SELECT COUNT(*) FROM resources
        WHERE  user_id = ? AND type = 'article' AND deleted_at IS NULL
          AND  json_extract(metadata, '$.subscription_title') = ?
        """,
        (user_id, source_name),
    ).fetchone()
    if row[0] >= 1:
        return create_folder(
            conn, user_id, ResourceType.ARTICLE, source_name,
            color=settings.article_folder_color,
        ).id
    return None


def classify_article_to_folder(
    conn: sqlite3.Connection, user_id: str, resource_id: str, source_name: str
) -> bool:
    """Move one article into its source's folder if that folder already exists."""
    if not source_name:
        return False
    folder_id = _article_folder_id(conn, user_id, source_name)
    if folder_id is None:
        return False
    move_resource_to_folder(conn, resource_id, folder_id)
    return True
