"""Asynchronous resource/folder store used by the drag controller.

:class:`ResourceStore` is the contract the drag controller depends on; any
failure surfaces as a raised exception.  :class:`SqliteResourceStore` adapts
the blocking functions in :mod:`stash.db.folders` by running them on a
worker thread so the event loop is never blocked.
"""

from __future__ import annotations

import asyncio
import sqlite3
from pathlib import Path
from typing import Optional, Protocol, Sequence

from stash.db import folders as folders_db
from stash.db.models import Folder, Resource


class ResourceStore(Protocol):
    async def create_folder_from_resources(
        self,
        user_id: str,
        resource_ids: Sequence[str],
        resources: Sequence[Resource],
        name: Optional[str] = None,
        parent_id: Optional[str] = None,
    ) -> Folder: ...

    async def move_resource_to_folder(self, resource_id: str, folder_id: Optional[str]) -> Resource: ...

    async def copy_resource_to_folder(self, resource_id: str, folder_id: str) -> Resource: ...

    async def move_folder_to_folder(self, folder_id: str, target_folder_id: Optional[str]) -> Folder: ...

    async def delete_folder(self, folder_id: str) -> None: ...

    async def restore_folder(self, folder_id: str) -> None: ...

    async def permanent_delete_folder(self, folder_id: str) -> None: ...

    async def archive_folder(self, folder_id: str) -> Folder: ...

    async def unarchive_folder(self, folder_id: str) -> Folder: ...


class SqliteResourceStore:
    """:class:`ResourceStore` backed by the SQLite tables."""

    def __init__(self, conn: sqlite3.Connection, storage_root: Optional[Path] = None) -> None:
        self._conn = conn
        self._storage_root = storage_root

    async def create_folder_from_resources(
        self,
        user_id: str,
        resource_ids: Sequence[str],
        resources: Sequence[Resource],
        name: Optional[str] = None,
        parent_id: Optional[str] = None,
    ) -> Folder:
        return await asyncio.to_thread(
            folders_db.create_folder_from_resources,
            self._conn, user_id, resource_ids, resources, name, parent_id,
        )

    async def move_resource_to_folder(self, resource_id: str, folder_id: Optional[str]) -> Resource:
        return await asyncio.to_thread(
            folders_db.move_resource_to_folder, self._conn, resource_id, folder_id
        )

    async def copy_resource_to_folder(self, resource_id: str, folder_id: str) -> Resource:
        return await asyncio.to_thread(
            folders_db.copy_resource_to_folder, self._conn, resource_id, folder_id
        )

    async def move_folder_to_folder(self, folder_id: str, target_folder_id: Optional[str]) -> Folder:
        return await asyncio.to_thread(
            folders_db.move_folder_to_folder, self._conn, folder_id, target_folder_id
        )

    async def delete_folder(self, folder_id: str) -> None:
        await asyncio.to_thread(folders_db.delete_folder, self._conn, folder_id)

    async def restore_folder(self, folder_id: str) -> None:
        await asyncio.to_thread(folders_db.restore_folder, self._conn, folder_id)

    async def permanent_delete_folder(self, folder_id: str) -> None:
        await asyncio.to_thread(
            folders_db.permanent_delete_folder, self._conn, folder_id, self._storage_root
        )

    async def archive_folder(self, folder_id: str) -> Folder:
        return await asyncio.to_thread(folders_db.archive_folder, self._conn, folder_id)

    async def unarchive_folder(self, folder_id: str) -> Folder:
        return await asyncio.to_thread(folders_db.unarchive_folder, self._conn, folder_id)
