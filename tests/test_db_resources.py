"""Tests for the resources table: creation, listing, lifecycle and trash.

All tests use an in-memory SQLite database.  Uploaded files go to a
temporary storage root; no network calls are made.
"""

from __future__ import annotations

import sqlite3
from typing import Generator

import httpx
import pytest
import respx

from stash.config import settings
from stash.db.connection import get_connection
from stash.db.migrations import MIGRATIONS, current_version, init_db
from stash.db.models import Lifecycle, ResourceType
from stash.db import folders as folders_db
from stash.db.resources import (
    archive_resource,
    create_file_resource,
    create_link_resource,
    create_resource,
    delete_resource,
    empty_resource_trash,
    generate_title_from_url,
    get_resource,
    get_resource_stats,
    list_archived_resources,
    list_deleted_resources,
    list_resources,
    permanent_delete_resource,
    restore_resource,
    unarchive_resource,
    update_resource,
)
from stash.errors import LifecycleError, NotFoundError


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def conn() -> Generator[sqlite3.Connection, None, None]:
    connection = get_connection(db_path=":memory:")  # type: ignore[arg-type]
    init_db(connection)
    yield connection
    connection.close()


@pytest.fixture()
def storage_root(tmp_path):
    root = tmp_path / "files"
    root.mkdir()
    return root


# ---------------------------------------------------------------------------
# init / migrations
# ---------------------------------------------------------------------------

class TestInit:
    def test_init_is_idempotent(self, conn):
        init_db(conn)
        assert current_version(conn) == MIGRATIONS[-1][0]

    def test_type_is_immutable(self, conn):
        r = create_resource(conn, "u1", ResourceType.LINK, "x")
        with pytest.raises(sqlite3.IntegrityError):
            with conn:
                conn.execute("UPDATE resources SET type = 'image' WHERE id = ?", (r.id,))


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------

class TestCreate:
    def test_title_from_url(self):
        assert generate_title_from_url("https://example.com/docs/") == "example.com/docs"
        assert generate_title_from_url("not a url") == "not a url"

    def test_plain_link(self, conn):
        r = create_link_resource(conn, "u1", "https://example.com/page", "note")
        assert r.type == ResourceType.LINK
        assert r.title == "example.com/page"
        assert r.description == "note"
        assert r.lifecycle == Lifecycle.ACTIVE

    def test_github_link_offline(self, conn):
        r = create_link_resource(
            conn, "u1", "https://github.com/encode/httpx", fetch_repo_info=False
        )
        assert r.type == ResourceType.GITHUB
        assert r.title == "encode/httpx"
        assert r.metadata == {"owner": "encode", "repo": "httpx"}

    def test_github_link_with_metadata(self, conn):
        payload = {
            "owner": {"login": "encode"},
            "name": "httpx",
            "description": "A next generation HTTP client",
            "stargazers_count": 12000,
            "forks_count": 800,
            "language": "Python",
            "homepage": "https://www.python-httpx.org",
            "pushed_at": "2024-01-01T00:00:00Z",
            "topics": ["http", "asyncio"],
        }
        with respx.mock:
            respx.get(f"{settings.github_api_base}/repos/encode/httpx").mock(
                return_value=httpx.Response(200, json=payload)
            )
            r = create_link_resource(conn, "u1", "https://github.com/encode/httpx")
        assert r.description == "A next generation HTTP client"
        assert r.metadata["stars"] == 12000
        assert r.metadata["topics"] == ["http", "asyncio"]

    def test_upload_image(self, conn, storage_root):
        r = create_file_resource(
            conn, "u1", "Photo.PNG", b"\x89PNG", "image/png", storage_root=storage_root
        )
        assert r.type == ResourceType.IMAGE
        assert r.storage_path == f"u1/{r.id}.png"
        assert (storage_root / r.storage_path).read_bytes() == b"\x89PNG"
        assert r.metadata == {"content_type": "image/png", "size": 4}

    def test_upload_document_guesses_type(self, conn, storage_root):
        r = create_file_resource(conn, "u1", "notes.pdf", b"%PDF", storage_root=storage_root)
        assert r.type == ResourceType.DOCUMENT
        assert r.metadata["content_type"] == "application/pdf"


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------

class TestList:
    def test_newest_first_and_root_only(self, conn):
        a = create_resource(conn, "u1", ResourceType.LINK, "a")
        b = create_resource(conn, "u1", ResourceType.LINK, "b")
        folder = folders_db.create_folder(conn, "u1", ResourceType.LINK, "F")
        c = create_resource(conn, "u1", ResourceType.LINK, "c", folder_id=folder.id)
        create_resource(conn, "u2", ResourceType.LINK, "other user")

        assert [r.id for r in list_resources(conn, "u1")] == [b.id, a.id]
        all_levels = list_resources(conn, "u1", exclude_folder_items=False)
        assert {r.id for r in all_levels} == {a.id, b.id, c.id}

    def test_filter_by_type(self, conn):
        create_resource(conn, "u1", ResourceType.LINK, "a")
        img = create_resource(conn, "u1", ResourceType.IMAGE, "b")
        assert [r.id for r in list_resources(conn, "u1", "image")] == [img.id]

    def test_stats_include_folder_members(self, conn):
        folder = folders_db.create_folder(conn, "u1", ResourceType.IMAGE, "F")
        create_resource(conn, "u1", ResourceType.IMAGE, "a", folder_id=folder.id)
        create_resource(conn, "u1", ResourceType.IMAGE, "b")
        gone = create_resource(conn, "u1", ResourceType.LINK, "c")
        delete_resource(conn, gone.id)

        stats = get_resource_stats(conn, "u1")
        assert stats["all"] == 2
        assert stats["image"] == 2
        assert stats["link"] == 0


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------

class TestUpdate:
    def test_update_fields(self, conn):
        r = create_resource(conn, "u1", ResourceType.LINK, "old")
        updated = update_resource(conn, r.id, title="new", metadata={"k": 1})
        assert updated.title == "new"
        assert updated.metadata == {"k": 1}

    def test_type_rejected(self, conn):
        r = create_resource(conn, "u1", ResourceType.LINK, "x")
        with pytest.raises(ValueError):
            update_resource(conn, r.id, type="image")

    def test_unknown_resource(self, conn):
        with pytest.raises(NotFoundError):
            update_resource(conn, "missing", title="x")


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

class TestLifecycle:
    def test_soft_delete_and_restore(self, conn):
        r = create_resource(conn, "u1", ResourceType.LINK, "x")
        deleted = delete_resource(conn, r.id)
        assert deleted.lifecycle == Lifecycle.DELETED
        assert list_resources(conn, "u1") == []
        assert [d.id for d in list_deleted_resources(conn, "u1")] == [r.id]

        restored = restore_resource(conn, r.id)
        assert restored.lifecycle == Lifecycle.ACTIVE
        assert [x.id for x in list_resources(conn, "u1")] == [r.id]

    def test_double_delete_rejected(self, conn):
        r = create_resource(conn, "u1", ResourceType.LINK, "x")
        delete_resource(conn, r.id)
        with pytest.raises(LifecycleError):
            delete_resource(conn, r.id)

    def test_archive_roundtrip(self, conn):
        r = create_resource(conn, "u1", ResourceType.LINK, "x")
        assert archive_resource(conn, r.id).lifecycle == Lifecycle.ARCHIVED
        assert list_resources(conn, "u1") == []
        assert [a.id for a in list_archived_resources(conn, "u1")] == [r.id]
        assert unarchive_resource(conn, r.id).lifecycle == Lifecycle.ACTIVE

    def test_unarchive_active_rejected(self, conn):
        r = create_resource(conn, "u1", ResourceType.LINK, "x")
        with pytest.raises(LifecycleError):
            unarchive_resource(conn, r.id)

    def test_timestamp_before_creation_rejected(self, conn):
        r = create_resource(conn, "u1", ResourceType.LINK, "x")
        with pytest.raises(LifecycleError):
            r.archive(r.created_at - 1)

    def test_deleted_wins_over_archived(self, conn):
        r = create_resource(conn, "u1", ResourceType.LINK, "x")
        archive_resource(conn, r.id)
        assert delete_resource(conn, r.id).lifecycle == Lifecycle.DELETED


# ---------------------------------------------------------------------------
# Permanent delete / trash
# ---------------------------------------------------------------------------

class TestPermanentDelete:
    def test_removes_row_and_file(self, conn, storage_root):
        r = create_file_resource(conn, "u1", "a.txt", b"hi", storage_root=storage_root)
        permanent_delete_resource(conn, r.id, storage_root)
        assert get_resource(conn, r.id) is None
        assert not (storage_root / r.storage_path).exists()

    def test_file_kept_while_a_copy_references_it(self, conn, storage_root):
        r = create_file_resource(conn, "u1", "a.txt", b"hi", storage_root=storage_root)
        folder = folders_db.create_folder(conn, "u1", ResourceType.DOCUMENT, "Docs")
        copy = folders_db.copy_resource_to_folder(conn, r.id, folder.id)

        permanent_delete_resource(conn, r.id, storage_root)
        assert (storage_root / copy.storage_path).exists()

        permanent_delete_resource(conn, copy.id, storage_root)
        assert not (storage_root / copy.storage_path).exists()

    def test_empty_trash(self, conn, storage_root):
        keep = create_resource(conn, "u1", ResourceType.LINK, "keep")
        doomed = create_file_resource(conn, "u1", "a.txt", b"hi", storage_root=storage_root)
        delete_resource(conn, doomed.id)

        assert empty_resource_trash(conn, "u1", storage_root) == 1
        assert get_resource(conn, doomed.id) is None
        assert get_resource(conn, keep.id) is not None
        assert not (storage_root / doomed.storage_path).exists()

    def test_unknown_resource(self, conn):
        with pytest.raises(NotFoundError):
            permanent_delete_resource(conn, "missing")
