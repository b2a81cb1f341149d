"""Folder commands: create, nest, move resources and cascade deletes."""

import typer
from typing import List, Optional

from stash.db import get_connection, init_db
from stash.db import folders as folders_db
from stash.db import resources as resources_db
from stash.db.models import ResourceType
from stash.errors import NotFoundError, StashError

from stash_cli.context import load_context, require_user
from stash_cli.rendering import render_tree

folder_app = typer.Typer(help="Organise resources into typed folders.")


def _fail(e: Exception) -> None:
    typer.echo(f"❌ {e}")
    raise typer.Exit(code=1)


@folder_app.command("new")
@require_user
def folder_new(
    name: str = typer.Argument(..., help="Folder name."),
    type: ResourceType = typer.Option(..., "--type", help="Resource type the folder accepts."),
    parent: Optional[str] = typer.Option(None, "--parent", help="Parent folder UUID."),
    color: Optional[str] = typer.Option(None, "--color", help="Hex color, e.g. #6366f1."),
) -> None:
    """Create a folder that accepts one resource type."""
    ctx = load_context()
    conn = get_connection()
    init_db(conn)
    try:
        folder = folders_db.create_folder(
            conn, ctx.active_user_id, type, name, parent_id=parent, color=color
        )
        typer.echo(f"✅ Folder created: {folder.name} ({folder.resource_type.label}) [{folder.id}]")
    except StashError as e:
        _fail(e)
    finally:
        conn.close()


@folder_app.command("merge")
@require_user
def folder_merge(
    resource_ids: List[str] = typer.Argument(..., help="Two or more resource UUIDs of one type."),
    name: Optional[str] = typer.Option(None, "--name", help="Folder name."),
    parent: Optional[str] = typer.Option(None, "--parent", help="Parent folder UUID (root when omitted)."),
) -> None:
    """Create a folder from resources of the same type and move them into it."""
    ctx = load_context()
    conn = get_connection()
    init_db(conn)
    try:
        resources = []
        for rid in resource_ids:
            resource = resources_db.get_resource(conn, rid)
            if resource is None:
                raise NotFoundError(f"Resource not found: {rid!r}")
            resources.append(resource)
        folder = folders_db.create_folder_from_resources(
            conn, ctx.active_user_id, resource_ids, resources, name, parent_id=parent
        )
        typer.echo(f"✅ Folder created: {folder.name} with {len(resources)} resources [{folder.id}]")
    except StashError as e:
        _fail(e)
    finally:
        conn.close()


@folder_app.command("list")
@require_user
def folder_list(
    deleted: bool = typer.Option(False, "--deleted", help="Show folders in the trash."),
    archived: bool = typer.Option(False, "--archived", help="Show archived folders."),
) -> None:
    """List the active user's folders."""
    ctx = load_context()
    conn = get_connection()
    init_db(conn)
    try:
        if deleted:
            folders = folders_db.list_deleted_folders(conn, ctx.active_user_id)
        elif archived:
            folders = folders_db.list_archived_folders(conn, ctx.active_user_id)
        else:
            folders = [
                f for f in folders_db.list_folders(conn, ctx.active_user_id)
                if f.deleted_at is None and f.archived_at is None
            ]
        if not folders:
            typer.echo("No folders found.")
            return
        for f in folders:
            count = folders_db.count_folder_resources(conn, f.id, ctx.active_user_id)
            typer.echo(f"  📁 {f.name} \t({f.resource_type.label}, {count} items) [{f.id}]")
    finally:
        conn.close()


@folder_app.command("tree")
@require_user
def folder_tree() -> None:
    """Show active folders, their resources and root-level resources as a tree."""
    ctx = load_context()
    conn = get_connection()
    init_db(conn)
    try:
        folders = [
            f for f in folders_db.list_folders(conn, ctx.active_user_id)
            if f.deleted_at is None and f.archived_at is None
        ]
        members = [
            r for f in folders
            for r in folders_db.get_folder_resources(conn, f.id, ctx.active_user_id)
        ]
        loose = folders_db.get_folder_resources(conn, None, ctx.active_user_id)
        typer.echo(render_tree(folders_db.build_folder_tree(folders, members), loose))
    finally:
        conn.close()


@folder_app.command("path")
@require_user
def folder_path(folder_id: str = typer.Argument(..., help="Folder UUID.")) -> None:
    """Print the breadcrumb from the root to a folder."""
    conn = get_connection()
    init_db(conn)
    try:
        typer.echo(" / ".join(f.name for f in folders_db.get_folder_path(conn, folder_id)))
    except StashError as e:
        _fail(e)
    finally:
        conn.close()


@folder_app.command("mv")
@require_user
def folder_mv(
    folder_id: str = typer.Argument(..., help="Folder to move."),
    target: Optional[str] = typer.Argument(None, help="Target folder UUID (omit for root)."),
) -> None:
    """Move a folder into another folder of the same type, or to the root."""
    conn = get_connection()
    init_db(conn)
    try:
        folder = folders_db.move_folder_to_folder(conn, folder_id, target)
        typer.echo(f"📂 Folder moved: {folder.name}")
    except StashError as e:
        _fail(e)
    finally:
        conn.close()


@folder_app.command("put")
@require_user
def folder_put(
    resource_id: str = typer.Argument(..., help="Resource to move."),
    folder_id: Optional[str] = typer.Argument(None, help="Target folder UUID (omit for root)."),
) -> None:
    """Move a resource into a folder, or back to the root."""
    conn = get_connection()
    init_db(conn)
    try:
        resource = folders_db.move_resource_to_folder(conn, resource_id, folder_id)
        typer.echo(f"📥 Moved to folder: {resource.title}")
    except StashError as e:
        _fail(e)
    finally:
        conn.close()


@folder_app.command("cp")
@require_user
def folder_cp(
    resource_id: str = typer.Argument(..., help="Resource to copy."),
    folder_id: str = typer.Argument(..., help="Target folder UUID."),
) -> None:
    """Copy a resource into a folder."""
    conn = get_connection()
    init_db(conn)
    try:
        copy = folders_db.copy_resource_to_folder(conn, resource_id, folder_id)
        typer.echo(f"📋 Copied to folder: {copy.title} [{copy.id}]")
    except StashError as e:
        _fail(e)
    finally:
        conn.close()


@folder_app.command("rm")
@require_user
def folder_rm(folder_id: str = typer.Argument(..., help="Folder UUID.")) -> None:
    """Move a folder, its resources and its sub-folders to the trash."""
    conn = get_connection()
    init_db(conn)
    try:
        folders_db.delete_folder(conn, folder_id)
        typer.echo(f"🗑️ Moved folder to trash: {folder_id}")
    except StashError as e:
        _fail(e)
    finally:
        conn.close()


@folder_app.command("restore")
@require_user
def folder_restore(folder_id: str = typer.Argument(..., help="Folder UUID.")) -> None:
    """Restore a folder and everything deleted with it."""
    conn = get_connection()
    init_db(conn)
    try:
        folders_db.restore_folder(conn, folder_id)
        typer.echo(f"♻️ Restored folder: {folder_id}")
    except StashError as e:
        _fail(e)
    finally:
        conn.close()


@folder_app.command("purge")
@require_user
def folder_purge(
    folder_id: Optional[str] = typer.Argument(None, help="Folder UUID (omit with --all)."),
    all_: bool = typer.Option(False, "--all", help="Empty the whole folder trash."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Permanently delete a folder with its contents (or the whole folder trash)."""
    if folder_id is None and not all_:
        typer.echo("❌ Give a folder UUID or --all.")
        raise typer.Exit(code=1)
    if not yes:
        typer.confirm("This cannot be undone. Continue?", abort=True)

    ctx = load_context()
    conn = get_connection()
    init_db(conn)
    try:
        if all_:
            count = folders_db.empty_folder_trash(conn, ctx.active_user_id)
            typer.echo(f"🔥 Emptied folder trash: {count} folder(s) removed")
        else:
            folders_db.permanent_delete_folder(conn, folder_id)
            typer.echo(f"🔥 Permanently deleted folder {folder_id}")
    except StashError as e:
        _fail(e)
    finally:
        conn.close()


@folder_app.command("archive")
@require_user
def folder_archive(folder_id: str = typer.Argument(..., help="Folder UUID.")) -> None:
    """Archive a folder."""
    conn = get_connection()
    init_db(conn)
    try:
        folder = folders_db.archive_folder(conn, folder_id)
        typer.echo(f"📦 Archived: {folder.name}")
    except StashError as e:
        _fail(e)
    finally:
        conn.close()


@folder_app.command("unarchive")
@require_user
def folder_unarchive(folder_id: str = typer.Argument(..., help="Folder UUID.")) -> None:
    """Bring an archived folder back."""
    conn = get_connection()
    init_db(conn)
    try:
        folder = folders_db.unarchive_folder(conn, folder_id)
        typer.echo(f"📤 Unarchived: {folder.name}")
    except StashError as e:
        _fail(e)
    finally:
        conn.close()


@folder_app.command("classify")
@require_user
def folder_classify() -> None:
    """Group root-level articles into one folder per subscription or author."""
    ctx = load_context()
    conn = get_connection()
    init_db(conn)
    try:
        result = folders_db.auto_classify_articles_by_source(conn, ctx.active_user_id)
        typer.echo(
            f"📰 Classified articles: {result['created']} folder(s) created, "
            f"{result['moved']} moved, {result['skipped']} left at the root"
        )
    finally:
        conn.close()
