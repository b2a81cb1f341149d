"""Resource commands: add links, upload files, trash and archive."""

import typer
from pathlib import Path
from typing import Optional

from stash.db import get_connection, init_db
from stash.db import resources as resources_db
from stash.db.models import ResourceType
from stash.errors import StashError

from stash_cli.context import load_context, require_user
from stash_cli.rendering import resource_line

resource_app = typer.Typer(help="Manage saved links, repositories, documents and images.")


@resource_app.command("add")
@require_user
def resource_add(
    url: str = typer.Argument(..., help="URL to save. GitHub repository URLs are detected."),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Optional note."),
    offline: bool = typer.Option(False, "--offline", help="Skip fetching GitHub repo metadata."),
) -> None:
    """Save a link (or GitHub repository) for the active user."""
    ctx = load_context()
    conn = get_connection()
    init_db(conn)

    try:
        resource = resources_db.create_link_resource(
            conn, ctx.active_user_id, url, description, fetch_repo_info=not offline
        )
        typer.echo(f"✅ Saved {resource.type.label}: {resource.title} [{resource.id}]")
        stars = resource.metadata.get("stars")
        if stars is not None:
            typer.echo(f"   ⭐ {stars}  🍴 {resource.metadata.get('forks', 0)}")
    finally:
        conn.close()


@resource_app.command("upload")
@require_user
def resource_upload(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="File to upload."),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Optional note."),
) -> None:
    """Store a local file as a document or image resource."""
    ctx = load_context()
    conn = get_connection()
    init_db(conn)

    try:
        resource = resources_db.create_file_resource(
            conn, ctx.active_user_id, path.name, path.read_bytes(), description=description
        )
        typer.echo(f"✅ Uploaded {resource.type.label}: {resource.title} [{resource.id}]")
    finally:
        conn.close()


@resource_app.command("list")
@require_user
def resource_list(
    type: Optional[ResourceType] = typer.Option(None, "--type", help="Filter by resource type."),
    archived: bool = typer.Option(False, "--archived", help="Show archived resources instead."),
    all_levels: bool = typer.Option(False, "--all", help="Include resources inside folders."),
) -> None:
    """List the active user's resources, newest first."""
    ctx = load_context()
    conn = get_connection()
    init_db(conn)

    try:
        items = resources_db.list_resources(
            conn, ctx.active_user_id, type, archived=archived, exclude_folder_items=not all_levels
        )
        if not items:
            typer.echo("No resources found.")
            return
        for r in items:
            typer.echo(f"  {resource_line(r)}")
    finally:
        conn.close()


def _lifecycle_command(action: str, label: str, emoji: str):
    """Build a command applying ``resources_db.<action>`` to one resource."""
    operation = getattr(resources_db, action)

    @require_user
    def command(
        resource_id: str = typer.Argument(..., help="Resource UUID."),
    ) -> None:
        conn = get_connection()
        init_db(conn)
        try:
            resource = operation(conn, resource_id)
            typer.echo(f"{emoji} {label}: {resource.title}")
        except StashError as e:
            typer.echo(f"❌ {e}")
            raise typer.Exit(code=1)
        finally:
            conn.close()

    command.__doc__ = f"{label} a resource."
    return command


resource_app.command("rm")(_lifecycle_command("delete_resource", "Moved to trash", "🗑️"))
resource_app.command("restore")(_lifecycle_command("restore_resource", "Restored", "♻️"))
resource_app.command("archive")(_lifecycle_command("archive_resource", "Archived", "📦"))
resource_app.command("unarchive")(_lifecycle_command("unarchive_resource", "Unarchived", "📤"))


@resource_app.command("purge")
@require_user
def resource_purge(
    resource_id: str = typer.Argument(..., help="Resource UUID."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Permanently delete a resource and its stored file."""
    if not yes:
        typer.confirm("This cannot be undone. Continue?", abort=True)
    conn = get_connection()
    init_db(conn)
    try:
        resources_db.permanent_delete_resource(conn, resource_id)
        typer.echo(f"🔥 Permanently deleted {resource_id}")
    except StashError as e:
        typer.echo(f"❌ {e}")
        raise typer.Exit(code=1)
    finally:
        conn.close()


@resource_app.command("trash")
@require_user
def resource_trash(
    empty: bool = typer.Option(False, "--empty", help="Permanently delete everything in the trash."),
) -> None:
    """Show (or empty) the trash."""
    ctx = load_context()
    conn = get_connection()
    init_db(conn)

    try:
        if empty:
            count = resources_db.empty_resource_trash(conn, ctx.active_user_id)
            typer.echo(f"🔥 Emptied trash: {count} resource(s) removed")
            return
        items = resources_db.list_deleted_resources(conn, ctx.active_user_id)
        if not items:
            typer.echo("Trash is empty.")
            return
        typer.echo("Trash:")
        for r in items:
            typer.echo(f"  {resource_line(r)}")
    finally:
        conn.close()


@resource_app.command("stats")
@require_user
def resource_stats(
    archived: bool = typer.Option(False, "--archived", help="Count archived resources instead."),
) -> None:
    """Show resource counts per type."""
    ctx = load_context()
    conn = get_connection()
    init_db(conn)

    try:
        stats = resources_db.get_resource_stats(conn, ctx.active_user_id, archived=archived)
        typer.echo(f"\n📊 Resources for {ctx.active_user_id}")
        typer.echo("-" * 40)
        typer.echo(f"   Total: {stats['all']}")
        for rtype in ResourceType:
            typer.echo(f"    - {rtype.label}: {stats[rtype.value]}")
        typer.echo("")
    finally:
        conn.close()
