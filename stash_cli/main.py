"""Stash CLI entry-point.

Usage:
    stash --help

Command groups:
    db        → database setup
    resource  → links, repositories, documents and images
    folder    → typed folders, moves, copies, trash
    use       → select the active user
"""

from __future__ import annotations

from typing import Optional

import typer

from stash.config import settings
from stash.db import get_connection, init_db
from stash.logger import setup_logger

from stash_cli.commands.folders import folder_app
from stash_cli.commands.resources import resource_app
from stash_cli.context import load_context, save_context

app = typer.Typer(
    name="stash",
    help="Stash: save links and files, organise them in typed folders.",
    no_args_is_help=True,
)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING, ..."),
) -> None:
    setup_logger(log_level)


# ---------------------------------------------------------------------------
# DB commands
# ---------------------------------------------------------------------------
db_app = typer.Typer(help="Database operations.", no_args_is_help=True)
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init() -> None:
    """Initialise the SQLite database (create tables if they do not exist)."""
    conn = get_connection()
    init_db(conn)
    conn.close()
    typer.echo(f"[db init] Database ready at {settings.db_path}")


# ---------------------------------------------------------------------------
# User context
# ---------------------------------------------------------------------------
@app.command("use")
def use(
    user_id: Optional[str] = typer.Argument(None, help="User id to act as (omit to show the current one)."),
) -> None:
    """Select the active user for resource and folder commands."""
    ctx = load_context()
    if user_id is None:
        if ctx.active_user_id:
            typer.echo(f"👤 Active user: {ctx.active_user_id}")
        else:
            typer.echo("No active user selected.")
        return
    ctx.active_user_id = user_id
    save_context(ctx)
    typer.echo(f"👤 Switched to user: {user_id}")


app.add_typer(resource_app, name="resource")
app.add_typer(folder_app, name="folder")


if __name__ == "__main__":
    app()
