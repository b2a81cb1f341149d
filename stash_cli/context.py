"""Persistent state for the Stash CLI.

Tracks the "active user" and user preferences.
Stored in `~/.stash_cli/context.json`.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from functools import wraps
from pathlib import Path
from typing import Any, Callable

import typer
from loguru import logger

from stash.config import settings


@dataclass
class CliContext:
    active_user_id: str | None = None
    user_preferences: dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=2)

    @classmethod
    def from_json(cls, data: str) -> CliContext:
        try:
            return cls(**json.loads(data))
        except (json.JSONDecodeError, TypeError):
            return cls()


def _get_context_path() -> Path:
    """Return the path to the context JSON file."""
    return settings.cli_config_dir / "context.json"


def load_context() -> CliContext:
    """Load the CLI context from disk. Returns defaults if missing/corrupt."""
    path = _get_context_path()
    if not path.exists():
        return CliContext()
    try:
        return CliContext.from_json(path.read_text(encoding="utf-8"))
    except OSError as exc:
        logger.warning(f"Could not read CLI context {path}: {exc}")
        return CliContext()


def save_context(ctx: CliContext) -> None:
    """Save the CLI context to disk."""
    settings.cli_config_dir.mkdir(parents=True, exist_ok=True)
    _get_context_path().write_text(ctx.to_json(), encoding="utf-8")


def require_user(func: Callable) -> Callable:
    """Decorator for commands that act on the active user's data.

    Aborts with exit code 1 when no user has been selected with ``stash use``.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        if not load_context().active_user_id:
            typer.echo("❌ No active user selected.")
            typer.echo("Run 'stash use <user-id>' first.")
            raise typer.Exit(code=1)
        return func(*args, **kwargs)

    return wrapper
