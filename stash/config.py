"""Centralised settings for Stash.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (two levels up from this file)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Workspace / storage
    # ------------------------------------------------------------------
    workspace_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("STASH_WORKSPACE", Path.home() / ".stash_data")
        )
    )
    cli_config_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("STASH_CLI_DIR", Path.home() / ".stash_cli")
        )
    )

    @property
    def db_path(self) -> Path:
        """Absolute path to the SQLite database file."""
        return self.workspace_dir / "stash.db"

    @property
    def storage_dir(self) -> Path:
        """Directory holding uploaded resource files."""
        return self.workspace_dir / "files"

    @property
    def schema_path(self) -> Path:
        """Absolute path to the schema SQL file bundled with the package."""
        return Path(__file__).resolve().parent / "db" / "schema.sql"

    # ------------------------------------------------------------------
    # Folders
    # ------------------------------------------------------------------
    default_folder_name: str = field(
        default_factory=lambda: os.environ.get("STASH_DEFAULT_FOLDER_NAME", "New folder")
    )
    default_folder_color: str = field(
        default_factory=lambda: os.environ.get("STASH_DEFAULT_FOLDER_COLOR", "#6366f1")
    )
    article_folder_color: str = field(
        default_factory=lambda: os.environ.get("STASH_ARTICLE_FOLDER_COLOR", "#f97316")
    )

    # ------------------------------------------------------------------
    # GitHub metadata
    # ------------------------------------------------------------------
    github_api_base: str = field(
        default_factory=lambda: os.environ.get("GITHUB_API_BASE", "https://api.github.com")
    )
    request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("REQUEST_TIMEOUT", "10.0"))
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = field(
        default_factory=lambda: os.environ.get("STASH_LOG_LEVEL", "INFO")
    )

    def ensure_workspace(self) -> None:
        """Create the workspace directory if it does not exist."""
        self.workspace_dir.mkdir(parents=True, exist_ok=True)


# Module-level singleton, import this everywhere:
#   from stash.config import settings
settings = Settings()
