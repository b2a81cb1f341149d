"""Object storage for uploaded resource files.

Files live under ``settings.storage_dir`` keyed by a relative storage path of
the form ``<user_id>/<resource_id>.<ext>``.  Copies of a resource reference
the same storage path; the file is never duplicated.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

from loguru import logger

from stash.config import settings


def _resolve(storage_path: str, root: Optional[Path] = None) -> Path:
    base = (root or settings.storage_dir).resolve()
    target = (base / storage_path).resolve()
    if base not in target.parents:
        raise ValueError(f"Storage path escapes the storage root: {storage_path!r}")
    return target


def build_storage_path(user_id: str, resource_id: str, file_name: str) -> str:
    """Return the storage key for an uploaded file (extension kept, lowercased)."""
    ext = file_name.rsplit(".", 1)[-1].lower() if "." in file_name else ""
    return f"{user_id}/{resource_id}.{ext}" if ext else f"{user_id}/{resource_id}"


def upload(storage_path: str, data: bytes, root: Optional[Path] = None) -> Path:
    """Write *data* at *storage_path*.  Raises ``FileExistsError`` on collision."""
    target = _resolve(storage_path, root)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("xb") as fh:
        fh.write(data)
    return target


def download(storage_path: str, root: Optional[Path] = None) -> bytes:
    return _resolve(storage_path, root).read_bytes()


def remove(storage_paths: Iterable[str], root: Optional[Path] = None) -> int:
    """Delete stored files.  Missing files are skipped.  Returns the count removed."""
    removed = 0
    for storage_path in storage_paths:
        target = _resolve(storage_path, root)
        if target.exists():
            target.unlink()
            removed += 1
        else:
            logger.debug(f"Stored file already gone: {storage_path}")
    return removed
