"""Logging setup.

Stash logs through loguru.  Modules simply do::

    from loguru import logger

and call :func:`setup_logger` once from an entry-point (API lifespan, CLI
callback) to install the stderr sink at the configured level.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from stash.config import settings

_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan> - <level>{message}</level>"
)


def setup_logger(level: Optional[str] = None, log_file: Optional[Path] = None) -> None:
    """Replace loguru's default sink with Stash's format.

    Args:
        level: Minimum level for the stderr sink.  Defaults to
            ``settings.log_level``.
        log_file: Optional file that additionally receives DEBUG output.
    """
    logger.remove()
    logger.add(sys.stderr, level=(level or settings.log_level).upper(), format=_FORMAT)
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(log_file, level="DEBUG", format=_FORMAT, rotation="5 MB")
