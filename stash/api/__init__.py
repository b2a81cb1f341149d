"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from stash.api import app

    uvicorn stash.api:app --reload
"""

from stash.api.app import app

__all__ = ["app"]
