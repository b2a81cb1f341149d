"""Database layer package.

Public re-exports so callers can write::

    from stash.db import get_connection, init_db

Table operations live in submodules::

    from stash.db import folders as folders_db
    from stash.db import resources as resources_db
"""

from stash.db.connection import get_connection
from stash.db.migrations import init_db

__all__ = ["get_connection", "init_db"]
