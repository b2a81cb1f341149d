"""FastAPI application factory.

Lifespan
--------
On startup the app configures logging, opens a single SQLite connection
(shared across all requests via ``request.app.state.db``) and initialises
the schema.  Drag boards are kept per user in ``app.state.boards``.  On
shutdown the connection is closed.

Routers
-------
    /resources  : resource CRUD, trash, archive, stats, uploads
    /folders    : typed folders, moves, copies, cascading delete/restore
    /board      : server-side drag-and-drop with optimistic updates
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from stash import __version__
from stash.db import get_connection, init_db
from stash.logger import setup_logger

from stash.api.routers import board as board_router
from stash.api.routers import folders as folders_router
from stash.api.routers import resources as resources_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the DB on startup and close it on shutdown."""
    setup_logger()
    conn = get_connection()
    init_db(conn)
    app.state.db = conn
    app.state.boards = {}
    logger.info("Stash API ready")
    try:
        yield
    finally:
        conn.close()


def create_app() -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    app = FastAPI(
        title="Stash API",
        description=(
            "REST interface for Stash: bookmarked links, GitHub repositories, "
            "documents, images and articles organised in typed folders, with "
            "a drag-and-drop board that applies changes optimistically."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    # Allow browser frontends on any origin (tighten for production).
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(resources_router.router, prefix="/resources", tags=["resources"])
    app.include_router(folders_router.router, prefix="/folders", tags=["folders"])
    app.include_router(board_router.router, prefix="/board", tags=["board"])

    return app


# Module-level instance used by uvicorn:
#   uvicorn stash.api.app:app --reload
app = create_app()
