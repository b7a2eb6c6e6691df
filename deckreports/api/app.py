"""HTTP read surface for mined reports.

The app holds one SQLite connection for its whole lifetime, opened and
schema-checked on startup and exposed to routers as ``request.app.state.db``.

Mounted routers::

    /games   game entries and their reports
    /queue   requests for the scrape and generate jobs
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from deckreports.api.routers import games as games_router
from deckreports.api.routers import queue as queue_router
from deckreports.config import configure_logging
from deckreports.db import get_connection, init_db


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    configure_logging()
    conn = get_connection()
    init_db(conn)
    app.state.db = conn
    try:
        yield
    finally:
        conn.close()


def create_app() -> FastAPI:
    """Build the app with both routers and permissive CORS for the web client."""
    app = FastAPI(
        title="Deck Reports API",
        description=(
            "Steam Deck compatibility reports mined from ProtonDB, ShareDeck "
            "and Steam Deck HQ, plus the queue feeding the scrape and "
            "generate jobs."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.include_router(games_router.router, prefix="/games", tags=["games"])
    app.include_router(queue_router.router, prefix="/queue", tags=["queue"])
    return app


# uvicorn deckreports.api.app:app
app = create_app()
