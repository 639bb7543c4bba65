"""FastAPI application for the study-bot dashboard."""

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from .. import __version__
from ..config import get_settings
from ..db.engine import init_db
from .routers import sessions, users


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler - runs on startup and shutdown."""
    app.state.db_path.parent.mkdir(parents=True, exist_ok=True)
    await init_db(app.state.db_path)
    yield


def create_app(db_path: Path | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="study-bot",
        description="Read-only dashboard for study sessions, goals and profiles",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.db_path = db_path or get_settings().db_path

    app.include_router(sessions.router)
    app.include_router(users.router)

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy", "version": __version__}

    return app
