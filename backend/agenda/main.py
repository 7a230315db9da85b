"""
Agenda - FastAPI Application Entry Point.

Feature-based modular architecture:
  agenda/features/timegrid  pure date, grid, placement and upcoming functions
  agenda/features/calendar  items, remote stores, reconciliation controller, routes
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agenda.config import get_settings
from agenda.core.dependencies import SessionRegistry, default_store_factory
from agenda.core.logging_config import setup_logging

# ── Feature Routers ──────────────────────────────────────
from agenda.features.calendar.router import router as calendar_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup & shutdown."""
    settings = get_settings()
    logger.info(f"{settings.APP_NAME} v{settings.APP_VERSION} starting...")
    logger.info(f"Remote store backend: {settings.STORE_BACKEND}")
    yield
    await app.state.sessions.close_all()
    logger.info("Shutting down...")


def create_app(store_factory=None) -> FastAPI:
    """Application factory.

    Args:
        store_factory: Callable `(user_id) -> ItemStore`; defaults to the
            backend named by STORE_BACKEND.
    """
    settings = get_settings()
    setup_logging("DEBUG" if settings.DEBUG else settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Calendar time-grid, conflict engine and reconciliation controller",
        lifespan=lifespan,
    )
    app.state.sessions = SessionRegistry(
        store_factory or default_store_factory,
        max_sessions=settings.MAX_SESSIONS,
        idle_seconds=settings.SESSION_IDLE_SECONDS,
    )

    # ── CORS ─────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Register Feature Routers ─────────────────────────
    app.include_router(calendar_router, prefix="/api/calendar", tags=["Calendar"])

    # ── Health Check ─────────────────────────────────────
    @app.get("/health", tags=["System"])
    async def health_check():
        return {
            "status": "healthy",
            "app": settings.APP_NAME,
            "version": settings.APP_VERSION,
        }

    return app


app = create_app()


def run() -> None:
    """Serve `app` with uvicorn (console script `agenda`)."""
    settings = get_settings()
    uvicorn.run("agenda.main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG)


if __name__ == "__main__":
    run()
