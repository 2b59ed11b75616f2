"""
Main entrypoint for the ZenCare API.

This module assembles the FastAPI application, sets up logging and
includes the versioned routers.  ``create_app`` builds the app, which
is instantiated at import time as ``app`` so it can be served with::

    uvicorn zencare_api.app.main:app --reload

Title and version come from ``Settings`` in ``core.config``.
"""

from fastapi import FastAPI

from .api.v1.router import router as v1_router
from .core.config import settings
from .core.db import init_db
from .core.logging_config import setup_logging


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Logging is configured first so that module imports and startup can
    log.  Migrations run on the startup event.
    """
    setup_logging(settings.log_level, settings.log_file or None)

    app = FastAPI(title=settings.project_name, version=settings.api_version, debug=settings.debug)
    app.include_router(v1_router, prefix="/api/v1")

    @app.on_event("startup")
    async def startup_event() -> None:
        # Creates the database file if needed and applies pending migrations.
        init_db()

    @app.get("/health", tags=["health"])
    async def health() -> dict:
        return {"status": "ok", "version": settings.api_version}

    return app


app = create_app()
