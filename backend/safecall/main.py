"""SafeCall API: FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map SafeCallError and routing errors to JSON responses
    - CORS configured from settings (not hardcoded)
    - Database manager built in the lifespan and stored on app.state (no import-time globals)

Design Decisions:
    - create_app() factory: tests and alternative entry points build their own app
      with their own settings; `app` is the default instance for uvicorn
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from safecall import __version__
from safecall.api.error_handlers import register_error_handlers
from safecall.api.routes import health, users
from safecall.config import Settings, get_settings
from safecall.infrastructure.database import DatabaseSessionManager
from safecall.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the FastAPI app: lifespan, CORS, routes, error handlers."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup/shutdown lifecycle."""
        setup_logging(settings.log_level, settings.log_format)
        db_manager = DatabaseSessionManager(
            settings.database_url,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
        )
        app.state.db_manager = db_manager
        logger.info("SafeCall API started")
        yield
        logger.info("SafeCall API shutting down")
        await db_manager.dispose()

    app = FastAPI(title="SafeCall API", version=__version__, lifespan=lifespan)
    app.state.db_manager = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(users.router)

    register_error_handlers(app)
    return app


app = create_app()
