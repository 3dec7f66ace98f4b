"""Main FastAPI application for the listening timeline API."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.constants import APP_DESCRIPTION, APP_TITLE, APP_VERSION, Routes
from app.dependencies import db_manager
from app.settings import get_settings
from app.timeline import router as timeline_router
from shared.config.constants import ServiceName
from shared.logging import configure_logging

logger = logging.getLogger(__name__)


class TimelineApp:
    """Application container: configures middleware, routers, and lifespan."""

    app: FastAPI

    def __init__(self) -> None:
        configure_logging(ServiceName.API)
        self.app = FastAPI(
            title=APP_TITLE,
            description=APP_DESCRIPTION,
            version=APP_VERSION,
            lifespan=self._lifespan,
        )
        self._setup_middleware()
        self._setup_routers()

    @staticmethod
    @asynccontextmanager
    async def _lifespan(app: FastAPI) -> AsyncGenerator[None]:
        """Application lifespan: optional schema bootstrap, engine cleanup on shutdown."""
        if db_manager.settings.create_schema:
            logger.info("Creating database schema")
            await db_manager.create_all()
        try:
            yield
        finally:
            await db_manager.dispose()

    def _setup_middleware(self) -> None:
        settings = get_settings()
        origins = [o.strip() for o in settings.CORS_ALLOWED_ORIGINS.split(",") if o.strip()]
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    def _setup_routers(self) -> None:
        self.app.include_router(timeline_router, prefix=Routes.TIMELINE.prefix, tags=[Routes.TIMELINE.tag])

        @self.app.get(Routes.HEALTH)
        async def health_check() -> dict[str, str]:
            """Health check endpoint."""
            return {"status": "healthy"}

        @self.app.get("/")
        async def root() -> dict[str, str]:
            """Root endpoint."""
            return {"message": APP_TITLE, "version": APP_VERSION}


_application = TimelineApp()
app: FastAPI = _application.app
