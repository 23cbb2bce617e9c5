"""FastAPI application."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bookpackage import __version__
from bookpackage.api.routes import router
from bookpackage.config import Settings
from bookpackage.service import ResourceService

logger = logging.getLogger(__name__)


def create_app(
    service: ResourceService | None = None, settings: Settings | None = None
) -> FastAPI:
    """Create the book package API.

    Args:
        service: Service to serve from; built from ``settings`` (or the
            environment) when omitted, and closed on shutdown
        settings: Settings for the service built here

    Returns:
        Configured FastAPI application
    """
    owns_service = service is None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if owns_service:
            app.state.service = ResourceService(settings or Settings.from_env())
        logger.info(f"Serving resources from {app.state.service.settings.base_url}")
        yield
        if owns_service:
            await app.state.service.aclose()

    app = FastAPI(
        title="Door43 Book Package Service",
        description="Bible translation resource packages and word alignment",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    if service is not None:
        app.state.service = service

    # CORS for development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router, prefix="/api/v1")

    @app.get("/")
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Door43 Book Package Service",
            "version": __version__,
            "docs": "/docs",
            "api": "/api/v1",
        }

    return app
