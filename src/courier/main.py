"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Callable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import dispatch, health
from .config import settings
from .services.session import DeliverySession, build_session


def create_app(session_factory: Callable[[], DeliverySession] | None = None) -> FastAPI:
    logging.basicConfig(level=settings.log_level.upper())
    factory = session_factory or build_session

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # One dispatch session per running app, handed to endpoints via app.state
        app.state.session = factory()
        try:
            yield
        finally:
            app.state.session.close()
            app.state.session = None

    app = FastAPI(
        title=settings.app_name,
        root_path="",
        lifespan=lifespan,
    )
    if settings.frontend_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.frontend_allowed_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Root endpoint for diagnostics
    @app.get("/")
    def root():
        return {
            "service": settings.app_name,
            "status": "running",
            "api_prefix": settings.api_prefix,
            "health": f"{settings.api_prefix}/health",
            "docs": "/docs",
        }

    app.include_router(health.router, prefix=settings.api_prefix)
    app.include_router(dispatch.router, prefix=settings.api_prefix)
    return app


app = create_app()
