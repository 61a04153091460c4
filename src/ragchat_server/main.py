"""
Application Entry Point

This module defines the FastAPI application instance, registers all routers,
configures global exception handling, and provides a test-friendly application
factory.

Design Goals
------------
- Deterministic startup
- Centralized router registration
- Global exception safety net
- Test-friendly via create_app()
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .core.errors import (
    IndexLifecycleError,
    index_lifecycle_error_handler,
    unhandled_exception_handler,
)
from .core.logging import configure_logging
from .api import (
    chat_routes,
    health_routes,
    upload_routes,
    ws_routes,
)
from .api.dependencies import get_conversation_store


logger = logging.getLogger("ragchat.app")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Startup validation and shutdown cleanup.
    """
    configure_logging(settings.log_level)
    logger.info(
        "Starting ragchat-server (vector_backend=%s, conversation_store=%s)",
        settings.vector_backend,
        settings.conversation_store,
    )

    key = (
        settings.gemini_api_key
        if settings.embedding_provider == "gemini"
        else settings.openai_api_key
    )
    if not key.get_secret_value():
        logger.warning(
            "No API key configured for embedding provider %s; uploads and "
            "retrieval will fail until one is set",
            settings.embedding_provider,
        )

    store = get_conversation_store()
    await store.initialize()

    yield

    logger.info("Shutting down ragchat-server")
    await store.close()


# ---------------------------------------------------------------------
# Application Factory (Test-Friendly)
# ---------------------------------------------------------------------

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns
    -------
    FastAPI
        Fully configured FastAPI application.
    """
    app = FastAPI(
        title="ragchat-server",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origin_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
    )

    # --------------------------------------------------------------
    # Global Exception Handling
    # --------------------------------------------------------------

    app.add_exception_handler(IndexLifecycleError, index_lifecycle_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # --------------------------------------------------------------
    # Router Registration
    # --------------------------------------------------------------

    app.include_router(health_routes.router)
    app.include_router(upload_routes.router)
    app.include_router(chat_routes.router)
    app.include_router(ws_routes.router)

    return app


# ---------------------------------------------------------------------
# Default Application Instance (for Uvicorn)
# ---------------------------------------------------------------------

app = create_app()
