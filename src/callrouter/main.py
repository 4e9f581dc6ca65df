"""
FastAPI application entry point.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from callrouter import __version__
from callrouter.config import get_settings
from callrouter.shared.database import get_database_manager
from callrouter.shared.logging import get_logger, setup_logging
from callrouter.telephony.webhooks.router import get_trigger_counter
from callrouter.telephony.webhooks.router import router as voice_webhooks_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    setup_logging()
    settings = get_settings()

    logger.info("Application starting", extra={"env": settings.app_env})

    yield

    logger.info("Shutting down application")

    counter = get_trigger_counter()
    if counter.pending:
        logger.info("Waiting for rule trigger updates", extra={"pending": counter.pending})
    await counter.drain()

    await get_database_manager().close()
    logger.info("Application shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Call Router",
        description="Inbound call routing webhooks for CRM phone lines",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(voice_webhooks_router)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    return app


app = create_app()
