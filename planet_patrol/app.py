"""
FastAPI application entry point for the review backend.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from planet_patrol.config import get_settings
from planet_patrol.dependencies import get_candidate_loop, get_folder_loop
from planet_patrol.routes import router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start the background refresh loops for the lifetime of the app."""
    settings = get_settings()
    loops = []
    if settings.start_refresh_loops:
        loops = [get_candidate_loop(), get_folder_loop()]
        for loop in loops:
            loop.start()
    app.state.refresh_loops = loops

    yield

    for loop in loops:
        loop.stop()
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Planet Patrol Backend", version="0.1.0", lifespan=lifespan)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
