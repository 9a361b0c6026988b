# src/bathroomfinder/api/app.py
"""
FastAPI application wiring.

This file creates the `FastAPI` instance and owns the `FinderContext` for the
process lifetime: it is started in the lifespan hook (feed subscription + one-shot
geolocation) and stopped on shutdown so the subscription is released.
Business logic lives in `bathroomfinder.api.routes` and `bathroomfinder.ranking`.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from bathroomfinder.config.settings import get_settings
from bathroomfinder.core.logging import configure_logging
from bathroomfinder.ranking.context import build_context

from .routes import router

configure_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    context = build_context(settings)
    await context.start()
    if not await context.wait_ready(settings.app.startup_wait_seconds):
        logger.warning(
            "Feed or location not ready after %.1fs; serving with loading=%s",
            settings.app.startup_wait_seconds,
            context.loading,
        )
    app.state.context = context
    try:
        yield
    finally:
        await context.stop()


app = FastAPI(title="Bathroom Finder API", version="0.1.0", lifespan=lifespan)

# CORS (dev-friendly): allow local frontends (e.g. http://localhost:5173) to call this API.
# Configure via env:
# - BATHROOMFINDER_CORS_ORIGINS="http://localhost:5173,http://127.0.0.1:5173"
# - BATHROOMFINDER_CORS_ALLOW_LOCAL=0 to disable the default localhost allowance
cors_origins = [s.strip() for s in os.getenv("BATHROOMFINDER_CORS_ORIGINS", "").split(",") if s.strip()]
cors_allow_local = os.getenv("BATHROOMFINDER_CORS_ALLOW_LOCAL", "1").strip().lower() in {"1", "true", "yes", "y"}
cors_origin_regex = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$" if cors_allow_local and not cors_origins else ""
if cors_origins or cors_origin_regex:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_origin_regex=cors_origin_regex or None,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(router)
