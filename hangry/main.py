"""
Hangry — FastAPI application entry point.
Lifespan: create DB tables → verify connectivity → build the Places client
and enrichment pipeline.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hangry import __version__
from hangry.config import settings
from hangry.database import AsyncSessionLocal, check_db_connectivity, engine
from hangry.models import Base
from hangry.routers import health, recommendations, restaurants
from hangry.services.enrichment import EnrichmentPipeline
from hangry.services.places_client import PlacesClient

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifespan handler.
    1. Create all tables (idempotent — IF NOT EXISTS).
    2. Verify DB connectivity.
    3. Build the shared Places client and enrichment pipeline.
    """
    logger.info("Starting Hangry (env=%s)", settings.app_env)

    # Step 1: create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created/verified.")

    # Step 2: connectivity check
    ok = await check_db_connectivity()
    if not ok:
        logger.error("Database connectivity check FAILED at startup.")
    else:
        logger.info("Database connectivity verified.")

    # Step 3: upstream client + pipeline
    client = PlacesClient(
        api_key=settings.google_places_api_key,
        timeout=settings.upstream_timeout_seconds,
    )
    app.state.enrichment_pipeline = EnrichmentPipeline(client, AsyncSessionLocal)

    yield

    logger.info(
        "Shutting down Hangry. Enrichment stats: %s",
        app.state.enrichment_pipeline.stats.as_dict(),
    )
    await client.close()
    await engine.dispose()


app = FastAPI(
    title="Hangry",
    description="Nearby restaurant discovery with a persistent enrichment cache and preference-based recommendations.",
    version=__version__,
    lifespan=lifespan,
)

# ── CORS ─────────────────────────────────────────────────────────────────────

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ──────────────────────────────────────────────────────────────────

app.include_router(health.router)
app.include_router(restaurants.router)
app.include_router(recommendations.router)


# ── Global exception handler ─────────────────────────────────────────────────

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return a machine-readable error for any unhandled exception."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "code": "HANGRY_UNAVAILABLE"},
    )
