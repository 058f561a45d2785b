"""FastAPI application entry point for the Viblo client API.

Screen-state endpoints for the brand/creator marketplace: campaign economics,
the submission lifecycle, checkout, wallet, profile and inbox, backed by
Supabase and the companion backend.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from viblo.api import campaigns, inbox, payments, profile, submissions, wallet
from viblo.api.deps import viblo_error_handler
from viblo.config import settings
from viblo.errors import VibloError
from viblo.services.backend_service import BackendService

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)-25s | %(levelname)-7s | %(message)s",
)
logger = logging.getLogger("viblo")


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Viblo client API starting up (%s)...", settings.app_env)

    # Non-fatal: payment and social endpoints fail per request until it is up
    if await BackendService.health_check():
        logger.info("Companion backend reachable at %s", BackendService.BASE_URL)
    else:
        logger.warning("Companion backend unreachable at %s", BackendService.BASE_URL)

    yield

    logger.info("Viblo client API shut down cleanly")


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Viblo",
    description=(
        "Brand/creator marketplace client: campaigns priced per view, "
        "video submissions, payments and payouts."
    ),
    version="2.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(VibloError, viblo_error_handler)

# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
app.include_router(campaigns.router, prefix="/api")
app.include_router(submissions.router, prefix="/api")
app.include_router(payments.router, prefix="/api")
app.include_router(wallet.router, prefix="/api")
app.include_router(profile.router, prefix="/api")
app.include_router(inbox.router, prefix="/api")


@app.get("/")
async def root():
    return {
        "name": "Viblo",
        "version": "2.0.0",
        "docs": "/docs",
    }


@app.get("/api/health")
async def health():
    backend = await BackendService.health_check()
    return {
        "status": "ok" if backend else "degraded",
        "service": "viblo-client",
        "backend": "healthy" if backend else "unreachable",
    }
