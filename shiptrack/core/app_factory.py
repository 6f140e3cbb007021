"""Application factory for the FastAPI app.

Centralizes app construction (state, middleware, handlers, routers) so each
call yields an independent app: tests build a fresh one to get an empty
rate limiter and datastore.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from shiptrack.adapters.datastore.base import AbstractDatastore
from shiptrack.adapters.datastore.in_memory import InMemoryDatastore
from shiptrack.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from shiptrack.api.routes import (
    auth_router,
    carriers_router,
    commerce_router,
    dashboard_router,
    health_router,
    shipments_router,
)
from shiptrack.core.admission import AdmissionPolicy
from shiptrack.core.config import settings
from shiptrack.core.exception_handlers import setup_exception_handlers
from shiptrack.core.logging import configure_logging
from shiptrack.core.middleware import request_id_middleware
from shiptrack.core.openapi import apply_openapi_customizations

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the expired-window sweeper for long-lived server processes.

    Skipped when ``APP_RATE_LIMIT_SWEEP_ENABLED`` is false (serverless or
    short-lived deployments); lazy expiry keeps admission correct either way.
    """
    limiter: InMemoryFixedWindowRateLimiter = app.state.rate_limiter
    if settings.app.rate_limit_sweep_enabled:
        limiter.start_background_sweep(settings.app.rate_limit_sweep_interval_seconds)
    try:
        yield
    finally:
        limiter.stop_background_sweep()


def create_app(
    *,
    datastore: AbstractDatastore | None = None,
    rate_limiter: InMemoryFixedWindowRateLimiter | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        datastore: Datastore collaborator; an in-memory one when omitted.
        rate_limiter: Limiter shared by all routes; a fresh in-memory one
            when omitted.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Shiptrack API",
        description=(
            "Multi-tenant shipment tracking with Shopify and TikTok Shop product "
            "sync. Every mutating or sensitive endpoint passes per-operation "
            "admission control and answers HTTP 429 once its quota is spent."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    limiter = rate_limiter if rate_limiter is not None else InMemoryFixedWindowRateLimiter()
    app.state.rate_limiter = limiter
    app.state.admission = AdmissionPolicy(limiter)
    app.state.datastore = datastore if datastore is not None else InMemoryDatastore()

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(auth_router)
    app.include_router(carriers_router)
    app.include_router(shipments_router)
    app.include_router(commerce_router)
    app.include_router(dashboard_router)
    app.include_router(health_router)

    apply_openapi_customizations(app)

    logger.info(
        "app.created",
        extra={
            "app_env": settings.app_env,
            "rate_limit_enabled": settings.app.rate_limit_enabled,
            "rate_limit_sweep_enabled": settings.app.rate_limit_sweep_enabled,
        },
    )
    return app
