from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from shiptrack.core.config import settings
from shiptrack.core.constants import CARRIERS

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/api/health")
async def health_check(request: Request) -> JSONResponse:
    """Liveness and datastore check, never rate limited.

    Answers 503 with ``status: degraded`` when the datastore cannot run a
    trivial query. Also reports how many rate limit windows are tracked,
    which is the memory the background sweeper keeps in check.
    """

    datastore_status = "healthy"
    try:
        await request.app.state.datastore.select(CARRIERS, owner_id=None, limit=1)
    except Exception:
        logger.exception("health.datastore_failed")
        datastore_status = "unhealthy"

    healthy = datastore_status == "healthy"
    limiter = request.app.state.rate_limiter
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "healthy" if healthy else "degraded",
            "checks": {"datastore": datastore_status},
            "rate_limit": {
                "enabled": settings.app.rate_limit_enabled,
                "tracked_windows": len(limiter),
                "sweeper_running": limiter.sweeping,
            },
        },
        headers={"Cache-Control": "no-cache, no-store, must-revalidate"},
    )
