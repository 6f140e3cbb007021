from __future__ import annotations

from shiptrack.api.routes.auth import router as auth_router
from shiptrack.api.routes.carriers import router as carriers_router
from shiptrack.api.routes.commerce import router as commerce_router
from shiptrack.api.routes.dashboard import router as dashboard_router
from shiptrack.api.routes.health import router as health_router
from shiptrack.api.routes.shipments import router as shipments_router

__all__ = [
    "auth_router",
    "carriers_router",
    "commerce_router",
    "dashboard_router",
    "health_router",
    "shipments_router",
]
