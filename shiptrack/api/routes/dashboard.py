from __future__ import annotations

from collections import Counter
from typing import Annotated

from fastapi import APIRouter, Depends

from shiptrack.adapters.datastore.base import AbstractDatastore
from shiptrack.api.deps import get_datastore
from shiptrack.core.auth import get_current_user_id
from shiptrack.core.constants import INTEGRATIONS, PRODUCTS, SHIPMENT_STATUSES, SHIPMENTS
from shiptrack.core.rate_limit import require_admission
from shiptrack.schemas.shipments import DashboardStats

router = APIRouter(prefix="/api/dashboard", tags=["Dashboard"])

RECENT_SHIPMENTS = 5


@router.get(
    "/stats",
    response_model=DashboardStats,
    dependencies=[Depends(require_admission("dashboard-stats"))],
)
async def dashboard_stats(
    user_id: Annotated[str, Depends(get_current_user_id)],
    datastore: Annotated[AbstractDatastore, Depends(get_datastore)],
) -> DashboardStats:
    """Shipment counts per status plus catalog totals for the caller."""

    shipments, total = await datastore.select(SHIPMENTS, owner_id=user_id)
    counts = Counter(shipment.get("status") for shipment in shipments)
    _, total_products = await datastore.select(PRODUCTS, owner_id=user_id, limit=0)
    _, total_integrations = await datastore.select(INTEGRATIONS, owner_id=user_id, limit=0)

    return DashboardStats(
        total_shipments=total,
        by_status={status: counts.get(status, 0) for status in SHIPMENT_STATUSES},
        total_products=total_products,
        total_integrations=total_integrations,
        recent_shipments=shipments[:RECENT_SHIPMENTS],
    )
