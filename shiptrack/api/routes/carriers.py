from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Response

from shiptrack.adapters.datastore.base import AbstractDatastore
from shiptrack.api.deps import get_datastore
from shiptrack.core.constants import CARRIERS, CARRIERS_CACHE_TTL_SECONDS

router = APIRouter(prefix="/api/carriers", tags=["Shipments"])


@router.get("")
async def list_carriers(
    response: Response,
    datastore: Annotated[AbstractDatastore, Depends(get_datastore)],
) -> dict:
    """Active carriers, sorted by name. Public and cacheable."""
    carriers, _ = await datastore.select(CARRIERS, owner_id=None, filters={"is_active": True})
    carriers.sort(key=lambda carrier: carrier.get("name", ""))

    response.headers["Cache-Control"] = (
        f"public, s-maxage={CARRIERS_CACHE_TTL_SECONDS}, "
        f"stale-while-revalidate={CARRIERS_CACHE_TTL_SECONDS * 2}"
    )
    return {"carriers": carriers}
