"""Shipment CRUD and tracking timeline endpoints.

Every handler authenticates, passes admission control for its operation,
then talks to the datastore. Rows are always scoped to the caller.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from shiptrack.adapters.datastore.base import AbstractDatastore, Row
from shiptrack.api.deps import get_datastore, page_meta, resolve_page
from shiptrack.core.auth import get_current_user_id
from shiptrack.core.constants import CARRIERS, SHIPMENTS, TRACKING_EVENTS
from shiptrack.core.errors import ConflictAppError, NotFoundAppError, ValidationAppError
from shiptrack.core.logging import hash_identifier
from shiptrack.core.rate_limit import require_admission
from shiptrack.schemas.shipments import (
    ShipmentCreate,
    ShipmentListResponse,
    ShipmentStatus,
    ShipmentUpdate,
    TrackingEventCreate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/shipments", tags=["Shipments"])

UserId = Annotated[str, Depends(get_current_user_id)]
Datastore = Annotated[AbstractDatastore, Depends(get_datastore)]


async def _get_owned_shipment(datastore: AbstractDatastore, shipment_id: str, user_id: str) -> Row:
    shipment = await datastore.get(SHIPMENTS, shipment_id, owner_id=user_id)
    if shipment is None:
        raise NotFoundAppError(
            code="shipment_not_found",
            message="Shipment not found",
            details={"resource": "shipment"},
        )
    return shipment


async def _with_carrier(datastore: AbstractDatastore, shipment: Row, user_id: str) -> Row:
    shipment["carrier"] = await datastore.get(CARRIERS, shipment["carrier_id"], owner_id=user_id)
    return shipment


@router.get(
    "",
    response_model=ShipmentListResponse,
    dependencies=[Depends(require_admission("shipments-get"))],
)
async def list_shipments(
    user_id: UserId,
    datastore: Datastore,
    status: ShipmentStatus | None = Query(default=None, description="Filter by status."),
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
) -> ShipmentListResponse:
    """List the caller's shipments, newest first."""
    page, limit, offset = resolve_page(page, limit)
    filters = {"status": status} if status else None

    shipments, total = await datastore.select(
        SHIPMENTS, owner_id=user_id, filters=filters, offset=offset, limit=limit
    )
    shipments = [await _with_carrier(datastore, shipment, user_id) for shipment in shipments]

    return ShipmentListResponse(shipments=shipments, meta=page_meta(page, limit, total))


@router.post(
    "",
    status_code=201,
    dependencies=[Depends(require_admission("shipments-post"))],
)
async def create_shipment(body: ShipmentCreate, user_id: UserId, datastore: Datastore) -> dict:
    """Create a shipment in ``pending`` status.

    Raises:
        ValidationAppError: Carrier missing or inactive.
        ConflictAppError: Same tracking number already tracked with this carrier.
    """
    carrier = await datastore.get(CARRIERS, body.carrier_id, owner_id=user_id)
    if carrier is None or not carrier.get("is_active", True):
        logger.warning(
            "shipment.invalid_carrier",
            extra={"carrier_id": body.carrier_id, "user_hash": hash_identifier(user_id)},
        )
        raise ValidationAppError(
            code="validation_error",
            message="Validation failed",
            details={"fields": {"carrier_id": "Invalid or inactive carrier"}},
        )

    _, existing = await datastore.select(
        SHIPMENTS,
        owner_id=user_id,
        filters={"tracking_number": body.tracking_number, "carrier_id": body.carrier_id},
        limit=1,
    )
    if existing:
        raise ConflictAppError(
            code="conflict",
            message="Shipment with this tracking number already exists",
        )

    shipment = await datastore.insert(
        SHIPMENTS,
        {**body.model_dump(), "status": "pending"},
        owner_id=user_id,
    )
    logger.info(
        "shipment.created",
        extra={"shipment_id": shipment["id"], "user_hash": hash_identifier(user_id)},
    )
    return {
        "shipment": await _with_carrier(datastore, shipment, user_id),
        "message": "Shipment created successfully",
    }


@router.get(
    "/{shipment_id}",
    dependencies=[Depends(require_admission("shipment-get"))],
)
async def get_shipment(shipment_id: str, user_id: UserId, datastore: Datastore) -> dict:
    """Return one shipment with its carrier and tracking timeline, ordered by event time."""
    shipment = await _get_owned_shipment(datastore, shipment_id, user_id)
    events, _ = await datastore.select(
        TRACKING_EVENTS, owner_id=user_id, filters={"shipment_id": shipment_id}
    )
    # Insertion order breaks ties between identical event times
    events.reverse()
    events.sort(key=lambda event: event.get("event_time") or "")
    shipment["events"] = events
    return {"shipment": await _with_carrier(datastore, shipment, user_id)}


@router.put(
    "/{shipment_id}",
    dependencies=[Depends(require_admission("shipment-put"))],
)
async def update_shipment(
    shipment_id: str,
    body: ShipmentUpdate,
    user_id: UserId,
    datastore: Datastore,
) -> dict:
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationAppError(code="validation_error", message="No fields to update")

    shipment = await datastore.update(SHIPMENTS, shipment_id, changes, owner_id=user_id)
    if shipment is None:
        raise NotFoundAppError(code="shipment_not_found", message="Shipment not found")

    return {
        "shipment": await _with_carrier(datastore, shipment, user_id),
        "message": "Updated successfully",
    }


@router.delete(
    "/{shipment_id}",
    dependencies=[Depends(require_admission("shipment-delete"))],
)
async def delete_shipment(shipment_id: str, user_id: UserId, datastore: Datastore) -> dict:
    if not await datastore.delete(SHIPMENTS, shipment_id, owner_id=user_id):
        raise NotFoundAppError(code="shipment_not_found", message="Shipment not found")

    events, _ = await datastore.select(
        TRACKING_EVENTS, owner_id=user_id, filters={"shipment_id": shipment_id}
    )
    for event in events:
        await datastore.delete(TRACKING_EVENTS, event["id"], owner_id=user_id)

    logger.info(
        "shipment.deleted",
        extra={"shipment_id": shipment_id, "user_hash": hash_identifier(user_id)},
    )
    return {"message": "Deleted successfully"}


@router.post(
    "/{shipment_id}/events",
    status_code=201,
    dependencies=[Depends(require_admission("events-post"))],
)
async def add_tracking_event(
    shipment_id: str,
    body: TrackingEventCreate,
    user_id: UserId,
    datastore: Datastore,
) -> dict:
    """Append a tracking event, optionally moving the shipment to its status."""
    await _get_owned_shipment(datastore, shipment_id, user_id)

    event = await datastore.insert(
        TRACKING_EVENTS,
        {
            "shipment_id": shipment_id,
            "status": body.status,
            "description": body.description,
            "location": body.location,
            "event_time": body.event_time.isoformat(),
        },
        owner_id=user_id,
    )
    if body.update_shipment_status:
        await datastore.update(SHIPMENTS, shipment_id, {"status": body.status}, owner_id=user_id)

    return {"event": event}
