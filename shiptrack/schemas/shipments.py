"""Pydantic schemas for shipments and tracking events."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal

from pydantic import BaseModel, Field, field_validator

from shiptrack.core.constants import (
    DESCRIPTION_MAX,
    LOCATION_MAX,
    TITLE_MAX,
    TRACKING_NUMBER_PATTERN,
)

ShipmentStatus = Literal[
    "pending",
    "in_transit",
    "out_for_delivery",
    "delivered",
    "failed",
    "cancelled",
]


class PageMeta(BaseModel):
    """Pagination metadata for list responses."""

    page: int
    limit: int
    total: int
    total_pages: int


class ShipmentCreate(BaseModel):
    """Body of ``POST /api/shipments``."""

    carrier_id: str = Field(..., description="Id of an active carrier.")
    tracking_number: str = Field(
        ..., description="Carrier tracking number, 6-50 letters, digits or dashes."
    )
    title: str | None = Field(default=None, max_length=TITLE_MAX)
    description: str | None = Field(default=None, max_length=DESCRIPTION_MAX)
    origin: str | None = Field(default=None, max_length=LOCATION_MAX)
    destination: str | None = Field(default=None, max_length=LOCATION_MAX)

    @field_validator("tracking_number")
    @classmethod
    def _check_tracking_number(cls, value: str) -> str:
        value = value.strip()
        if not TRACKING_NUMBER_PATTERN.match(value):
            raise ValueError("Tracking number must be 6-50 alphanumeric characters")
        return value

    @field_validator("title", "description", "origin", "destination")
    @classmethod
    def _strip_optional(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class ShipmentUpdate(BaseModel):
    """Body of ``PUT /api/shipments/{id}``; only provided fields change."""

    title: str | None = Field(default=None, max_length=TITLE_MAX)
    description: str | None = Field(default=None, max_length=DESCRIPTION_MAX)
    origin: str | None = Field(default=None, max_length=LOCATION_MAX)
    destination: str | None = Field(default=None, max_length=LOCATION_MAX)
    status: ShipmentStatus | None = None


class TrackingEventCreate(BaseModel):
    """Body of ``POST /api/shipments/{id}/events``."""

    status: ShipmentStatus
    description: str = Field(..., min_length=1, max_length=DESCRIPTION_MAX)
    location: str | None = Field(default=None, max_length=LOCATION_MAX)
    event_time: datetime = Field(..., description="When the carrier recorded the event.")
    update_shipment_status: bool = Field(
        default=True,
        description="Also move the shipment to the event's status.",
    )

    @field_validator("event_time")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        # Stored times are UTC; naive input is read as UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class ShipmentListResponse(BaseModel):
    shipments: List[Dict[str, Any]]
    meta: PageMeta


class DashboardStats(BaseModel):
    """Aggregates shown on the dashboard."""

    total_shipments: int
    by_status: Dict[str, int]
    total_products: int
    total_integrations: int
    recent_shipments: List[Dict[str, Any]] = Field(default_factory=list)
