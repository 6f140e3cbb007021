"""Domain constants shared by schemas and routes."""

from __future__ import annotations

import re

SHIPMENT_STATUSES = (
    "pending",
    "in_transit",
    "out_for_delivery",
    "delivered",
    "failed",
    "cancelled",
)
PRODUCT_STATUSES = ("active", "draft", "archived")
SYNC_STATUSES = ("pending", "synced", "error", "disabled")
PLATFORMS = ("shopify", "tiktok_shop")

TRACKING_NUMBER_PATTERN = re.compile(r"^[A-Za-z0-9-]{6,50}$")

TITLE_MAX = 200
DESCRIPTION_MAX = 2000
LOCATION_MAX = 200
URL_MAX = 500

SHOPIFY_IMPORT_LIMIT = 250
CARRIERS_CACHE_TTL_SECONDS = 3600

# Datastore table names
CARRIERS = "carriers"
SHIPMENTS = "shipments"
TRACKING_EVENTS = "tracking_events"
INTEGRATIONS = "integrations"
PRODUCTS = "products"
PRODUCT_LINKS = "product_links"
SYNC_LOGS = "sync_logs"
