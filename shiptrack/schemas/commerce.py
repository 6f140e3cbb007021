"""Pydantic schemas for integrations, products and product links."""

from __future__ import annotations

from typing import Any, Dict, List, Literal

from pydantic import BaseModel, Field

from shiptrack.core.constants import URL_MAX

Platform = Literal["shopify", "tiktok_shop"]


class IntegrationCreate(BaseModel):
    """Body of ``POST /api/integrations``."""

    platform: Platform
    shop_url: str = Field(..., min_length=1, max_length=URL_MAX)
    access_token: str = Field(..., min_length=1)
    shop_name: str | None = Field(default=None, max_length=200)


class ShopifyImportRequest(BaseModel):
    """Body of ``POST /api/integrations/shopify/products``."""

    integration_id: str


class ShopifyImportResponse(BaseModel):
    message: str
    synced: int
    total: int
    errors: List[str] = Field(default_factory=list)


class ProductLinkCreate(BaseModel):
    """Body of ``POST /api/product-links``."""

    shopify_product_id: str = Field(..., description="Id of a local product row.")
    tiktok_product_id: str = Field(..., min_length=1)
    sync_price: bool = True
    sync_inventory: bool = True


class ProductSyncResults(BaseModel):
    price_synced: bool = False
    inventory_synced: bool = False


class ProductSyncResponse(BaseModel):
    message: str
    results: ProductSyncResults
    link: Dict[str, Any]
