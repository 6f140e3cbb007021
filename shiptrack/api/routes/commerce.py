"""Integration, product and product-link endpoints.

Bulk imports from a store are the most expensive calls the service makes
(they hit third-party rate limits), so they sit in the ``sync`` tier: a
few calls per user every five minutes.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query

from shiptrack.adapters.datastore.base import AbstractDatastore, Row
from shiptrack.adapters.datastore.in_memory import utc_now_iso
from shiptrack.api.deps import (
    CommerceClientFactory,
    get_commerce_client_factory,
    get_datastore,
    page_meta,
    resolve_page,
)
from shiptrack.core.auth import get_current_user_id
from shiptrack.core.constants import (
    INTEGRATIONS,
    PRODUCT_LINKS,
    PRODUCTS,
    SHOPIFY_IMPORT_LIMIT,
    SYNC_LOGS,
)
from shiptrack.core.errors import ConflictAppError, NotFoundAppError, ValidationAppError
from shiptrack.core.logging import hash_identifier
from shiptrack.core.rate_limit import require_admission
from shiptrack.schemas.commerce import (
    IntegrationCreate,
    ProductLinkCreate,
    ProductSyncResponse,
    ProductSyncResults,
    ShopifyImportRequest,
    ShopifyImportResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Commerce"])

UserId = Annotated[str, Depends(get_current_user_id)]
Datastore = Annotated[AbstractDatastore, Depends(get_datastore)]


def _public_integration(integration: Row) -> Row:
    return {key: value for key, value in integration.items() if key != "access_token"}


def _product_from_shopify(raw: dict[str, Any], integration: Row) -> Row:
    """Map a Shopify product payload onto a local product row."""
    variants = raw.get("variants") or []
    images = raw.get("images") or []
    variant = variants[0] if variants else {}
    image = images[0] if images else {}
    price = variant.get("price")
    handle = raw.get("handle")

    return {
        "integration_id": integration["id"],
        "external_id": str(raw["id"]),
        "title": raw.get("title") or "",
        "description": raw.get("body_html") or None,
        "price": float(price) if price not in (None, "") else None,
        "currency": "USD",
        "image_url": image.get("src"),
        "sku": variant.get("sku") or None,
        "inventory_quantity": variant.get("inventory_quantity") or 0,
        "product_url": f"https://{integration['shop_url']}/products/{handle}" if handle else None,
        "status": "active" if raw.get("status") == "active" else "draft",
    }


@router.get(
    "/integrations",
    dependencies=[Depends(require_admission("integrations-get"))],
)
async def list_integrations(user_id: UserId, datastore: Datastore) -> dict:
    integrations, _ = await datastore.select(INTEGRATIONS, owner_id=user_id)
    return {"integrations": [_public_integration(row) for row in integrations]}


@router.post(
    "/integrations",
    status_code=201,
    dependencies=[Depends(require_admission("integrations-post"))],
)
async def create_integration(
    body: IntegrationCreate,
    user_id: UserId,
    datastore: Datastore,
    client_factory: Annotated[CommerceClientFactory, Depends(get_commerce_client_factory)],
) -> dict:
    """Connect a store. One integration per (platform, shop_url) per user.

    Shopify credentials are checked against the store before anything is
    saved.

    Raises:
        ConflictAppError: The store is already connected.
        ValidationAppError: The store rejected the credentials.
    """
    _, existing = await datastore.select(
        INTEGRATIONS,
        owner_id=user_id,
        filters={"platform": body.platform, "shop_url": body.shop_url},
        limit=1,
    )
    if existing:
        raise ConflictAppError(code="conflict", message="Integration already exists for this store")

    if body.platform == "shopify":
        client = client_factory(body.model_dump())
        if not await client.verify_connection():
            logger.warning(
                "integration.verify_failed",
                extra={"platform": body.platform, "user_hash": hash_identifier(user_id)},
            )
            raise ValidationAppError(
                code="connection_failed",
                message="Failed to verify connection",
                details={"platform": body.platform},
            )

    integration = await datastore.insert(
        INTEGRATIONS,
        {**body.model_dump(), "is_active": True, "last_sync_at": None},
        owner_id=user_id,
    )
    logger.info(
        "integration.created",
        extra={
            "integration_id": integration["id"],
            "platform": body.platform,
            "user_hash": hash_identifier(user_id),
        },
    )
    return {"integration": _public_integration(integration)}


@router.post(
    "/integrations/shopify/products",
    response_model=ShopifyImportResponse,
    dependencies=[Depends(require_admission("shopify-sync"))],
)
async def import_shopify_products(
    body: ShopifyImportRequest,
    user_id: UserId,
    datastore: Datastore,
    client_factory: Annotated[CommerceClientFactory, Depends(get_commerce_client_factory)],
) -> ShopifyImportResponse:
    """Import the store's products, upserting on (integration_id, external_id)."""
    integration = await datastore.get(INTEGRATIONS, body.integration_id, owner_id=user_id)
    if integration is None or integration.get("platform") != "shopify":
        raise NotFoundAppError(code="integration_not_found", message="Integration not found")

    client = client_factory(integration)
    shopify_products = await client.get_products(SHOPIFY_IMPORT_LIMIT)
    if not shopify_products:
        return ShopifyImportResponse(message="No products found in Shopify store", synced=0, total=0)

    synced = 0
    errors: list[str] = []
    for index, raw in enumerate(shopify_products):
        if not isinstance(raw, dict):
            errors.append(f"Product #{index}: unexpected payload type {type(raw).__name__}")
            continue
        try:
            row = _product_from_shopify(raw, integration)
        except (KeyError, TypeError, ValueError) as exc:
            errors.append(f"Product {raw.get('title', '?')}: {exc}")
            continue

        matches, _ = await datastore.select(
            PRODUCTS,
            owner_id=user_id,
            filters={"integration_id": integration["id"], "external_id": row["external_id"]},
            limit=1,
        )
        if matches:
            await datastore.update(PRODUCTS, matches[0]["id"], row, owner_id=user_id)
        else:
            await datastore.insert(PRODUCTS, row, owner_id=user_id)
        synced += 1

    await datastore.update(
        INTEGRATIONS, integration["id"], {"last_sync_at": utc_now_iso()}, owner_id=user_id
    )
    logger.info(
        "shopify.import_completed",
        extra={
            "integration_id": integration["id"],
            "synced": synced,
            "total": len(shopify_products),
            "failed": len(errors),
        },
    )
    return ShopifyImportResponse(
        message="Products synced successfully",
        synced=synced,
        total=len(shopify_products),
        errors=errors,
    )


@router.get(
    "/products",
    dependencies=[Depends(require_admission("products-get"))],
)
async def list_products(
    user_id: UserId,
    datastore: Datastore,
    integration_id: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
) -> dict:
    page, limit, offset = resolve_page(page, limit)
    filters = {"integration_id": integration_id} if integration_id else None
    products, total = await datastore.select(
        PRODUCTS, owner_id=user_id, filters=filters, offset=offset, limit=limit
    )
    return {"products": products, "meta": page_meta(page, limit, total)}


@router.get(
    "/product-links",
    dependencies=[Depends(require_admission("product-links-get"))],
)
async def list_product_links(user_id: UserId, datastore: Datastore) -> dict:
    links, _ = await datastore.select(PRODUCT_LINKS, owner_id=user_id)
    for link in links:
        link["shopify_product"] = await datastore.get(
            PRODUCTS, link["shopify_product_id"], owner_id=user_id
        )
    return {"product_links": links}


@router.post(
    "/product-links",
    status_code=201,
    dependencies=[Depends(require_admission("product-links-post"))],
)
async def create_product_link(body: ProductLinkCreate, user_id: UserId, datastore: Datastore) -> dict:
    """Link a local (Shopify) product to a TikTok Shop product id."""
    product = await datastore.get(PRODUCTS, body.shopify_product_id, owner_id=user_id)
    if product is None:
        raise NotFoundAppError(code="product_not_found", message="Product not found")

    _, existing = await datastore.select(
        PRODUCT_LINKS,
        owner_id=user_id,
        filters={
            "shopify_product_id": body.shopify_product_id,
            "tiktok_product_id": body.tiktok_product_id,
        },
        limit=1,
    )
    if existing:
        raise ConflictAppError(code="conflict", message="These products are already linked")

    link = await datastore.insert(
        PRODUCT_LINKS,
        {**body.model_dump(), "sync_status": "pending", "last_synced_at": None, "error_message": None},
        owner_id=user_id,
    )
    return {"product_link": link}


@router.post(
    "/product-links/{link_id}/sync",
    response_model=ProductSyncResponse,
    dependencies=[Depends(require_admission("product-sync", resource_param="link_id"))],
)
async def sync_product_link(link_id: str, user_id: UserId, datastore: Datastore) -> ProductSyncResponse:
    """Push the linked product's price and inventory, then record the sync.

    The limit is scoped per link, so syncing one link never starves another.
    """
    link = await datastore.get(PRODUCT_LINKS, link_id, owner_id=user_id)
    if link is None:
        raise NotFoundAppError(code="product_link_not_found", message="Product link not found")
    if link.get("sync_status") == "disabled":
        raise ValidationAppError(code="sync_disabled", message="Sync is disabled for this product link")

    product = await datastore.get(PRODUCTS, link["shopify_product_id"], owner_id=user_id)
    if product is None:
        message = "Linked product no longer exists"
        await datastore.update(
            PRODUCT_LINKS,
            link_id,
            {"sync_status": "error", "error_message": message},
            owner_id=user_id,
        )
        await datastore.insert(
            SYNC_LOGS,
            {"product_link_id": link_id, "sync_type": "full", "status": "error", "error_message": message},
            owner_id=user_id,
        )
        raise NotFoundAppError(code="product_not_found", message=message)

    results = ProductSyncResults(
        price_synced=bool(link.get("sync_price")) and product.get("price") is not None,
        inventory_synced=bool(link.get("sync_inventory"))
        and product.get("inventory_quantity") is not None,
    )
    updated = await datastore.update(
        PRODUCT_LINKS,
        link_id,
        {"sync_status": "synced", "last_synced_at": utc_now_iso(), "error_message": None},
        owner_id=user_id,
    )
    await datastore.insert(
        SYNC_LOGS,
        {
            "product_link_id": link_id,
            "sync_type": "full",
            "status": "success",
            "details": results.model_dump(),
        },
        owner_id=user_id,
    )
    logger.info(
        "product_link.synced",
        extra={"product_link_id": link_id, **results.model_dump()},
    )
    return ProductSyncResponse(message="Product synced successfully", results=results, link=updated)
