"""Factory pattern for creating commerce platform clients."""

from typing import Any, Mapping

from shiptrack.adapters.commerce.base import AbstractCommerceClient
from shiptrack.adapters.commerce.shopify_client import ShopifyClient
from shiptrack.core.config import settings
from shiptrack.core.errors import ValidationAppError


def create_commerce_client(integration: Mapping[str, Any]) -> AbstractCommerceClient:
    """Instantiate the client for an integration row.

    Args:
        integration: Integration row with ``platform``, ``shop_url`` and
            ``access_token``.

    Returns:
        AbstractCommerceClient: Client bound to the integration's store.

    Raises:
        ValidationAppError: If the platform has no catalog client or the
            integration lacks credentials.
    """
    platform = str(integration.get("platform", "")).lower()

    if platform == "shopify":
        if not integration.get("shop_url") or not integration.get("access_token"):
            raise ValidationAppError(
                code="integration_missing_credentials",
                message="Shopify integration requires shop_url and access_token",
            )
        return ShopifyClient(
            shop_url=integration["shop_url"],
            access_token=integration["access_token"],
            api_version=settings.app.shopify_api_version,
            timeout_seconds=settings.app.commerce_timeout_seconds,
        )

    # TikTok Shop only receives price/inventory pushes; it has no catalog import.
    raise ValidationAppError(
        code="unsupported_platform",
        message=f"Product import is not supported for platform '{platform}'. Supported platforms: shopify",
        details={"platform": platform},
    )
