"""Shopify Admin REST API client."""

import logging
from typing import Any

import httpx

from shiptrack.adapters.commerce.base import AbstractCommerceClient
from shiptrack.core.errors import ExternalServiceAppError

logger = logging.getLogger(__name__)


def normalize_shop_domain(shop_url: str) -> str:
    """Strip scheme and trailing slash: ``https://x.myshopify.com/`` -> ``x.myshopify.com``."""
    domain = shop_url.strip()
    for prefix in ("https://", "http://"):
        if domain.lower().startswith(prefix):
            domain = domain[len(prefix):]
    return domain.rstrip("/")


class ShopifyClient(AbstractCommerceClient):
    """Client for the Shopify Admin REST API.

    Uses httpx with async support. A transport can be injected for tests.
    """

    def __init__(
        self,
        shop_url: str,
        access_token: str,
        api_version: str = "2024-01",
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the Shopify client.

        Args:
            shop_url: Store domain, with or without scheme.
            access_token: Admin API access token for the store.
            api_version: Admin API version segment (e.g. "2024-01").
            timeout_seconds: Timeout for requests in seconds.
            transport: Optional httpx transport override.
        """
        self.shop_domain = normalize_shop_domain(shop_url)
        self.base_url = f"https://{self.shop_domain}/admin/api/{api_version}"
        self._access_token = access_token
        self._timeout = timeout_seconds
        self._transport = transport

    async def _request(self, method: str, endpoint: str, **kwargs: Any) -> dict[str, Any]:
        headers = {
            "X-Shopify-Access-Token": self._access_token,
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(method, endpoint, headers=headers, **kwargs)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "shopify.request_failed",
                extra={
                    "shop_domain": self.shop_domain,
                    "endpoint": endpoint,
                    "http_status": exc.response.status_code,
                },
            )
            raise ExternalServiceAppError(
                code="shopify_api_error",
                message=f"Shopify API returned HTTP {exc.response.status_code}",
                details={"platform": "shopify", "http_status": exc.response.status_code},
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.error(
                "shopify.request_failed",
                extra={
                    "shop_domain": self.shop_domain,
                    "endpoint": endpoint,
                    "error_type": type(exc).__name__,
                },
            )
            raise ExternalServiceAppError(
                code="shopify_unreachable",
                message="Could not reach Shopify. Please try again later.",
                details={"platform": "shopify"},
            ) from exc

    async def get_products(self, limit: int = 50) -> list[dict[str, Any]]:
        """Fetch up to ``limit`` products (Shopify caps a page at 250)."""
        data = await self._request("GET", "/products.json", params={"limit": min(limit, 250)})
        products = data.get("products") or []
        logger.info(
            "shopify.products_fetched",
            extra={"shop_domain": self.shop_domain, "count": len(products)},
        )
        return products

    async def verify_connection(self) -> bool:
        """Fetch ``/shop.json``; any platform error means the credentials are unusable."""
        try:
            await self._request("GET", "/shop.json")
        except ExternalServiceAppError as exc:
            logger.warning(
                "shopify.verify_failed",
                extra={"shop_domain": self.shop_domain, "error_code": exc.code},
            )
            return False
        return True
