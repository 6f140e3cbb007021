"""Tests for the Shopify client and the commerce client factory."""

import httpx
import pytest

from shiptrack.adapters.commerce.factory import create_commerce_client
from shiptrack.adapters.commerce.shopify_client import ShopifyClient, normalize_shop_domain
from shiptrack.core.errors import ExternalServiceAppError, ValidationAppError


def _client(handler) -> ShopifyClient:
    return ShopifyClient(
        shop_url="https://demo.myshopify.com/",
        access_token="shpat_secret",
        api_version="2024-01",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("demo.myshopify.com", "demo.myshopify.com"),
        ("https://demo.myshopify.com/", "demo.myshopify.com"),
        ("  HTTP://demo.myshopify.com  ", "demo.myshopify.com"),
    ],
)
def test_normalize_shop_domain(raw: str, expected: str) -> None:
    assert normalize_shop_domain(raw) == expected


@pytest.mark.asyncio
async def test_get_products_sends_token_and_caps_limit() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"products": [{"id": 1, "title": "Tote"}]})

    products = await _client(handler).get_products(limit=1000)

    assert products == [{"id": 1, "title": "Tote"}]
    request = seen[0]
    assert request.url.host == "demo.myshopify.com"
    assert request.url.path == "/admin/api/2024-01/products.json"
    assert request.url.params["limit"] == "250"
    assert request.headers["X-Shopify-Access-Token"] == "shpat_secret"


@pytest.mark.asyncio
async def test_missing_products_key_returns_empty_list() -> None:
    products = await _client(lambda request: httpx.Response(200, json={})).get_products()

    assert products == []


@pytest.mark.asyncio
async def test_http_error_status_raises_external_service_error() -> None:
    client = _client(lambda request: httpx.Response(500, json={"errors": "boom"}))

    with pytest.raises(ExternalServiceAppError) as exc_info:
        await client.get_products()

    assert exc_info.value.code == "shopify_api_error"
    assert exc_info.value.details["http_status"] == 500


@pytest.mark.asyncio
async def test_transport_error_raises_unreachable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ExternalServiceAppError) as exc_info:
        await _client(handler).get_products()

    assert exc_info.value.code == "shopify_unreachable"


@pytest.mark.asyncio
async def test_invalid_json_raises_unreachable() -> None:
    client = _client(lambda request: httpx.Response(200, content=b"<html>"))

    with pytest.raises(ExternalServiceAppError) as exc_info:
        await client.get_products()

    assert exc_info.value.code == "shopify_unreachable"


@pytest.mark.asyncio
async def test_verify_connection_fetches_shop() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"shop": {"name": "Demo"}})

    assert await _client(handler).verify_connection() is True
    assert seen[0].url.path == "/admin/api/2024-01/shop.json"
    assert seen[0].headers["X-Shopify-Access-Token"] == "shpat_secret"


@pytest.mark.asyncio
async def test_verify_connection_false_on_rejected_token() -> None:
    client = _client(lambda request: httpx.Response(401, json={"errors": "Invalid API key"}))

    assert await client.verify_connection() is False


@pytest.mark.asyncio
async def test_verify_connection_false_when_unreachable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    assert await _client(handler).verify_connection() is False


class TestFactory:
    def test_builds_shopify_client(self) -> None:
        client = create_commerce_client(
            {"platform": "Shopify", "shop_url": "https://demo.myshopify.com", "access_token": "t"}
        )

        assert isinstance(client, ShopifyClient)
        assert client.base_url.startswith("https://demo.myshopify.com/admin/api/")

    def test_missing_credentials(self) -> None:
        with pytest.raises(ValidationAppError) as exc_info:
            create_commerce_client({"platform": "shopify", "shop_url": "demo.myshopify.com"})

        assert exc_info.value.code == "integration_missing_credentials"

    def test_unsupported_platform(self) -> None:
        with pytest.raises(ValidationAppError) as exc_info:
            create_commerce_client({"platform": "tiktok_shop", "shop_url": "x", "access_token": "t"})

        assert exc_info.value.code == "unsupported_platform"
        assert exc_info.value.details == {"platform": "tiktok_shop"}
