"""Tests for integration, product import and product-link routes.

The commerce client factory dependency is overridden with a fake store so
no test touches the network.
"""

import asyncio

import pytest

from shiptrack.api.deps import get_commerce_client_factory
from shiptrack.core.errors import ExternalServiceAppError

SHOPIFY_PRODUCTS = [
    {
        "id": 101,
        "title": "Canvas Tote",
        "body_html": "<p>Sturdy</p>",
        "handle": "canvas-tote",
        "status": "active",
        "variants": [{"price": "24.50", "sku": "TOTE-1", "inventory_quantity": 12}],
        "images": [{"src": "https://cdn.example.com/tote.png"}],
    },
    {
        "id": 102,
        "title": "Enamel Mug",
        "handle": "enamel-mug",
        "status": "draft",
        "variants": [],
        "images": [],
    },
]


class FakeStore:
    def __init__(self, products=None, error: Exception | None = None) -> None:
        self.products = SHOPIFY_PRODUCTS if products is None else products
        self.error = error
        self.connected = True
        self.calls: list[int] = []
        self.verify_calls = 0
        self.integrations: list[dict] = []

    def bind(self, integration) -> "FakeStore":
        self.integrations.append(dict(integration))
        return self

    async def verify_connection(self) -> bool:
        self.verify_calls += 1
        return self.connected

    async def get_products(self, limit: int = 50):
        self.calls.append(limit)
        if self.error is not None:
            raise self.error
        return self.products


@pytest.fixture
def store(app) -> FakeStore:
    fake = FakeStore()
    app.dependency_overrides[get_commerce_client_factory] = lambda: fake.bind
    yield fake
    app.dependency_overrides.clear()


@pytest.fixture
def integration(client, user1_headers, store) -> dict:
    response = client.post(
        "/api/integrations",
        json={"platform": "shopify", "shop_url": "demo.myshopify.com", "access_token": "shpat_secret"},
        headers=user1_headers,
    )
    assert response.status_code == 201
    return response.json()["integration"]


def _import(client, headers, integration_id: str):
    return client.post(
        "/api/integrations/shopify/products",
        json={"integration_id": integration_id},
        headers=headers,
    )


@pytest.fixture
def product(client, user1_headers, integration, store) -> dict:
    assert _import(client, user1_headers, integration["id"]).status_code == 200
    products = client.get("/api/products", headers=user1_headers).json()["products"]
    return next(p for p in products if p["external_id"] == "101")


def _link(client, headers, product_id: str, tiktok_id: str = "tt-1", **extra):
    return client.post(
        "/api/product-links",
        json={"shopify_product_id": product_id, "tiktok_product_id": tiktok_id, **extra},
        headers=headers,
    )


class TestIntegrations:
    def test_access_token_is_never_returned(self, client, user1_headers, integration) -> None:
        assert "access_token" not in integration

        listed = client.get("/api/integrations", headers=user1_headers).json()["integrations"]
        assert [row["id"] for row in listed] == [integration["id"]]
        assert "access_token" not in listed[0]
        assert "shpat_secret" not in client.get("/api/integrations", headers=user1_headers).text

    def test_duplicate_store_conflicts(self, client, user1_headers, integration) -> None:
        response = client.post(
            "/api/integrations",
            json={"platform": "shopify", "shop_url": "demo.myshopify.com", "access_token": "x"},
            headers=user1_headers,
        )
        assert response.status_code == 409

    def test_shopify_credentials_are_verified_before_saving(
        self, client, user1_headers, integration, store
    ) -> None:
        assert store.verify_calls == 1
        assert store.integrations[0]["shop_url"] == "demo.myshopify.com"
        assert store.integrations[0]["access_token"] == "shpat_secret"

    def test_rejected_credentials_are_not_saved(self, client, user1_headers, store) -> None:
        store.connected = False

        response = client.post(
            "/api/integrations",
            json={"platform": "shopify", "shop_url": "demo.myshopify.com", "access_token": "bad"},
            headers=user1_headers,
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "connection_failed"
        assert error["message"] == "Failed to verify connection"
        assert store.verify_calls == 1
        assert client.get("/api/integrations", headers=user1_headers).json()["integrations"] == []

    def test_tiktok_shop_is_saved_without_verification(self, client, user1_headers, store) -> None:
        response = client.post(
            "/api/integrations",
            json={"platform": "tiktok_shop", "shop_url": "shop.tiktok.com", "access_token": "t"},
            headers=user1_headers,
        )

        assert response.status_code == 201
        assert store.verify_calls == 0

    def test_unknown_platform_is_rejected(self, client, user1_headers) -> None:
        response = client.post(
            "/api/integrations",
            json={"platform": "etsy", "shop_url": "x", "access_token": "x"},
            headers=user1_headers,
        )
        assert response.status_code == 422

    def test_write_quota(self, client, user1_headers, store) -> None:
        statuses = [
            client.post(
                "/api/integrations",
                json={"platform": "shopify", "shop_url": f"shop-{i}.myshopify.com", "access_token": "x"},
                headers=user1_headers,
            ).status_code
            for i in range(6)
        ]
        assert statuses == [201] * 5 + [429]


class TestShopifyImport:
    def test_imports_and_maps_products(self, client, user1_headers, integration, store) -> None:
        response = _import(client, user1_headers, integration["id"])

        assert response.status_code == 200
        assert response.json() == {
            "message": "Products synced successfully",
            "synced": 2,
            "total": 2,
            "errors": [],
        }
        assert store.calls == [250]

        products = client.get("/api/products", headers=user1_headers).json()["products"]
        tote = next(p for p in products if p["external_id"] == "101")
        assert tote["price"] == 24.5
        assert tote["inventory_quantity"] == 12
        assert tote["product_url"] == "https://demo.myshopify.com/products/canvas-tote"
        assert tote["status"] == "active"
        mug = next(p for p in products if p["external_id"] == "102")
        assert mug["price"] is None
        assert mug["status"] == "draft"

    def test_reimport_updates_in_place(self, client, user1_headers, integration, store) -> None:
        _import(client, user1_headers, integration["id"])
        store.products = [{**SHOPIFY_PRODUCTS[0], "title": "Canvas Tote v2"}]

        _import(client, user1_headers, integration["id"])

        body = client.get("/api/products", headers=user1_headers).json()
        assert body["meta"]["total"] == 2
        titles = {p["title"] for p in body["products"]}
        assert titles == {"Canvas Tote v2", "Enamel Mug"}

        listed = client.get("/api/integrations", headers=user1_headers).json()["integrations"]
        assert listed[0]["last_sync_at"] is not None

    def test_malformed_entries_are_reported_not_fatal(
        self, client, user1_headers, integration, store
    ) -> None:
        store.products = [None, "oops", SHOPIFY_PRODUCTS[0]]

        response = _import(client, user1_headers, integration["id"])

        assert response.status_code == 200
        body = response.json()
        assert body["synced"] == 1
        assert body["total"] == 3
        assert body["errors"] == [
            "Product #0: unexpected payload type NoneType",
            "Product #1: unexpected payload type str",
        ]

    def test_empty_store(self, client, user1_headers, integration, store) -> None:
        store.products = []

        body = _import(client, user1_headers, integration["id"]).json()

        assert body["synced"] == 0
        assert body["message"] == "No products found in Shopify store"

    def test_other_users_integration_is_not_found(
        self, client, user2_headers, integration, store
    ) -> None:
        response = _import(client, user2_headers, integration["id"])

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "integration_not_found"
        assert store.calls == []

    def test_upstream_failure_maps_to_502(self, client, user1_headers, integration, store) -> None:
        store.error = ExternalServiceAppError(
            code="shopify_api_error", message="Shopify API error: 500"
        )

        response = _import(client, user1_headers, integration["id"])

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "shopify_api_error"

    def test_sync_tier_allows_three_calls_per_five_minutes(
        self, client, user1_headers, integration, store, clock
    ) -> None:
        statuses = [_import(client, user1_headers, integration["id"]).status_code for _ in range(4)]

        assert statuses == [200, 200, 200, 429]
        assert len(store.calls) == 3

        clock.advance(299_999)
        throttled = _import(client, user1_headers, integration["id"])
        assert throttled.status_code == 429
        assert throttled.headers["Retry-After"] == "300"

        clock.advance(1)
        assert _import(client, user1_headers, integration["id"]).status_code == 200


class TestProductLinks:
    def test_create_and_list(self, client, user1_headers, product) -> None:
        response = _link(client, user1_headers, product["id"])

        assert response.status_code == 201
        link = response.json()["product_link"]
        assert link["sync_status"] == "pending"

        links = client.get("/api/product-links", headers=user1_headers).json()["product_links"]
        assert links[0]["shopify_product"]["title"] == "Canvas Tote"

    def test_unknown_product(self, client, user1_headers) -> None:
        response = _link(client, user1_headers, "missing")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "product_not_found"

    def test_duplicate_link_conflicts(self, client, user1_headers, product) -> None:
        _link(client, user1_headers, product["id"])

        assert _link(client, user1_headers, product["id"]).status_code == 409


class TestProductSync:
    def test_sync_marks_link_synced_and_logs(
        self, client, user1_headers, product, datastore
    ) -> None:
        link_id = _link(client, user1_headers, product["id"], sync_inventory=False).json()["product_link"]["id"]

        response = client.post(f"/api/product-links/{link_id}/sync", headers=user1_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["results"] == {"price_synced": True, "inventory_synced": False}
        assert body["link"]["sync_status"] == "synced"

        logs, _ = asyncio.run(datastore.select("sync_logs", owner_id="user-1"))
        assert [log["status"] for log in logs] == ["success"]

    def test_disabled_link(self, client, user1_headers, product, datastore) -> None:
        link_id = _link(client, user1_headers, product["id"]).json()["product_link"]["id"]
        asyncio.run(
            datastore.update("product_links", link_id, {"sync_status": "disabled"}, owner_id="user-1")
        )

        response = client.post(f"/api/product-links/{link_id}/sync", headers=user1_headers)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "sync_disabled"

    def test_missing_product_marks_error(self, client, user1_headers, product, datastore) -> None:
        link_id = _link(client, user1_headers, product["id"]).json()["product_link"]["id"]
        asyncio.run(datastore.delete("products", product["id"], owner_id="user-1"))

        response = client.post(f"/api/product-links/{link_id}/sync", headers=user1_headers)

        assert response.status_code == 404
        link = asyncio.run(datastore.get("product_links", link_id, owner_id="user-1"))
        assert link["sync_status"] == "error"
        logs, _ = asyncio.run(datastore.select("sync_logs", owner_id="user-1"))
        assert [log["status"] for log in logs] == ["error"]

    def test_unknown_link(self, client, user1_headers) -> None:
        response = client.post("/api/product-links/missing/sync", headers=user1_headers)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "product_link_not_found"

    def test_limit_is_scoped_per_link(self, client, user1_headers, product) -> None:
        first = _link(client, user1_headers, product["id"], "tt-1").json()["product_link"]["id"]
        second = _link(client, user1_headers, product["id"], "tt-2").json()["product_link"]["id"]

        statuses = [
            client.post(f"/api/product-links/{first}/sync", headers=user1_headers).status_code
            for _ in range(21)
        ]

        assert statuses == [200] * 20 + [429]
        assert client.post(f"/api/product-links/{second}/sync", headers=user1_headers).status_code == 200
