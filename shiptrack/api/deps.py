"""Shared FastAPI dependencies for route handlers."""

from __future__ import annotations

from typing import Any, Callable, Mapping

from fastapi import Request

from shiptrack.adapters.commerce.base import AbstractCommerceClient
from shiptrack.adapters.commerce.factory import create_commerce_client
from shiptrack.adapters.datastore.base import AbstractDatastore
from shiptrack.core.config import settings

CommerceClientFactory = Callable[[Mapping[str, Any]], AbstractCommerceClient]


def get_datastore(request: Request) -> AbstractDatastore:
    """Return the datastore attached to the running app."""
    return request.app.state.datastore


def get_commerce_client_factory() -> CommerceClientFactory:
    """Return the factory that builds platform clients from integration rows.

    Tests override this dependency to avoid real network calls.
    """
    return create_commerce_client


def resolve_page(page: int, limit: int | None) -> tuple[int, int, int]:
    """Clamp pagination input and return ``(page, limit, offset)``."""
    page = max(1, page)
    limit = min(settings.app.max_page_size, max(1, limit or settings.app.default_page_size))
    return page, limit, (page - 1) * limit


def page_meta(page: int, limit: int, total: int) -> dict[str, int]:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": -(-total // limit),
    }
