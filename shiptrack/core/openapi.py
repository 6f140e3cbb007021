"""OpenAPI metadata and customization utilities.

Enriches the generated schema with:
- A bearer token security scheme applied to every operation
- Exemptions for the public endpoints (health, carriers, token verification)
- A ``429`` response on every rate limited operation
- Tags metadata
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

_PUBLIC_PATHS = ("/api/health", "/api/auth/verify", "/api/carriers")
_UNLIMITED_PATHS = ("/api/health", "/api/carriers")

_TAGS = [
    {"name": "Shipments", "description": "Shipments and their tracking timelines."},
    {"name": "Commerce", "description": "Store integrations, products and product links."},
    {"name": "Dashboard", "description": "Aggregated account statistics."},
    {"name": "Auth", "description": "Token verification."},
    {"name": "Health", "description": "Liveness checks."},
]

_TOO_MANY_REQUESTS = {
    "description": "Too many requests. Honour the Retry-After header.",
    "headers": {
        "Retry-After": {"schema": {"type": "integer"}},
        "X-RateLimit-Limit": {"schema": {"type": "integer"}},
        "X-RateLimit-Remaining": {"schema": {"type": "integer"}},
        "X-RateLimit-Reset": {"schema": {"type": "integer"}},
    },
}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add security and 429 docs."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        components = schema.setdefault("components", {})
        components.setdefault("securitySchemes", {}).setdefault(
            "BearerAuth",
            {
                "type": "http",
                "scheme": "bearer",
                "description": "Provide your token via the Authorization header.",
            },
        )
        schema.setdefault("security", [{"BearerAuth": []}])

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        tags.extend(tag for tag in _TAGS if tag["name"] not in existing_tag_names)

        for path, methods in schema.get("paths", {}).items():
            for method_obj in methods.values():
                if not isinstance(method_obj, dict):
                    continue
                if path in _PUBLIC_PATHS:
                    method_obj["security"] = []
                if path not in _UNLIMITED_PATHS:
                    method_obj.setdefault("responses", {}).setdefault("429", _TOO_MANY_REQUESTS)

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
