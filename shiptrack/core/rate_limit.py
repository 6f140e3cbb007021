"""Admission control dependencies for FastAPI routes.

This module wires the admission layer into the HTTP layer.

Design goals:
- One call per handler: routes declare ``Depends(require_admission(op))``.
- Injected state: the limiter and admission policy live on ``app.state``,
  created once by the app factory, so tests get a fresh limiter per app.
- Rejections surface as ``RateLimitAppError`` and are rendered as HTTP 429
  by the global exception handlers.
"""

from __future__ import annotations

import logging
from typing import Annotated, Awaitable, Callable

from fastapi import Depends, Request

from shiptrack.adapters.rate_limit.base import RateLimitResult
from shiptrack.core.admission import AdmissionPolicy
from shiptrack.core.auth import get_current_user_id
from shiptrack.core.config import settings
from shiptrack.core.errors import RateLimitAppError
from shiptrack.core.logging import hash_identifier

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests. Please try again later."

AdmissionDependency = Callable[..., Awaitable[RateLimitResult | None]]


def get_admission_policy(request: Request) -> AdmissionPolicy:
    """Return the admission policy attached to the running app."""

    return request.app.state.admission


def _enforce(
    admission: AdmissionPolicy,
    operation: str,
    caller_key: str,
    *,
    key_type: str,
) -> RateLimitResult | None:
    if not settings.app.rate_limit_enabled:
        return None

    result = admission.admit(operation, caller_key)
    caller_hash = hash_identifier(caller_key)

    if result.admitted:
        logger.debug(
            "rate_limit.allowed",
            extra={
                "operation": operation,
                "key_type": key_type,
                "caller_hash": caller_hash,
                "limit": result.limit,
                "remaining": result.remaining,
            },
        )
        return result

    policy = admission.policy_for(operation)
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "operation": operation,
            "key_type": key_type,
            "caller_hash": caller_hash,
            "limit": result.limit,
            "window_ms": policy.interval_ms,
        },
    )
    raise RateLimitAppError(
        code="rate_limit_exceeded",
        message=RATE_LIMIT_MESSAGE,
        details={
            "operation": operation,
            "limit": result.limit,
            "remaining": result.remaining,
            "reset_at": result.reset_at,
            "retry_after": policy.retry_after_seconds,
        },
    )


def require_admission(
    operation: str,
    *,
    resource_param: str | None = None,
) -> AdmissionDependency:
    """Build a dependency that admits the authenticated caller for ``operation``.

    Args:
        operation: Operation name looked up in the admission policy table.
        resource_param: Optional path parameter that scopes the limit to one
            resource (e.g. one product link) in addition to the user.

    Returns:
        Async FastAPI dependency returning the RateLimitResult (None when
        rate limiting is disabled).

    Raises:
        RateLimitAppError: From the dependency when the quota is exhausted.
    """

    async def dependency(
        request: Request,
        user_id: Annotated[str, Depends(get_current_user_id)],
    ) -> RateLimitResult | None:
        caller_key = user_id
        if resource_param is not None:
            caller_key = f"{user_id}-{request.path_params[resource_param]}"
        return _enforce(
            get_admission_policy(request), operation, caller_key, key_type="user"
        )

    return dependency


def require_client_admission(operation: str) -> AdmissionDependency:
    """Build a dependency that admits by client address.

    Used for endpoints reached before the caller has an identity, such as
    authentication attempts.
    """

    async def dependency(request: Request) -> RateLimitResult | None:
        client_host = request.client.host if request.client else "unknown"
        return _enforce(
            get_admission_policy(request), operation, client_host, key_type="ip"
        )

    return dependency
