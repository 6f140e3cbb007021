"""Admission control: which rate limit applies to which operation.

Route handlers call ``AdmissionPolicy.admit(operation, caller_key)`` once,
before doing any work. The policy table below groups operations into tiers:
generous limits for reads, stricter ones for writes, very strict ones for
authentication attempts, and a small multi-minute budget for bulk syncs
against third-party platforms.
"""

from __future__ import annotations

import logging
from typing import Mapping

from shiptrack.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimitPolicy,
    RateLimitResult,
)

logger = logging.getLogger(__name__)

MINUTE_MS = 60_000

RATE_LIMIT_TIERS: dict[str, RateLimitPolicy] = {
    "default": RateLimitPolicy(interval_ms=MINUTE_MS, quota=30),
    "auth": RateLimitPolicy(interval_ms=MINUTE_MS, quota=5),
    "shipments_read": RateLimitPolicy(interval_ms=MINUTE_MS, quota=50),
    "shipments_write": RateLimitPolicy(interval_ms=MINUTE_MS, quota=20),
    "shipment_events_write": RateLimitPolicy(interval_ms=MINUTE_MS, quota=15),
    "integrations_read": RateLimitPolicy(interval_ms=MINUTE_MS, quota=30),
    "integrations_write": RateLimitPolicy(interval_ms=MINUTE_MS, quota=5),
    "products_read": RateLimitPolicy(interval_ms=MINUTE_MS, quota=50),
    "product_links_read": RateLimitPolicy(interval_ms=MINUTE_MS, quota=30),
    "product_links_write": RateLimitPolicy(interval_ms=MINUTE_MS, quota=10),
    "product_sync": RateLimitPolicy(interval_ms=MINUTE_MS, quota=20),
    "sync": RateLimitPolicy(interval_ms=5 * MINUTE_MS, quota=3),
}

DEFAULT_POLICY = RATE_LIMIT_TIERS["default"]

OPERATION_TIERS: dict[str, str] = {
    "shipments-get": "shipments_read",
    "shipments-post": "shipments_write",
    "shipment-get": "shipments_read",
    "shipment-put": "shipments_write",
    "shipment-delete": "shipments_write",
    "events-post": "shipment_events_write",
    "integrations-get": "integrations_read",
    "integrations-post": "integrations_write",
    "shopify-sync": "sync",
    "products-get": "products_read",
    "product-links-get": "product_links_read",
    "product-links-post": "product_links_write",
    "product-sync": "product_sync",
    "dashboard-stats": "default",
    "auth-verify": "auth",
}


def build_operation_policies() -> dict[str, RateLimitPolicy]:
    """Resolve ``OPERATION_TIERS`` into concrete policies."""

    return {operation: RATE_LIMIT_TIERS[tier] for operation, tier in OPERATION_TIERS.items()}


class AdmissionPolicy:
    """Bind operation names to rate limit policies over a shared limiter.

    Unknown operation names fall back to ``default_policy`` instead of
    failing, so a missing table entry degrades to a generous limit rather
    than rejecting traffic.
    """

    def __init__(
        self,
        limiter: AbstractRateLimiter,
        policies: Mapping[str, RateLimitPolicy] | None = None,
        *,
        default_policy: RateLimitPolicy = DEFAULT_POLICY,
    ) -> None:
        self._limiter = limiter
        self._policies = dict(policies if policies is not None else build_operation_policies())
        self._default_policy = default_policy
        self._warned_operations: set[str] = set()

    @property
    def default_policy(self) -> RateLimitPolicy:
        return self._default_policy

    def policy_for(self, operation: str) -> RateLimitPolicy:
        """Return the policy registered for ``operation`` or the default."""

        policy = self._policies.get(operation)
        if policy is not None:
            return policy

        if operation not in self._warned_operations:
            self._warned_operations.add(operation)
            logger.warning(
                "admission.unknown_operation",
                extra={
                    "operation": operation,
                    "fallback_interval_ms": self._default_policy.interval_ms,
                    "fallback_quota": self._default_policy.quota,
                },
            )
        return self._default_policy

    def admit(self, operation: str, caller_key: str) -> RateLimitResult:
        """Decide whether ``caller_key`` may perform ``operation`` now.

        Args:
            operation: Logical operation name, e.g. ``"shipments-post"``.
            caller_key: Identity of the rate-limited subject (user id,
                optionally scoped by a resource id).

        Returns:
            The limiter's RateLimitResult, unchanged. If the limiter itself
            fails, the request is admitted and the failure is logged.
        """

        policy = self.policy_for(operation)
        identifier = f"{operation}-{caller_key}"

        try:
            return self._limiter.check(identifier, policy)
        except Exception:
            logger.exception(
                "admission.limiter_failed",
                extra={"operation": operation},
            )
            return RateLimitResult(
                admitted=True,
                remaining=max(0, policy.quota),
                limit=policy.quota,
                reset_at=0,
            )
