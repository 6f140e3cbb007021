"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
Environment variables are set before any import of ``shiptrack`` so the
settings object picks them up and no .env file is loaded.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["TESTING"] = "true"
os.environ.setdefault("APP_AUTH_TOKENS", "token-user-1:user-1,token-user-2:user-2")
os.environ.setdefault("APP_RATE_LIMIT_SWEEP_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient

from shiptrack.adapters.datastore.in_memory import InMemoryDatastore
from shiptrack.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from shiptrack.core.app_factory import create_app


class FakeClock:
    """Millisecond clock advanced manually by tests."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def datastore() -> InMemoryDatastore:
    return InMemoryDatastore()


@pytest.fixture
def rate_limiter(clock: FakeClock) -> InMemoryFixedWindowRateLimiter:
    return InMemoryFixedWindowRateLimiter(clock=clock)


@pytest.fixture
def app(datastore: InMemoryDatastore, rate_limiter: InMemoryFixedWindowRateLimiter):
    """Fresh app per test: empty datastore, empty limiter on a fake clock."""
    return create_app(datastore=datastore, rate_limiter=rate_limiter)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def user1_headers() -> dict[str, str]:
    return {"Authorization": "Bearer token-user-1"}


@pytest.fixture
def user2_headers() -> dict[str, str]:
    return {"Authorization": "Bearer token-user-2"}
