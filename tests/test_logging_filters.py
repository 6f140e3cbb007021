"""Tests for sensitive data filtering and JSON log output."""

from __future__ import annotations

import json
import logging
from io import StringIO

import pytest

from shiptrack.core.logging import (
    JsonFormatter,
    SensitiveDataFilter,
    clear_request_id,
    hash_identifier,
    set_request_id,
)


@pytest.fixture
def capture():
    """Logger wired to a StringIO through the redaction filter and JSON formatter."""

    def _build(name: str) -> tuple[logging.Logger, StringIO]:
        logger = logging.getLogger(name)
        logger.setLevel(logging.INFO)
        logger.handlers.clear()
        logger.propagate = False

        stream = StringIO()
        handler = logging.StreamHandler(stream)
        handler.addFilter(SensitiveDataFilter())
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)
        return logger, stream

    return _build


def test_redacts_tokens(capture):
    logger, stream = capture("test_redaction")

    logger.info(
        "integration.created",
        extra={
            "access_token": "shpat_secret",
            "authorization": "Bearer token-user-1",
            "platform": "shopify",
        },
    )

    output = stream.getvalue()
    assert "shpat_secret" not in output
    assert "token-user-1" not in output
    assert "[REDACTED]" in output
    assert "shopify" in output


def test_redacts_nested_headers(capture):
    logger, stream = capture("test_nested")

    logger.info(
        "outbound_request",
        extra={
            "headers": {"X-Shopify-Access-Token": "shpat_secret", "user-agent": "pytest"},
            "attempts": [{"password": "hunter2"}],
        },
    )

    output = stream.getvalue()
    assert "shpat_secret" not in output
    assert "hunter2" not in output
    assert "pytest" in output


def test_safe_fields_pass_through(capture):
    logger, stream = capture("test_safe_fields")

    logger.info(
        "rate_limit.exceeded",
        extra={
            "request_id": "req-123",
            "operation": "shipments-post",
            "limit": 20,
            "caller_hash": hash_identifier("user-1"),
        },
    )

    payload = json.loads(stream.getvalue())
    assert payload["message"] == "rate_limit.exceeded"
    assert payload["level"] == "info"
    assert payload["request_id"] == "req-123"
    assert payload["operation"] == "shipments-post"
    assert payload["limit"] == 20
    assert "[REDACTED]" not in stream.getvalue()


def test_request_id_from_context(capture):
    logger, stream = capture("test_context")

    set_request_id("ctx-456")
    try:
        logger.info("event")
    finally:
        clear_request_id()

    assert json.loads(stream.getvalue())["request_id"] == "ctx-456"


def test_hash_identifier_is_stable_and_short():
    assert hash_identifier("user-1") == hash_identifier("user-1")
    assert hash_identifier("user-1") != hash_identifier("user-2")
    assert len(hash_identifier("user-1")) == 16
    assert "user-1" not in hash_identifier("user-1")
