from __future__ import annotations


def test_preserves_incoming_request_id_header(client):
    incoming_id = "test-request-id-123"
    resp = client.get("/api/health", headers={"X-Request-ID": incoming_id})

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") == incoming_id


def test_generates_request_id_when_missing(client):
    resp = client.get("/api/health")

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID")
    assert resp.headers.get("X-Request-Duration-ms") is not None


def test_request_id_is_echoed_in_error_body(client):
    resp = client.get("/api/shipments", headers={"X-Request-ID": "req-err-1"})

    assert resp.status_code == 401
    assert resp.json()["error"]["request_id"] == "req-err-1"
    assert resp.headers.get("X-Request-ID") == "req-err-1"
