"""
Tests for app wiring: health, error formatting and rate limiting
"""
import time
from collections import deque

from app.utils.rate_limiter import rate_limiter


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "Assessment Session Engine"


def test_root(client):
    data = client.get("/").json()
    assert data["docs"] == "/docs"


def test_validation_error_format(client, auth_headers):
    response = client.post("/api/sessions/start", json={}, headers=auth_headers)

    assert response.status_code == 400
    data = response.json()
    assert data["error"] == "validation_error"
    assert data["status_code"] == 400
    assert {tuple(d["loc"])[-1] for d in data["details"]} >= {"testId", "mode"}


def test_http_error_format(client):
    response = client.get("/api/sessions/active")

    assert response.status_code == 401
    assert response.json() == {
        "error": "http_error",
        "message": "Authentication required",
        "status_code": 401,
    }


def test_rate_limit(client, auth_headers, monkeypatch):
    monkeypatch.setattr(rate_limiter, "requests_per_minute", 2)

    statuses = [
        client.get("/api/sessions/active", headers=auth_headers).status_code
        for _ in range(3)
    ]

    assert statuses == [200, 200, 429]
    body = client.get("/api/sessions/active", headers=auth_headers).json()
    assert body["error"] == "rate_limit_exceeded"
    assert body["retry_after"] == 60


def test_rate_limit_is_per_caller(client, auth_headers, monkeypatch):
    monkeypatch.setattr(rate_limiter, "requests_per_minute", 1)

    first = client.get("/api/sessions/active", headers=auth_headers)
    other = client.get(
        "/api/sessions/active", headers={"X-User-Id": "6f1c1b0e-8f7a-4d8e-9a57-1f2b3c4d5e6f"}
    )

    assert first.status_code == 200
    assert other.status_code == 200


def test_health_exempt_from_rate_limit(client, monkeypatch):
    monkeypatch.setattr(rate_limiter, "requests_per_minute", 1)

    statuses = {client.get("/health").status_code for _ in range(3)}

    assert statuses == {200}


def test_idle_callers_are_forgotten(client, auth_headers):
    stale = time.time() - 2 * 3600
    for i in range(1000):
        rate_limiter.minute_tracker[f"ip:10.0.{i // 256}.{i % 256}"] = deque([stale])
        rate_limiter.hour_tracker[f"ip:10.0.{i // 256}.{i % 256}"] = deque([stale])

    response = client.get("/api/sessions/active", headers=auth_headers)

    assert response.status_code == 200
    caller = f"user:{auth_headers['X-User-Id']}"
    assert list(rate_limiter.minute_tracker) == [caller]
    assert list(rate_limiter.hour_tracker) == [caller]


def test_recent_callers_are_kept(client, auth_headers):
    recent = time.time() - 30
    rate_limiter.minute_tracker["ip:10.1.0.1"] = deque([recent])
    rate_limiter.hour_tracker["ip:10.1.0.1"] = deque([recent])

    client.get("/api/sessions/active", headers=auth_headers)

    assert "ip:10.1.0.1" in rate_limiter.minute_tracker
    assert "ip:10.1.0.1" in rate_limiter.hour_tracker
