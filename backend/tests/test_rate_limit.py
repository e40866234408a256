import pytest

import app.core.deps as deps
import app.main as main
from app.core.config import settings
from app.core.rate_limit import MemoryRateLimitStore, RateLimiter
from conftest import PASSWORD, auth_headers


@pytest.fixture
def limited(monkeypatch):
    monkeypatch.setattr(settings, "ENABLE_RATE_LIMIT", True)
    monkeypatch.setattr(main, "api_limiter", RateLimiter(2, 60, MemoryRateLimitStore(), "test:api"))
    monkeypatch.setattr(deps, "auth_limiter", RateLimiter(1, 60, MemoryRateLimitStore(), "test:auth"))


def test_api_requests_are_limited(client, limited):
    first = client.get("/api/v1/tags")
    assert first.headers["X-RateLimit-Limit"] == "2"
    assert first.headers["X-RateLimit-Remaining"] == "1"
    client.get("/api/v1/tags")

    blocked = client.get("/api/v1/tags")
    assert blocked.status_code == 429
    assert blocked.json()["code"] == "RATE_LIMITED"
    assert blocked.headers["Retry-After"] == "60"


def test_limits_are_per_user(client, limited, reader, author):
    for _ in range(2):
        client.get("/api/v1/tags", headers=auth_headers(reader))
    assert client.get("/api/v1/tags", headers=auth_headers(reader)).status_code == 429
    assert client.get("/api/v1/tags", headers=auth_headers(author)).status_code == 200


def test_health_is_not_limited(client, limited):
    for _ in range(5):
        assert client.get("/health").status_code == 200


def test_login_has_stricter_limit(client, limited, reader):
    body = {"email": reader.email, "password": PASSWORD}
    headers = {"X-Forwarded-For": "10.0.0.9"}
    assert client.post("/api/v1/auth/login", json=body, headers=headers).status_code == 200
    response = client.post("/api/v1/auth/login", json=body, headers=headers)
    assert response.status_code == 429
    assert response.json()["code"] == "RATE_LIMITED"
