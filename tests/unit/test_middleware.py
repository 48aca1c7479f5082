"""
Tests for the HTTP surface: 429 on rejection, 500 on evaluation failure.
"""

from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.testclient import TestClient

from tollgate.config import get_settings
from tollgate.core.backends.memory import InMemoryBackend
from tollgate.core.errors import RateLimitEvaluationError
from tollgate.core.policy import PolicyResolver
from tollgate.core.strategies.sliding_window import SlidingWindowLimiter
from tollgate.main import create_app


@pytest.fixture
def backend() -> InMemoryBackend:
    return InMemoryBackend()


@pytest.fixture
def client(backend: InMemoryBackend) -> TestClient:
    limiter = SlidingWindowLimiter(backend, clock=Mock(return_value=1000.0))
    return TestClient(create_app(limiter=limiter))


def free_tier_per_second() -> int:
    return PolicyResolver.TIER_CONFIG[PolicyResolver().resolve_tier(None)].per_second


def test_requests_within_limit_pass(client: TestClient) -> None:
    response = client.get("/test")

    assert response.status_code == 200
    assert response.json()["message"] == "Request allowed"
    assert response.headers["X-User-Tier"] == "free"


def test_rejection_maps_to_429(client: TestClient) -> None:
    limit = free_tier_per_second()
    for _ in range(limit):
        assert client.get("/test").status_code == 200

    response = client.get("/test")

    assert response.status_code == 429
    body = response.json()
    assert body["error"] == "rate_limit_exceeded"
    assert body["window"] == "per_second"
    assert body["window_seconds"] == 1
    assert body["current"] == limit
    assert body["limit"] == limit
    assert body["tier"] == "free"
    assert response.headers["Retry-After"] == "1"
    assert response.headers["X-RateLimit-Window"] == "per_second"
    assert response.headers["X-RateLimit-Limit"] == str(limit)


def test_clients_are_keyed_by_ip_and_api_key(
    client: TestClient,
    backend: InMemoryBackend,
) -> None:
    client.get("/test")
    client.get("/test", headers={"X-API-Key": "abc"})

    keys = backend.keys()
    assert any(key.endswith(":api:ip:testclient:per_second") for key in keys)
    assert any(key.endswith(":api:key:abc:per_second") for key in keys)


def test_api_keys_are_isolated(client: TestClient) -> None:
    limit = free_tier_per_second()
    for _ in range(limit + 1):
        client.get("/test", headers={"X-API-Key": "first"})

    response = client.get("/test", headers={"X-API-Key": "second"})

    assert response.status_code == 200


def test_internal_tier_is_never_limited(
    client: TestClient,
    backend: InMemoryBackend,
) -> None:
    for _ in range(50):
        response = client.get("/test", headers={"X-API-Key": "int_batch"})
        assert response.status_code == 200

    assert response.headers["X-User-Tier"] == "internal"
    assert backend.keys() == []


def test_evaluation_failure_maps_to_500() -> None:
    backend = AsyncMock()
    backend.execute.side_effect = RateLimitEvaluationError("store down")
    limiter = SlidingWindowLimiter(backend, clock=Mock(return_value=1000.0))
    client = TestClient(create_app(limiter=limiter))

    response = client.get("/test")

    assert response.status_code == 500
    assert response.json()["error"] == "rate_limit_unavailable"


def test_missing_limiter_passes_through() -> None:
    client = TestClient(create_app())

    response = client.get("/test")

    assert response.status_code == 200


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "UP"
    assert body["service"] == get_settings().app_name
    assert body["timestamp"] > 0
