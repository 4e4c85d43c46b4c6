"""
Tests for the license gate API.
"""

from contextlib import asynccontextmanager

import pytest
from conftest import ACTIVE, INACTIVE, FakeValidator
from fastapi.testclient import TestClient

from license_gate.api.app import create_app
from license_gate.handlers import AccessHandler
from license_gate.repositories import InMemoryVersionMarkerStore, LocalBroadcastHub
from license_gate.services import AccessEvaluator, LicenseService, MultiTabCache


@asynccontextmanager
async def in_memory_lifespan(app):
    """Wire the handler to in-process repositories instead of Redis and Supabase."""
    cache = MultiTabCache(
        LocalBroadcastHub().channel(),
        InMemoryVersionMarkerStore(),
        version="2.0.0",
        instance_id="api-test",
    )
    await cache.start()

    validator = FakeValidator()
    validator.results["u1"] = ACTIVE
    validator.results["u2"] = INACTIVE
    service = LicenseService(validator, cache)

    app.state.validator = validator
    app.state.access_handler = AccessHandler(
        evaluator=AccessEvaluator(service),
        license_service=service,
        cache=cache,
        validator=validator,
    )

    yield

    await cache.close()


@pytest.fixture
def client():
    """Create a test client."""
    with TestClient(create_app(lifespan=in_memory_lifespan)) as test_client:
        yield test_client


def test_root(client):
    """Test root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "License Gate API"
    assert "access" in data["endpoints"]


def test_health(client):
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {
        "status": "healthy",
        "broadcast_healthy": True,
        "validator_healthy": True,
    }


def test_health_reports_unreachable_validator(client):
    client.app.state.validator.available = False
    data = client.get("/health").json()
    assert data["status"] == "unhealthy"
    assert data["validator_healthy"] is False


def test_access_allowed(client):
    response = client.post(
        "/access/check",
        json={"path": "/dashboard/", "user_id": "u1", "email_confirmed": True},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["path"] == "/dashboard"
    assert data["can_access"] is True
    assert data["redirect_to"] is None
    assert data["license_status"] == "active"


def test_access_denied_for_inactive_license(client):
    response = client.post(
        "/access/check",
        json={"path": "/orcamento", "user_id": "u2", "email_confirmed": True},
    )
    data = response.json()
    assert data["can_access"] is False
    assert data["redirect_to"] == "/verify-licenca"
    assert data["reason"] == "license_inactive"


def test_access_denied_when_signed_out(client):
    data = client.post("/access/check", json={"path": "/painel"}).json()
    assert data["redirect_to"] == "/auth"
    assert data["reason"] == "unauthenticated"


def test_access_check_requires_path(client):
    response = client.post("/access/check", json={"path": ""})
    assert response.status_code == 422


def test_classify_route(client):
    response = client.get("/routes/classify", params={"path": "/service-orders/5?x=1"})
    assert response.status_code == 200
    data = response.json()
    assert data["path"] == "/service-orders/5"
    assert data["requires_license"] is True
    assert data["is_public"] is False


def test_get_license(client):
    response = client.get("/license/u1")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "active"
    assert data["license_code"] == "LIC-1"


def test_get_license_uses_cache_unless_forced(client):
    validator = client.app.state.validator
    client.get("/license/u1")
    client.get("/license/u1")
    assert validator.calls == ["u1"]

    client.get("/license/u1", params={"force_refresh": True})
    assert validator.calls == ["u1", "u1"]


def test_invalidate_license(client):
    client.get("/license/u1")

    first = client.post("/license/u1/invalidate").json()
    second = client.post("/license/u1/invalidate").json()

    assert first["removed"] is True
    assert second["removed"] is False


def test_cache_stats_and_clear(client):
    client.get("/license/u1")
    client.get("/license/u2")

    stats = client.get("/cache/stats").json()
    assert stats["total_entries"] == 2
    assert stats["instance_id"] == "api-test"

    cleared = client.delete("/cache").json()
    assert cleared["removed"] == 2
    assert client.get("/cache/stats").json()["total_entries"] == 0
