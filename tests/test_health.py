"""Tests for health check endpoints."""

import pytest
from fastapi.testclient import TestClient

from techspec.main import app


@pytest.fixture
def client() -> TestClient:
    """Create test client."""
    return TestClient(app)


def test_health_check(client: TestClient) -> None:
    """Test health endpoint returns healthy status."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "techspec-api"
    assert "version" in data


def test_readiness_without_backend(client: TestClient) -> None:
    """Without a configured backend the service is not ready."""
    app.state.backend = None
    app.state.missing_configuration = ["BACKEND_URL", "BACKEND_ANON_KEY"]

    response = client.get("/ready")

    assert response.status_code == 503
    data = response.json()
    assert data["status"] == "not_ready"
    assert data["missing"] == ["BACKEND_URL", "BACKEND_ANON_KEY"]


def test_readiness_with_backend(client: TestClient, backend) -> None:
    app.state.backend = backend
    try:
        response = client.get("/ready")
    finally:
        app.state.backend = None

    assert response.status_code == 200
    assert response.json()["status"] == "ready"
