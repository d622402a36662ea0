"""Shared fixtures for API tests."""

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from techspec.api.dependencies import (
    get_admin_backend,
    get_backend,
    get_optional_backend,
    get_optional_user,
)
from techspec.infrastructure.config import settings
from techspec.main import app

ADMIN_TOKEN = "admin-secret"


@pytest.fixture
def client(backend) -> Iterator[TestClient]:
    """Test client whose services run against the mocked backend."""
    app.dependency_overrides[get_backend] = lambda: backend
    app.dependency_overrides[get_admin_backend] = lambda: backend
    app.dependency_overrides[get_optional_backend] = lambda: backend
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def signed_in(client: TestClient, user) -> TestClient:
    """Test client acting as the signed-in ``user``."""
    app.dependency_overrides[get_optional_user] = lambda: user
    return client


@pytest.fixture
def admin_headers(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Configure the admin token and return matching headers."""
    monkeypatch.setattr(settings, "admin_api_token", ADMIN_TOKEN)
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}
