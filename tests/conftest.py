"""Shared fixtures."""

from unittest.mock import AsyncMock

import pytest

from techspec.domain.entities import AuthUser
from techspec.infrastructure.backend_client import BackendClient, BackendResponse


@pytest.fixture
def backend() -> BackendClient:
    """Backend client whose transport is replaced by an AsyncMock.

    Query builders run for real; set ``backend._request.return_value`` or
    ``side_effect`` to script the backend's answers and inspect
    ``backend._request.call_args_list`` for what was sent.
    """
    client = BackendClient(url="https://backend.test", api_key="anon-key")
    client._request = AsyncMock(return_value=BackendResponse(success=True, data=[]))
    return client


@pytest.fixture
def user() -> AuthUser:
    """Signed-in user."""
    return AuthUser(
        id="user-1",
        email="ada@example.com",
        metadata={"full_name": "Ada Lovelace"},
        access_token="user-token",
    )
