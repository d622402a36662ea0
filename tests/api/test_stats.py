"""Tests for stats and visit tracking endpoints."""

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from techspec.api.dependencies import get_stats_aggregator
from techspec.application.stats_service import StatsAggregator
from techspec.application.visitor_service import SESSION_COOKIE
from techspec.infrastructure.backend_client import BackendError, BackendResponse
from techspec.main import app

STATS_ROW = {
    "total_visitors": 1200,
    "total_products": 87,
    "total_shops": 12,
    "total_reviews": 340,
    "total_users": 410,
}


@pytest.fixture
def stats_client(client: TestClient, backend) -> Iterator[TestClient]:
    aggregator = StatsAggregator(backend, ttl=60)
    app.dependency_overrides[get_stats_aggregator] = lambda: aggregator
    yield client


class TestStats:
    def test_counters(self, stats_client: TestClient, backend) -> None:
        backend._request.return_value = BackendResponse(success=True, data=[STATS_ROW])

        first = stats_client.get("/stats")
        second = stats_client.get("/stats")

        assert first.status_code == 200
        assert first.json() == STATS_ROW
        assert second.json() == STATS_ROW
        assert backend._request.call_count == 1

    def test_failure_reports_zeros(self, stats_client: TestClient, backend) -> None:
        backend._request.return_value = BackendResponse(
            success=False,
            error=BackendError(code="TIMEOUT", message="Request timed out", status_code=504),
        )

        response = stats_client.get("/stats")

        assert response.status_code == 200
        assert set(response.json().values()) == {0}


class TestVisits:
    """Tests for POST /visits."""

    def test_sets_session_cookie(self, client: TestClient, backend) -> None:
        response = client.post("/visits", json={"page_url": "/products/pixel-9"})

        assert response.status_code == 202
        session_id = response.json()["session_id"]
        assert response.cookies[SESSION_COOKIE] == session_id
        assert response.json()["recorded"] is True

        sent = backend._request.call_args.kwargs["json"]
        assert sent["p_session_id"] == session_id
        assert sent["p_user_id"] is None
        assert sent["p_page_url"] == "/products/pixel-9"

    def test_reuses_session_cookie(self, client: TestClient, backend) -> None:
        session_id = "0b6e1d2a-6f7c-4e55-9a39-4a1f3c8d2e10"
        client.cookies.set(SESSION_COOKIE, session_id)

        response = client.post("/visits", json={})

        assert response.json()["session_id"] == session_id

    def test_signed_in_visitor(self, client: TestClient, backend) -> None:
        backend._request.side_effect = [
            BackendResponse(success=True, data={"id": "user-1"}),
            BackendResponse(success=True, data=None),
        ]

        client.post("/visits", json={}, headers={"Authorization": "Bearer access"})

        assert backend._request.call_args.kwargs["json"]["p_user_id"] == "user-1"

    def test_tracking_failure_is_still_accepted(self, client: TestClient, backend) -> None:
        backend._request.return_value = BackendResponse(
            success=False,
            error=BackendError(code="42883", message="function missing", status_code=404),
        )

        response = client.post("/visits", json={}, headers={"Authorization": "Bearer bad"})

        assert response.status_code == 202
        assert response.json()["recorded"] is False


def test_visit_accepted_without_backend() -> None:
    app.state.backend = None
    app.state.missing_configuration = ["BACKEND_URL", "BACKEND_ANON_KEY"]

    response = TestClient(app).post(
        "/visits", json={"page_url": "/"}, headers={"Authorization": "Bearer access"}
    )

    assert response.status_code == 202
    assert response.json()["recorded"] is False
    assert response.cookies[SESSION_COOKIE] == response.json()["session_id"]
