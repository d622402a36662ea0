"""Tests for the backend service client."""

from datetime import date
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from techspec.domain.exceptions import BackendCallError, ConfigurationError
from techspec.infrastructure.backend_client import (
    BackendClient,
    BackendResponse,
    condition,
    format_value,
    quote_value,
)
from techspec.infrastructure.config import Settings


@pytest.fixture
def client() -> BackendClient:
    """Create a test client."""
    return BackendClient(url="https://backend.test/", api_key="anon-key")


def mock_http(response: httpx.Response | Exception) -> AsyncMock:
    """HTTP client double answering every request with ``response``."""
    http = AsyncMock()
    if isinstance(response, Exception):
        http.request = AsyncMock(side_effect=response)
    else:
        http.request = AsyncMock(return_value=response)
    return http


class TestPredicateFormatting:
    """Tests for value formatting in row predicates."""

    def test_format_value(self) -> None:
        assert format_value(True) == "true"
        assert format_value(None) == "null"
        assert format_value(date(2024, 1, 31)) == "2024-01-31"
        assert format_value(99.5) == "99.5"

    def test_quote_value_leaves_plain_values(self) -> None:
        assert quote_value("5G") == "5G"

    def test_quote_value_quotes_reserved_characters(self) -> None:
        assert quote_value("%a,b%") == '"%a,b%"'
        assert quote_value('say "hi"') == '"say \\"hi\\""'

    def test_condition(self) -> None:
        assert condition("name", "ilike", "%pixel%") == "name.ilike.%pixel%"


class TestTableQuery:
    """Tests for the query builder."""

    def test_build_params_keeps_predicate_order(self, client: BackendClient) -> None:
        query = (
            client.table("products")
            .select("*,category:categories(*)", count="exact")
            .gte("price", 100)
            .lte("price", 500)
            .in_("id", ["a", "b"])
            .or_("name.ilike.%x%", "brand.ilike.%x%")
            .order("price")
            .limit(20)
            .offset(40)
        )

        assert query.build_params() == [
            ("select", "*,category:categories(*)"),
            ("price", "gte.100"),
            ("price", "lte.500"),
            ("id", "in.(a,b)"),
            ("or", "(name.ilike.%x%,brand.ilike.%x%)"),
            ("order", "price.asc"),
            ("limit", "20"),
            ("offset", "40"),
        ]

    def test_comparison_predicates(self, client: BackendClient) -> None:
        query = (
            client.table("reviews")
            .neq("status", "rejected")
            .gt("rating", 2)
            .lt("rating", 5)
            .is_("helpful", None)
        )

        assert query.filters == [
            ("status", "neq.rejected"),
            ("rating", "gt.2"),
            ("rating", "lt.5"),
            ("helpful", "is.null"),
        ]

    @pytest.mark.asyncio
    async def test_execute_reads_exact_count(self, client: BackendClient) -> None:
        response = httpx.Response(
            200,
            json=[{"id": "p1"}],
            headers={"Content-Range": "0-0/57"},
        )
        with patch.object(client, "_get_client", new_callable=AsyncMock) as mock_get_client:
            http = mock_http(response)
            mock_get_client.return_value = http

            result = await client.table("products").select("*", count="exact").execute()

            assert result.success is True
            assert result.data == [{"id": "p1"}]
            assert result.count == 57

            kwargs = http.request.call_args.kwargs
            assert kwargs["method"] == "GET"
            assert kwargs["url"] == "/rest/v1/products"
            assert kwargs["headers"]["Prefer"] == "count=exact"
            assert kwargs["headers"]["Authorization"] == "Bearer anon-key"

    @pytest.mark.asyncio
    async def test_user_token_replaces_api_key(self, client: BackendClient) -> None:
        with patch.object(client, "_get_client", new_callable=AsyncMock) as mock_get_client:
            http = mock_http(httpx.Response(200, json=[]))
            mock_get_client.return_value = http

            await client.table("reviews", access_token="user-token").select().execute()

            headers = http.request.call_args.kwargs["headers"]
            assert headers["Authorization"] == "Bearer user-token"

    @pytest.mark.asyncio
    async def test_maybe_single_returns_none_for_no_rows(self, client: BackendClient) -> None:
        with patch.object(client, "_get_client", new_callable=AsyncMock) as mock_get_client:
            mock_get_client.return_value = mock_http(httpx.Response(200, json=[]))

            result = await client.table("products").eq("slug", "nope").maybe_single()

            assert result.success is True
            assert result.data is None

    @pytest.mark.asyncio
    async def test_maybe_single_rejects_multiple_rows(self, client: BackendClient) -> None:
        with patch.object(client, "_get_client", new_callable=AsyncMock) as mock_get_client:
            mock_get_client.return_value = mock_http(
                httpx.Response(200, json=[{"id": 1}, {"id": 2}])
            )

            result = await client.table("products").maybe_single()

            assert result.success is False
            assert result.error.code == "MULTIPLE_ROWS"

    @pytest.mark.asyncio
    async def test_upsert_sends_conflict_target(self, client: BackendClient) -> None:
        with patch.object(client, "_get_client", new_callable=AsyncMock) as mock_get_client:
            http = mock_http(httpx.Response(201, json=[{"review_id": "r1"}]))
            mock_get_client.return_value = http

            await client.table("review_votes").upsert(
                {"review_id": "r1", "user_id": "u1", "is_helpful": True},
                on_conflict="review_id,user_id",
            )

            kwargs = http.request.call_args.kwargs
            assert kwargs["method"] == "POST"
            assert ("on_conflict", "review_id,user_id") in kwargs["params"]
            assert "resolution=merge-duplicates" in kwargs["headers"]["Prefer"]


class TestErrors:
    """Tests for error normalization."""

    @pytest.mark.asyncio
    async def test_rest_error_body(self, client: BackendClient) -> None:
        response = httpx.Response(
            400,
            json={
                "code": "42703",
                "message": "column products.nope does not exist",
                "details": None,
                "hint": None,
            },
        )
        with patch.object(client, "_get_client", new_callable=AsyncMock) as mock_get_client:
            mock_get_client.return_value = mock_http(response)

            result = await client.table("products").execute()

            assert result.success is False
            assert result.error.code == "42703"
            assert result.error.status_code == 400
            assert result.error.message == "column products.nope does not exist"

    @pytest.mark.asyncio
    async def test_auth_error_body(self, client: BackendClient) -> None:
        response = httpx.Response(
            400,
            json={"error": "invalid_grant", "error_description": "Invalid login credentials"},
        )
        with patch.object(client, "_get_client", new_callable=AsyncMock) as mock_get_client:
            mock_get_client.return_value = mock_http(response)

            result = await client.auth.sign_in_with_password("a@b.c", "wrong")

            assert result.error.code == "invalid_grant"
            assert result.error.message == "Invalid login credentials"

    @pytest.mark.asyncio
    async def test_request_timeout(self, client: BackendClient) -> None:
        with patch.object(client, "_get_client", new_callable=AsyncMock) as mock_get_client:
            mock_get_client.return_value = mock_http(
                httpx.TimeoutException("Connection timeout")
            )

            result = await client.rpc("get_platform_stats")

            assert result.success is False
            assert result.error.code == "TIMEOUT"
            assert result.error.status_code == 504

    @pytest.mark.asyncio
    async def test_request_error(self, client: BackendClient) -> None:
        with patch.object(client, "_get_client", new_callable=AsyncMock) as mock_get_client:
            mock_get_client.return_value = mock_http(httpx.RequestError("Connection failed"))

            result = await client.rpc("get_platform_stats")

            assert result.success is False
            assert result.error.code == "REQUEST_ERROR"

    @pytest.mark.asyncio
    async def test_non_json_success_body(self, client: BackendClient) -> None:
        def gateway_page(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>gateway</html>")

        client._client = httpx.AsyncClient(
            base_url="https://backend.test", transport=httpx.MockTransport(gateway_page)
        )

        result = await client.rpc("get_platform_stats")

        assert result.success is False
        assert result.error.code == "INVALID_RESPONSE"
        assert result.error.status_code == 502
        await client.close()

    def test_unwrap_without_error_details(self) -> None:
        with pytest.raises(BackendCallError) as exc_info:
            BackendResponse(success=False).unwrap()

        assert exc_info.value.status_code == 502

    def test_unwrap_raises_backend_call_error(self) -> None:
        from techspec.infrastructure.backend_client import BackendError

        response = BackendResponse(
            success=False,
            error=BackendError(code="23505", message="duplicate key", status_code=409),
        )

        with pytest.raises(BackendCallError) as exc_info:
            response.unwrap()

        assert exc_info.value.error_code == "23505"
        assert exc_info.value.status_code == 409
        assert exc_info.value.message == "duplicate key"


class TestRpcAuthStorage:
    """Tests for the RPC, auth and storage endpoints."""

    @pytest.mark.asyncio
    async def test_rpc_posts_params(self, client: BackendClient) -> None:
        with patch.object(client, "_get_client", new_callable=AsyncMock) as mock_get_client:
            http = mock_http(httpx.Response(204))
            mock_get_client.return_value = http

            result = await client.rpc("update_review_helpful_count", {"review_id": "r1"})

            assert result.success is True
            assert result.data is None
            kwargs = http.request.call_args.kwargs
            assert kwargs["url"] == "/rest/v1/rpc/update_review_helpful_count"
            assert kwargs["json"] == {"review_id": "r1"}

    @pytest.mark.asyncio
    async def test_password_reset_sends_redirect(self, client: BackendClient) -> None:
        with patch.object(client, "_get_client", new_callable=AsyncMock) as mock_get_client:
            http = mock_http(httpx.Response(200, json={}))
            mock_get_client.return_value = http

            await client.auth.reset_password_for_email(
                "a@b.c", "https://shop.test/reset-password"
            )

            kwargs = http.request.call_args.kwargs
            assert kwargs["url"] == "/auth/v1/recover"
            assert kwargs["params"] == [("redirect_to", "https://shop.test/reset-password")]

    @pytest.mark.asyncio
    async def test_storage_upload(self, client: BackendClient) -> None:
        with patch.object(client, "_get_client", new_callable=AsyncMock) as mock_get_client:
            http = mock_http(httpx.Response(200, json={"Key": "avatars/u1/a.png"}))
            mock_get_client.return_value = http

            await client.storage.upload(
                "avatars", "u1/a.png", b"png", content_type="image/png", access_token="tok"
            )

            kwargs = http.request.call_args.kwargs
            assert kwargs["url"] == "/storage/v1/object/avatars/u1/a.png"
            assert kwargs["content"] == b"png"
            assert kwargs["headers"]["Content-Type"] == "image/png"

    def test_public_url(self, client: BackendClient) -> None:
        assert (
            client.storage.public_url("avatars", "u1/a.png")
            == "https://backend.test/storage/v1/object/public/avatars/u1/a.png"
        )


class TestFromSettings:
    """Tests for client construction from settings."""

    def test_missing_secrets(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            BackendClient.from_settings(Settings(backend_url="", backend_anon_key=""))

        assert exc_info.value.details["missing"] == ["BACKEND_URL", "BACKEND_ANON_KEY"]

    def test_admin_prefers_service_key(self) -> None:
        config = Settings(
            backend_url="https://backend.test",
            backend_anon_key="anon",
            backend_service_key="service",
        )

        assert BackendClient.from_settings(config).api_key == "anon"
        assert BackendClient.from_settings(config, admin=True).api_key == "service"

    def test_admin_falls_back_to_anon_key(self) -> None:
        config = Settings(backend_url="https://backend.test", backend_anon_key="anon")

        assert BackendClient.from_settings(config, admin=True).api_key == "anon"
