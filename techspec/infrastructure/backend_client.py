"""Backend service HTTP client.

Thin client for the hosted database-as-a-service that stores every
storefront row. It speaks the service's REST dialect:

- ``/rest/v1/{table}`` row access with ``column=op.value`` predicates
- ``/rest/v1/rpc/{name}`` remote procedures
- ``/auth/v1/*`` session authentication
- ``/storage/v1/object/*`` file storage

Calls never raise for remote failures. Each one returns a
``BackendResponse`` carrying either data or a ``BackendError``; the
caller decides whether the failure is surfaced or swallowed.
"""

from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog

from techspec.domain.exceptions import BackendCallError, ConfigurationError
from techspec.infrastructure.config import Settings

logger = structlog.get_logger()

# Characters that must be quoted inside an ``or=(...)`` expression.
_RESERVED = set(',.:()"\\ ')


# ============================================================================
# Responses
# ============================================================================


@dataclass
class BackendError:
    """Represents a failed backend call."""

    code: str
    message: str
    status_code: int
    details: dict[str, Any] = field(default_factory=dict)

    def to_exception(self) -> BackendCallError:
        """Convert into a raisable domain error."""
        return BackendCallError(
            self.message,
            error_code=self.code,
            status_code=self.status_code,
            details=self.details,
        )


@dataclass
class BackendResponse:
    """Represents the outcome of a backend call.

    Attributes:
        success: Whether the call succeeded.
        data: Decoded JSON body (list of rows, a row, an RPC result).
        error: Error details when the call failed.
        count: Exact row count when it was requested.
    """

    success: bool
    data: Any = None
    error: BackendError | None = None
    count: int | None = None

    def unwrap(self) -> Any:
        """Return the data or raise the error as ``BackendCallError``."""
        if not self.success:
            error = self.error or BackendError(
                code="UNKNOWN_ERROR",
                message="Backend call failed",
                status_code=502,
            )
            raise error.to_exception()
        return self.data

    def first(self) -> dict[str, Any] | None:
        """Return the first row of a list result (or the row itself)."""
        data = self.unwrap()
        if isinstance(data, list):
            return data[0] if data else None
        return data


def _parse_error(response: httpx.Response) -> BackendError:
    """Normalize the different error bodies of the service's endpoints."""
    try:
        body = response.json()
    except ValueError:
        body = None

    if not isinstance(body, dict):
        return BackendError(
            code=f"HTTP_{response.status_code}",
            message=response.text or response.reason_phrase,
            status_code=response.status_code,
        )

    message = (
        body.get("message")
        or body.get("msg")
        or body.get("error_description")
        or body.get("error")
        or response.reason_phrase
    )
    code = body.get("error_code") or body.get("code")
    if not isinstance(code, str):
        code = body.get("error") if isinstance(body.get("error"), str) else None
    details = {
        k: v for k, v in body.items() if k in ("details", "hint") and v is not None
    }
    return BackendError(
        code=code or f"HTTP_{response.status_code}",
        message=str(message),
        status_code=response.status_code,
        details=details,
    )


def _parse_count(content_range: str | None) -> int | None:
    """Read the total from a ``Content-Range: 0-24/573`` header."""
    if not content_range or "/" not in content_range:
        return None
    total = content_range.rsplit("/", 1)[1]
    return int(total) if total.isdigit() else None


# ============================================================================
# Predicate Formatting
# ============================================================================


def format_value(value: Any) -> str:
    """Format a Python value for a row predicate."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def quote_value(value: Any) -> str:
    """Quote a value for use inside ``in.(...)`` or ``or=(...)``."""
    text = format_value(value)
    if any(ch in _RESERVED for ch in text):
        escaped = text.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return text


def condition(column: str, operator: str, value: Any) -> str:
    """Build one ``column.op.value`` term of an ``or`` expression."""
    return f"{column}.{operator}.{quote_value(value)}"


# ============================================================================
# Table Queries
# ============================================================================


class TableQuery:
    """Builder for one request against a table.

    Predicates accumulate in order and are sent as repeated query
    parameters, so two bounds on the same column both apply.

    Example usage:
        response = await (
            client.table("products")
            .select("*,category:categories(*)", count="exact")
            .gte("price", 100)
            .ilike("brand", "%apple%")
            .order("created_at", desc=True)
            .limit(20)
            .execute()
        )
    """

    def __init__(
        self,
        client: "BackendClient",
        table: str,
        access_token: str | None = None,
    ) -> None:
        self._client = client
        self.table = table
        self._access_token = access_token
        self._columns = "*"
        self._count: str | None = None
        self._filters: list[tuple[str, str]] = []
        self._order: list[str] = []
        self._limit: int | None = None
        self._offset: int | None = None

    @property
    def path(self) -> str:
        return f"/rest/v1/{self.table}"

    @property
    def filters(self) -> list[tuple[str, str]]:
        """Predicates added so far, as ``(column, "op.value")`` pairs."""
        return list(self._filters)

    def select(self, columns: str = "*", count: str | None = None) -> "TableQuery":
        self._columns = columns
        self._count = count
        return self

    def filter(self, column: str, operator: str, value: Any) -> "TableQuery":
        self._filters.append((column, f"{operator}.{format_value(value)}"))
        return self

    def eq(self, column: str, value: Any) -> "TableQuery":
        return self.filter(column, "eq", value)

    def neq(self, column: str, value: Any) -> "TableQuery":
        return self.filter(column, "neq", value)

    def gt(self, column: str, value: Any) -> "TableQuery":
        return self.filter(column, "gt", value)

    def gte(self, column: str, value: Any) -> "TableQuery":
        return self.filter(column, "gte", value)

    def lt(self, column: str, value: Any) -> "TableQuery":
        return self.filter(column, "lt", value)

    def lte(self, column: str, value: Any) -> "TableQuery":
        return self.filter(column, "lte", value)

    def ilike(self, column: str, pattern: str) -> "TableQuery":
        return self.filter(column, "ilike", pattern)

    def is_(self, column: str, value: bool | None) -> "TableQuery":
        return self.filter(column, "is", value)

    def in_(self, column: str, values: list[Any]) -> "TableQuery":
        joined = ",".join(quote_value(v) for v in values)
        self._filters.append((column, f"in.({joined})"))
        return self

    def or_(self, *conditions: str) -> "TableQuery":
        """Add a disjunction built with :func:`condition`."""
        self._filters.append(("or", f"({','.join(conditions)})"))
        return self

    def order(self, column: str, desc: bool = False) -> "TableQuery":
        self._order.append(f"{column}.{'desc' if desc else 'asc'}")
        return self

    def limit(self, count: int) -> "TableQuery":
        self._limit = count
        return self

    def offset(self, count: int) -> "TableQuery":
        self._offset = count
        return self

    def build_params(self, include_select: bool = True) -> list[tuple[str, str]]:
        """Build the query string parameters for this request."""
        params: list[tuple[str, str]] = []
        if include_select:
            params.append(("select", self._columns))
        params.extend(self._filters)
        if self._order:
            params.append(("order", ",".join(self._order)))
        if self._limit is not None:
            params.append(("limit", str(self._limit)))
        if self._offset is not None:
            params.append(("offset", str(self._offset)))
        return params

    async def execute(self) -> BackendResponse:
        """Run a read and return the matching rows."""
        headers = {}
        if self._count:
            headers["Prefer"] = f"count={self._count}"
        return await self._client._request(
            "GET",
            self.path,
            params=self.build_params(),
            headers=headers,
            access_token=self._access_token,
        )

    async def maybe_single(self) -> BackendResponse:
        """Run a read expected to match at most one row.

        ``data`` is the row, or ``None`` when nothing matched.
        """
        response = await self.execute()
        if not response.success:
            return response
        rows = response.data or []
        if len(rows) > 1:
            return BackendResponse(
                success=False,
                error=BackendError(
                    code="MULTIPLE_ROWS",
                    message=f"Expected at most one row from {self.table}, got {len(rows)}",
                    status_code=406,
                ),
            )
        return BackendResponse(success=True, data=rows[0] if rows else None)

    async def insert(self, payload: dict[str, Any] | list[dict[str, Any]]) -> BackendResponse:
        """Insert one or more rows and return them."""
        return await self._client._request(
            "POST",
            self.path,
            json=payload,
            params=[("select", self._columns)],
            headers={"Prefer": "return=representation"},
            access_token=self._access_token,
        )

    async def upsert(
        self,
        payload: dict[str, Any] | list[dict[str, Any]],
        on_conflict: str | None = None,
    ) -> BackendResponse:
        """Insert rows, overwriting rows that collide on ``on_conflict``."""
        params = [("select", self._columns)]
        if on_conflict:
            params.append(("on_conflict", on_conflict))
        return await self._client._request(
            "POST",
            self.path,
            json=payload,
            params=params,
            headers={"Prefer": "resolution=merge-duplicates,return=representation"},
            access_token=self._access_token,
        )

    async def update(self, payload: dict[str, Any]) -> BackendResponse:
        """Update the rows matched by the predicates and return them."""
        return await self._client._request(
            "PATCH",
            self.path,
            json=payload,
            params=self.build_params(),
            headers={"Prefer": "return=representation"},
            access_token=self._access_token,
        )


# ============================================================================
# Auth
# ============================================================================


class AuthClient:
    """Session authentication endpoints of the backend service."""

    def __init__(self, client: "BackendClient") -> None:
        self._client = client

    async def sign_up(
        self,
        email: str,
        password: str,
        metadata: dict[str, Any] | None = None,
    ) -> BackendResponse:
        """Create an account; ``metadata`` lands in ``user_metadata``."""
        return await self._client._request(
            "POST",
            "/auth/v1/signup",
            json={"email": email, "password": password, "data": metadata or {}},
        )

    async def sign_in_with_password(self, email: str, password: str) -> BackendResponse:
        """Exchange credentials for a session."""
        return await self._client._request(
            "POST",
            "/auth/v1/token",
            params=[("grant_type", "password")],
            json={"email": email, "password": password},
        )

    async def sign_out(self, access_token: str) -> BackendResponse:
        return await self._client._request(
            "POST", "/auth/v1/logout", access_token=access_token
        )

    async def get_user(self, access_token: str) -> BackendResponse:
        """Resolve the user owning an access token."""
        return await self._client._request(
            "GET", "/auth/v1/user", access_token=access_token
        )

    async def update_user(
        self, access_token: str, attributes: dict[str, Any]
    ) -> BackendResponse:
        """Update the signed-in user (e.g. ``{"password": ...}``)."""
        return await self._client._request(
            "PUT", "/auth/v1/user", json=attributes, access_token=access_token
        )

    async def reset_password_for_email(
        self, email: str, redirect_to: str | None = None
    ) -> BackendResponse:
        """Send a password recovery email."""
        params = [("redirect_to", redirect_to)] if redirect_to else None
        return await self._client._request(
            "POST", "/auth/v1/recover", json={"email": email}, params=params
        )

    async def verify_otp(
        self,
        otp_type: str,
        email: str | None = None,
        token: str | None = None,
        token_hash: str | None = None,
    ) -> BackendResponse:
        """Verify an emailed one-time token and return the session."""
        payload: dict[str, Any] = {"type": otp_type}
        if token_hash:
            payload["token_hash"] = token_hash
        else:
            payload["email"] = email
            payload["token"] = token
        return await self._client._request("POST", "/auth/v1/verify", json=payload)


# ============================================================================
# Storage
# ============================================================================


class StorageClient:
    """Object storage endpoints of the backend service."""

    def __init__(self, client: "BackendClient") -> None:
        self._client = client

    async def upload(
        self,
        bucket: str,
        path: str,
        content: bytes,
        content_type: str = "application/octet-stream",
        upsert: bool = False,
        access_token: str | None = None,
    ) -> BackendResponse:
        """Upload an object; ``data["Key"]`` holds the stored key."""
        return await self._client._request(
            "POST",
            f"/storage/v1/object/{bucket}/{path}",
            content=content,
            headers={
                "Content-Type": content_type,
                "x-upsert": "true" if upsert else "false",
            },
            access_token=access_token,
        )

    async def remove(
        self,
        bucket: str,
        paths: list[str],
        access_token: str | None = None,
    ) -> BackendResponse:
        """Delete objects from a bucket."""
        return await self._client._request(
            "DELETE",
            f"/storage/v1/object/{bucket}",
            json={"prefixes": paths},
            access_token=access_token,
        )

    def public_url(self, bucket: str, path: str) -> str:
        """Public URL of an object in a public bucket."""
        return f"{self._client.url}/storage/v1/object/public/{bucket}/{path}"


# ============================================================================
# Client
# ============================================================================


class BackendClient:
    """Long-lived handle to the backend service.

    Constructed once with explicit configuration and shared by the
    whole application. Requests carry the service API key; calls made
    on behalf of a user also carry that user's access token so row
    level policies apply.
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        timeout: float = 10.0,
    ) -> None:
        """Initialize the backend client.

        Args:
            url: Backend service base URL.
            api_key: Service API key.
            timeout: Request timeout in seconds.
        """
        self.url = url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None
        self.auth = AuthClient(self)
        self.storage = StorageClient(self)

    @classmethod
    def from_settings(cls, config: Settings, admin: bool = False) -> "BackendClient":
        """Create a client from settings.

        Args:
            config: Application settings.
            admin: Use the service key (admin endpoints) when available.

        Raises:
            ConfigurationError: If the URL or key is missing.
        """
        key = config.admin_backend_key if admin else config.backend_anon_key
        missing = []
        if not config.backend_url:
            missing.append("BACKEND_URL")
        if not key:
            missing.append("BACKEND_ANON_KEY")
        if missing:
            raise ConfigurationError(missing)
        return cls(
            url=config.backend_url,
            api_key=key,
            timeout=config.backend_timeout_seconds,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.url,
                timeout=self.timeout,
                headers={
                    "apikey": self.api_key,
                    "Accept": "application/json",
                },
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def table(self, name: str, access_token: str | None = None) -> TableQuery:
        """Start a query against a table."""
        return TableQuery(self, name, access_token=access_token)

    async def rpc(
        self,
        name: str,
        params: dict[str, Any] | None = None,
        access_token: str | None = None,
    ) -> BackendResponse:
        """Call a remote procedure.

        Args:
            name: Function name.
            params: Named arguments.
            access_token: Optional user access token.

        Returns:
            BackendResponse with the function result.
        """
        return await self._request(
            "POST",
            f"/rest/v1/rpc/{name}",
            json=params or {},
            access_token=access_token,
        )

    async def _request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: list[tuple[str, str]] | None = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
        access_token: str | None = None,
    ) -> BackendResponse:
        """Make a backend request.

        Args:
            method: HTTP method.
            path: Endpoint path.
            json: Request body as JSON.
            params: Query parameters (repeated keys allowed).
            content: Raw request body.
            headers: Extra headers.
            access_token: User access token; the API key is used otherwise.

        Returns:
            BackendResponse with success status and data or error.
        """
        client = await self._get_client()

        request_headers = {"Authorization": f"Bearer {access_token or self.api_key}"}
        if headers:
            request_headers.update(headers)

        try:
            logger.debug(
                "Making backend request",
                method=method,
                path=path,
                has_body=json is not None or content is not None,
            )

            response = await client.request(
                method=method,
                url=path,
                json=json,
                params=params,
                content=content,
                headers=request_headers,
            )

            if response.status_code >= 400:
                error = _parse_error(response)
                logger.warning(
                    "Backend request failed",
                    method=method,
                    path=path,
                    status_code=response.status_code,
                    error_code=error.code,
                )
                return BackendResponse(success=False, error=error)

            count = _parse_count(response.headers.get("content-range"))

            if response.status_code == 204 or not response.content:
                return BackendResponse(success=True, data=None, count=count)

            try:
                data = response.json()
            except ValueError as e:
                logger.error(
                    "Backend returned a non-JSON body",
                    path=path,
                    status_code=response.status_code,
                    error=str(e),
                )
                return BackendResponse(
                    success=False,
                    error=BackendError(
                        code="INVALID_RESPONSE",
                        message=f"Invalid JSON response: {path}",
                        status_code=502,
                    ),
                )
            return BackendResponse(success=True, data=data, count=count)

        except httpx.TimeoutException as e:
            logger.error("Backend request timeout", path=path, error=str(e))
            return BackendResponse(
                success=False,
                error=BackendError(
                    code="TIMEOUT",
                    message=f"Request timed out: {path}",
                    status_code=504,
                ),
            )
        except httpx.RequestError as e:
            logger.error("Backend request failed", path=path, error=str(e))
            return BackendResponse(
                success=False,
                error=BackendError(
                    code="REQUEST_ERROR",
                    message=f"Request failed: {str(e)}",
                    status_code=502,
                ),
            )
