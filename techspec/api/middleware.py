"""Request context middleware.

Every request gets a correlation id and a log context naming the
caller kind. Errors that escape the handlers are answered here in the
format of the route family they hit: the admin ``{"error"}`` body for
the moderation and import routes, the storefront error body elsewhere.
"""

import time
from typing import Callable
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger()

REQUEST_ID_HEADER = "X-Request-ID"

# Routes guarded by the static admin token.
ADMIN_PATH_PREFIXES = ("/admin/", "/api/")


def is_admin_path(path: str) -> bool:
    return path.startswith(ADMIN_PATH_PREFIXES)


def caller_kind(request: Request) -> str:
    """``admin``, ``user`` (bearer token present) or ``anonymous``."""
    if is_admin_path(request.url.path):
        return "admin"
    if request.headers.get("Authorization", "").lower().startswith("bearer "):
        return "user"
    return "anonymous"


def internal_error_response(request: Request, request_id: str) -> JSONResponse:
    """500 body for an unhandled error, in the route family's format."""
    if is_admin_path(request.url.path):
        content: dict = {"error": "Internal server error"}
    else:
        content = {
            "error_code": "INTERNAL_ERROR",
            "message": "An internal error occurred",
            "details": [],
            "request_id": request_id,
        }
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Correlate, log and guard each request.

    The request id is taken from ``X-Request-ID`` or generated, stored
    on ``request.state`` for the error handlers and echoed back on the
    response, including 500s produced here.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
        request.state.request_id = request_id
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            caller=caller_kind(request),
        )

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(
                "Unhandled exception",
                method=request.method,
                path=request.url.path,
                error=str(e),
            )
            response = internal_error_response(request, request_id)

        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
        log = logger.error if response.status_code >= 500 else logger.info
        log(
            "Request completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=duration_ms,
        )
        structlog.contextvars.unbind_contextvars("request_id", "caller")

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def setup_middleware(app: FastAPI) -> None:
    """Install the request context middleware."""
    app.add_middleware(RequestContextMiddleware)
