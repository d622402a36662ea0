"""Health check endpoints.

Provides endpoints for monitoring service health and readiness.
"""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from techspec.infrastructure.config import settings

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    service: str
    version: str


class ReadinessResponse(BaseModel):
    """Readiness response schema."""

    status: str
    backend_configured: bool
    missing: list[str] = []


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Check service health.

    Returns:
        Health status with service name and version.
    """
    return HealthResponse(
        status="healthy",
        service="techspec-api",
        version=settings.api_version,
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={503: {"model": ReadinessResponse}},
)
async def readiness_check(request: Request):
    """Check if service is ready to accept requests.

    Returns:
        Readiness status; 503 while the backend client is not configured.
    """
    if getattr(request.app.state, "backend", None) is not None:
        return ReadinessResponse(status="ready", backend_configured=True)

    missing = getattr(request.app.state, "missing_configuration", None) or []
    return JSONResponse(
        status_code=503,
        content=ReadinessResponse(
            status="not_ready", backend_configured=False, missing=missing
        ).model_dump(),
    )
