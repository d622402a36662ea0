"""Platform stats and visit tracking endpoints."""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Request, Response, status

from techspec.api.dependencies import (
    OptionalBackend,
    bearer_token,
    get_stats_aggregator,
    get_visitor_tracker,
)
from techspec.api.schemas import StatsResponse, VisitRequest, VisitResponse
from techspec.application.auth_service import AuthService
from techspec.application.stats_service import StatsAggregator
from techspec.application.visitor_service import (
    SESSION_COOKIE,
    TrackResult,
    Visit,
    VisitorTracker,
    ensure_session_id,
)
from techspec.domain.exceptions import BackendCallError

logger = structlog.get_logger()

router = APIRouter(tags=["Stats"])


async def get_visitor_id(request: Request, backend: OptionalBackend) -> str | None:
    """Id of the signed-in visitor; an auth failure only makes the visit anonymous."""
    token = bearer_token(request)
    if token is None or backend is None:
        return None
    try:
        user = await AuthService(backend).get_user(token)
    except BackendCallError as e:
        logger.warning("Could not resolve visitor", error=e.message)
        return None
    return user.id if user else None


@router.get(
    "/stats",
    response_model=StatsResponse,
    summary="Platform stats",
    description="Platform counters, refreshed at most every few seconds.",
)
async def get_stats(
    aggregator: Annotated[StatsAggregator, Depends(get_stats_aggregator)],
) -> StatsResponse:
    stats = await aggregator.get_stats()
    return StatsResponse(
        total_visitors=stats.total_visitors,
        total_products=stats.total_products,
        total_shops=stats.total_shops,
        total_reviews=stats.total_reviews,
        total_users=stats.total_users,
    )


@router.post(
    "/visits",
    response_model=VisitResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Track visit",
    description="Record a page view. Always accepted; failures are only logged.",
)
async def track_visit(
    body: VisitRequest,
    request: Request,
    response: Response,
    user_id: Annotated[str | None, Depends(get_visitor_id)],
    tracker: Annotated[VisitorTracker | None, Depends(get_visitor_tracker)],
) -> VisitResponse:
    """Track a page view.

    The browser session id lives in a session cookie and is created
    on the first visit. Without a configured backend the visit is
    accepted and dropped.
    """
    session_id = ensure_session_id(request.cookies.get(SESSION_COOKIE))
    if tracker is None:
        logger.warning("Visit not recorded, backend not configured")
        result = TrackResult(
            session_id=session_id, recorded=False, error="Backend not configured"
        )
    else:
        result = await tracker.track(
            Visit(
                session_id=session_id,
                user_id=user_id,
                user_agent=request.headers.get("user-agent"),
                referrer=body.referrer or request.headers.get("referer"),
                page_url=body.page_url,
            )
        )
    response.set_cookie(
        SESSION_COOKIE,
        session_id,
        httponly=True,
        samesite="lax",
    )
    return VisitResponse(session_id=result.session_id, recorded=result.recorded)
