"""Best-effort visitor tracking."""

from dataclasses import dataclass
from uuid import UUID, uuid4

import structlog

from techspec.infrastructure.backend_client import BackendClient

logger = structlog.get_logger()

SESSION_COOKIE = "ts_session_id"
RECORD_VISIT_RPC = "record_visit"


@dataclass
class Visit:
    """One page view."""

    session_id: str
    user_id: str | None = None
    user_agent: str | None = None
    referrer: str | None = None
    page_url: str | None = None


@dataclass
class TrackResult:
    """Outcome of a tracking call; callers are free to ignore it."""

    session_id: str
    recorded: bool
    error: str | None = None


def ensure_session_id(existing: str | None) -> str:
    """Reuse the browser session id, or generate one if absent or malformed."""
    if existing:
        try:
            return str(UUID(existing))
        except ValueError:
            logger.debug("Ignoring malformed session id", session_id=existing)
    return str(uuid4())


class VisitorTracker:
    """Record page views through the backend's visit function.

    Tracking never fails the request it belongs to: errors are logged
    and reported in the returned ``TrackResult``.
    """

    def __init__(self, client: BackendClient) -> None:
        self.client = client

    async def track(self, visit: Visit) -> TrackResult:
        """Record one page view.

        Args:
            visit: Page view details.

        Returns:
            TrackResult telling whether the visit was recorded.
        """
        try:
            response = await self.client.rpc(
                RECORD_VISIT_RPC,
                {
                    "p_session_id": visit.session_id,
                    "p_user_id": visit.user_id,
                    "p_user_agent": visit.user_agent,
                    "p_referrer": visit.referrer,
                    "p_page_url": visit.page_url,
                },
            )
        except Exception as e:
            logger.exception("Failed to track visit", session_id=visit.session_id)
            return TrackResult(session_id=visit.session_id, recorded=False, error=str(e))

        if not response.success:
            message = response.error.message if response.error else "unknown error"
            logger.warning(
                "Error recording visit",
                session_id=visit.session_id,
                error=message,
            )
            return TrackResult(session_id=visit.session_id, recorded=False, error=message)

        return TrackResult(session_id=visit.session_id, recorded=True)
