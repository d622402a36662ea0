"""Review service.

Handles review submission, the public list of approved reviews,
helpfulness votes and admin moderation.
"""

from dataclasses import dataclass, field

import structlog

from techspec.domain.entities import AuthUser, Review, ReviewVote
from techspec.domain.exceptions import (
    ConflictError,
    NotAuthenticatedError,
    NotFoundError,
    ValidationFailedError,
)
from techspec.domain.state_machines import ReviewStatus, validate_review_transition
from techspec.infrastructure.backend_client import BackendClient

logger = structlog.get_logger()

MIN_RATING = 1
MAX_RATING = 5
HELPFUL_COUNT_RPC = "update_review_helpful_count"


@dataclass
class ReviewSummary:
    """Approved reviews of a product with their average rating."""

    reviews: list[Review] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.reviews)

    @property
    def average_rating(self) -> float | None:
        if not self.reviews:
            return None
        return round(sum(r.rating for r in self.reviews) / len(self.reviews), 1)


class ReviewService:
    """Service for product reviews.

    Example usage:
        service = ReviewService(client)
        await service.vote(user, review_id, is_helpful=True)
    """

    def __init__(self, client: BackendClient) -> None:
        """Initialize service.

        Args:
            client: Backend service client.
        """
        self.client = client

    async def submit_review(
        self,
        user: AuthUser | None,
        product_id: str,
        rating: int,
        title: str,
        content: str,
    ) -> Review:
        """Submit a review; it stays pending until an admin approves it.

        Args:
            user: Signed-in user.
            product_id: Reviewed product.
            rating: Rating from 1 to 5.
            title: Review title.
            content: Review body.

        Returns:
            The created review.

        Raises:
            NotAuthenticatedError: If nobody is signed in.
            ValidationFailedError: If the input is incomplete.
            BackendCallError: If the insert fails.
        """
        if user is None:
            raise NotAuthenticatedError("submit a review")
        if not MIN_RATING <= rating <= MAX_RATING:
            raise ValidationFailedError(
                f"Rating must be between {MIN_RATING} and {MAX_RATING}", field="rating"
            )
        if not title.strip():
            raise ValidationFailedError("Title is required", field="title")
        if not content.strip():
            raise ValidationFailedError("Review content is required", field="content")

        response = await self.client.table("reviews", access_token=user.access_token).insert(
            {
                "product_id": product_id,
                "user_id": user.id,
                "rating": rating,
                "title": title.strip(),
                "content": content.strip(),
                "status": ReviewStatus.PENDING.value,
            }
        )
        review = Review.from_row(response.first())

        logger.info(
            "Review submitted",
            review_id=review.id,
            product_id=product_id,
            user_id=user.id,
        )
        return review

    async def list_approved(self, product_id: str) -> ReviewSummary:
        """Approved reviews of a product, newest first."""
        rows = (
            await self.client.table("reviews")
            .select("*")
            .eq("product_id", product_id)
            .eq("status", ReviewStatus.APPROVED.value)
            .order("created_at", desc=True)
            .execute()
        ).unwrap()
        return ReviewSummary(reviews=[Review.from_row(row) for row in rows or []])

    async def vote(self, user: AuthUser | None, review_id: str, is_helpful: bool) -> None:
        """Record or overwrite the user's vote, then recount the review.

        The upsert and the recount are two independent calls.

        Raises:
            NotAuthenticatedError: If nobody is signed in.
            BackendCallError: If either call fails.
        """
        if user is None:
            raise NotAuthenticatedError("vote")

        vote = ReviewVote(review_id=review_id, user_id=user.id, is_helpful=is_helpful)
        (
            await self.client.table("review_votes", access_token=user.access_token).upsert(
                vote.to_row(), on_conflict="review_id,user_id"
            )
        ).unwrap()

        (
            await self.client.rpc(
                HELPFUL_COUNT_RPC,
                {"review_id": review_id},
                access_token=user.access_token,
            )
        ).unwrap()

        logger.info(
            "Review vote recorded",
            review_id=review_id,
            user_id=user.id,
            is_helpful=is_helpful,
        )

    async def get_user_vote(self, user: AuthUser | None, review_id: str) -> bool | None:
        """The user's vote on a review, or None if they have not voted."""
        if user is None:
            return None
        row = (
            await self.client.table("review_votes", access_token=user.access_token)
            .select("is_helpful")
            .eq("review_id", review_id)
            .eq("user_id", user.id)
            .maybe_single()
        ).unwrap()
        if row is None:
            return None
        return bool(row["is_helpful"])

    async def list_all(self) -> list[Review]:
        """Every review with its product name, newest first."""
        rows = (
            await self.client.table("reviews")
            .select("*,product:products(name)")
            .order("created_at", desc=True)
            .execute()
        ).unwrap()
        return [Review.from_row(row) for row in rows or []]

    async def moderate(self, review_id: str, status: ReviewStatus) -> Review:
        """Approve or reject a pending review.

        The write is conditional on the review still being pending, so a
        concurrent moderation cannot be overwritten.

        Args:
            review_id: Review to moderate.
            status: Target status.

        Returns:
            The updated review.

        Raises:
            NotFoundError: If the review does not exist.
            InvalidStateTransitionError: If the review is not pending.
            ConflictError: If the review changed status meanwhile.
            BackendCallError: If a backend call fails.
        """
        row = (
            await self.client.table("reviews")
            .select("id,status")
            .eq("id", review_id)
            .maybe_single()
        ).unwrap()
        if row is None:
            raise NotFoundError("Review", review_id)

        current = ReviewStatus(row["status"])
        validate_review_transition(review_id, current, status)

        rows = (
            await self.client.table("reviews")
            .select("*")
            .eq("id", review_id)
            .eq("status", current.value)
            .update({"status": status.value})
        ).unwrap()
        if not rows:
            raise ConflictError(
                f"Review {review_id} is no longer {current.value}",
                details={"review_id": review_id},
            )

        logger.info(
            "Review moderated",
            review_id=review_id,
            from_status=current.value,
            to_status=status.value,
        )
        return Review.from_row(rows[0])
