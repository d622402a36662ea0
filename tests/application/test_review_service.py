"""Tests for the review service."""

import pytest

from techspec.application.review_service import HELPFUL_COUNT_RPC, ReviewService, ReviewSummary
from techspec.domain.entities import Review
from techspec.domain.exceptions import (
    BackendCallError,
    ConflictError,
    InvalidStateTransitionError,
    NotAuthenticatedError,
    NotFoundError,
    ValidationFailedError,
)
from techspec.domain.state_machines import ReviewStatus
from techspec.infrastructure.backend_client import BackendError, BackendResponse


def review_row(review_id: str = "r1", **overrides) -> dict:
    row = {
        "id": review_id,
        "product_id": "p1",
        "user_id": "user-1",
        "rating": 4,
        "title": "Great",
        "content": "Battery lasts two days",
        "helpful_count": 0,
        "status": "pending",
    }
    row.update(overrides)
    return row


def ok(data=None) -> BackendResponse:
    return BackendResponse(success=True, data=data)


class TestReviewSummary:
    def test_average_rating(self) -> None:
        summary = ReviewSummary(
            reviews=[Review.from_row(review_row(rating=r)) for r in (5, 4, 4)]
        )

        assert summary.count == 3
        assert summary.average_rating == 4.3

    def test_no_reviews(self) -> None:
        assert ReviewSummary().average_rating is None


class TestSubmitReview:
    """Tests for ReviewService.submit_review."""

    @pytest.mark.asyncio
    async def test_inserts_pending_review_as_user(self, backend, user) -> None:
        backend._request.return_value = ok([review_row()])
        service = ReviewService(backend)

        review = await service.submit_review(user, "p1", 4, " Great ", "Battery lasts two days")

        assert review.status == ReviewStatus.PENDING
        call = backend._request.call_args
        assert call.args[:2] == ("POST", "/rest/v1/reviews")
        assert call.kwargs["json"] == {
            "product_id": "p1",
            "user_id": "user-1",
            "rating": 4,
            "title": "Great",
            "content": "Battery lasts two days",
            "status": "pending",
        }
        assert call.kwargs["access_token"] == "user-token"

    @pytest.mark.asyncio
    async def test_anonymous_rejected_before_any_call(self, backend) -> None:
        service = ReviewService(backend)

        with pytest.raises(NotAuthenticatedError) as exc_info:
            await service.submit_review(None, "p1", 5, "t", "c")

        assert exc_info.value.message == "Must be logged in to submit a review"
        backend._request.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "rating,title,content,field",
        [
            (0, "t", "c", "rating"),
            (6, "t", "c", "rating"),
            (3, "  ", "c", "title"),
            (3, "t", "", "content"),
        ],
    )
    async def test_invalid_input(self, backend, user, rating, title, content, field) -> None:
        service = ReviewService(backend)

        with pytest.raises(ValidationFailedError) as exc_info:
            await service.submit_review(user, "p1", rating, title, content)

        assert exc_info.value.field == field
        backend._request.assert_not_called()


class TestListApproved:
    @pytest.mark.asyncio
    async def test_queries_approved_newest_first(self, backend) -> None:
        backend._request.return_value = ok(
            [review_row("r2", status="approved", rating=5), review_row("r1", status="approved")]
        )
        service = ReviewService(backend)

        summary = await service.list_approved("p1")

        assert [r.id for r in summary.reviews] == ["r2", "r1"]
        params = backend._request.call_args.kwargs["params"]
        assert ("product_id", "eq.p1") in params
        assert ("status", "eq.approved") in params
        assert ("order", "created_at.desc") in params


class TestVote:
    """Tests for helpfulness votes."""

    @pytest.mark.asyncio
    async def test_upserts_then_recounts_once(self, backend, user) -> None:
        service = ReviewService(backend)

        await service.vote(user, "r1", is_helpful=True)

        upsert, recount = backend._request.call_args_list
        assert upsert.args[:2] == ("POST", "/rest/v1/review_votes")
        assert upsert.kwargs["json"] == {
            "review_id": "r1",
            "user_id": "user-1",
            "is_helpful": True,
        }
        assert ("on_conflict", "review_id,user_id") in upsert.kwargs["params"]
        assert recount.args[1] == f"/rest/v1/rpc/{HELPFUL_COUNT_RPC}"
        assert recount.kwargs["json"] == {"review_id": "r1"}

    @pytest.mark.asyncio
    async def test_changing_vote_overwrites(self, backend, user) -> None:
        service = ReviewService(backend)

        await service.vote(user, "r1", is_helpful=True)
        await service.vote(user, "r1", is_helpful=False)

        last_upsert = backend._request.call_args_list[2]
        assert last_upsert.kwargs["json"]["is_helpful"] is False
        assert backend._request.call_count == 4

    @pytest.mark.asyncio
    async def test_anonymous_vote_rejected_without_calls(self, backend) -> None:
        service = ReviewService(backend)

        with pytest.raises(NotAuthenticatedError) as exc_info:
            await service.vote(None, "r1", is_helpful=True)

        assert exc_info.value.message == "Must be logged in to vote"
        backend._request.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_upsert_skips_recount(self, backend, user) -> None:
        backend._request.return_value = BackendResponse(
            success=False,
            error=BackendError(code="42501", message="permission denied", status_code=403),
        )
        service = ReviewService(backend)

        with pytest.raises(BackendCallError):
            await service.vote(user, "r1", is_helpful=True)

        assert backend._request.call_count == 1

    @pytest.mark.asyncio
    async def test_get_user_vote(self, backend, user) -> None:
        backend._request.return_value = ok([{"is_helpful": False}])
        service = ReviewService(backend)

        assert await service.get_user_vote(user, "r1") is False

    @pytest.mark.asyncio
    async def test_get_user_vote_none(self, backend, user) -> None:
        service = ReviewService(backend)

        assert await service.get_user_vote(user, "r1") is None
        assert await service.get_user_vote(None, "r1") is None
        assert backend._request.call_count == 1


class TestModerate:
    """Tests for admin moderation."""

    @pytest.mark.asyncio
    async def test_approves_pending_review(self, backend) -> None:
        backend._request.side_effect = [
            ok([{"id": "r1", "status": "pending"}]),
            ok([review_row(status="approved")]),
        ]
        service = ReviewService(backend)

        review = await service.moderate("r1", ReviewStatus.APPROVED)

        assert review.status == ReviewStatus.APPROVED
        update = backend._request.call_args_list[1]
        assert update.args[0] == "PATCH"
        assert update.kwargs["json"] == {"status": "approved"}
        assert ("status", "eq.pending") in update.kwargs["params"]

    @pytest.mark.asyncio
    async def test_missing_review(self, backend) -> None:
        service = ReviewService(backend)

        with pytest.raises(NotFoundError):
            await service.moderate("nope", ReviewStatus.APPROVED)

    @pytest.mark.asyncio
    async def test_already_moderated(self, backend) -> None:
        backend._request.return_value = ok([{"id": "r1", "status": "rejected"}])
        service = ReviewService(backend)

        with pytest.raises(InvalidStateTransitionError):
            await service.moderate("r1", ReviewStatus.APPROVED)

        assert backend._request.call_count == 1

    @pytest.mark.asyncio
    async def test_concurrent_moderation_conflicts(self, backend) -> None:
        backend._request.side_effect = [ok([{"id": "r1", "status": "pending"}]), ok([])]
        service = ReviewService(backend)

        with pytest.raises(ConflictError):
            await service.moderate("r1", ReviewStatus.REJECTED)

    @pytest.mark.asyncio
    async def test_list_all_embeds_product_name(self, backend) -> None:
        backend._request.return_value = ok([review_row(product={"name": "Pixel 9"})])
        service = ReviewService(backend)

        reviews = await service.list_all()

        assert reviews[0].product_name == "Pixel 9"
        assert ("select", "*,product:products(name)") in backend._request.call_args.kwargs["params"]
