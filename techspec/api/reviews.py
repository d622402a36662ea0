"""Review API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from techspec.api.dependencies import CurrentUser, OptionalUser, get_review_service
from techspec.api.schemas import (
    ErrorResponse,
    ReviewCreateRequest,
    ReviewListResponse,
    ReviewResponse,
    VoteRequest,
    VoteResponse,
)
from techspec.application.review_service import ReviewService
from techspec.domain.entities import Review

router = APIRouter(tags=["Reviews"])

Service = Annotated[ReviewService, Depends(get_review_service)]


def review_to_response(review: Review) -> ReviewResponse:
    """Convert Review entity to response schema."""
    return ReviewResponse(
        id=review.id,
        product_id=review.product_id,
        user_id=review.user_id,
        rating=review.rating,
        title=review.title,
        content=review.content,
        helpful_count=review.helpful_count,
        status=review.status.value,
        product_name=review.product_name,
        created_at=review.created_at,
        updated_at=review.updated_at,
    )


@router.get(
    "/products/{product_id}/reviews",
    response_model=ReviewListResponse,
    summary="List reviews",
    description="Approved reviews of a product with the average rating.",
)
async def list_reviews(product_id: str, service: Service) -> ReviewListResponse:
    summary = await service.list_approved(product_id)
    return ReviewListResponse(
        items=[review_to_response(r) for r in summary.reviews],
        count=summary.count,
        average_rating=summary.average_rating,
    )


@router.post(
    "/products/{product_id}/reviews",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
    },
    summary="Submit review",
    description="Submit a review; it is published once an admin approves it.",
)
async def submit_review(
    product_id: str,
    request: ReviewCreateRequest,
    user: CurrentUser,
    service: Service,
) -> ReviewResponse:
    """Submit a review.

    Args:
        product_id: Reviewed product.
        request: Rating, title and content.
        user: Signed-in user.
        service: Review service.

    Returns:
        The pending review.
    """
    review = await service.submit_review(
        user,
        product_id,
        rating=request.rating,
        title=request.title,
        content=request.content,
    )
    return review_to_response(review)


@router.post(
    "/reviews/{review_id}/vote",
    response_model=VoteResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Vote on review",
    description="Mark a review helpful or not; a second vote replaces the first.",
)
async def vote(
    review_id: str,
    request: VoteRequest,
    user: OptionalUser,
    service: Service,
) -> VoteResponse:
    await service.vote(user, review_id, request.is_helpful)
    return VoteResponse(review_id=review_id, is_helpful=request.is_helpful)


@router.get(
    "/reviews/{review_id}/vote",
    response_model=VoteResponse,
    summary="Get own vote",
    description="The caller's vote on a review; null when anonymous or not voted.",
)
async def get_vote(review_id: str, user: OptionalUser, service: Service) -> VoteResponse:
    is_helpful = await service.get_user_vote(user, review_id)
    return VoteResponse(review_id=review_id, is_helpful=is_helpful)
