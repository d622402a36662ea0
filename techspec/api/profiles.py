"""Profile API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from techspec.api.dependencies import CurrentUser, get_profile_service
from techspec.api.schemas import ErrorResponse, ProfileResponse, ProfileUpdateRequest
from techspec.application.profile_service import ProfileService
from techspec.domain.entities import Profile

router = APIRouter(prefix="/profile", tags=["Profile"])

Service = Annotated[ProfileService, Depends(get_profile_service)]


def profile_to_response(profile: Profile) -> ProfileResponse:
    """Convert Profile entity to response schema."""
    return ProfileResponse(
        id=profile.id,
        email=profile.email,
        full_name=profile.full_name,
        avatar_url=profile.avatar_url,
        bio=profile.bio,
        role=profile.role.value,
        created_at=profile.created_at,
        updated_at=profile.updated_at,
    )


@router.get(
    "",
    response_model=ProfileResponse,
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Get own profile",
)
async def get_profile(user: CurrentUser, service: Service) -> ProfileResponse:
    return profile_to_response(await service.get_profile(user))


@router.patch(
    "",
    response_model=ProfileResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Update own profile",
)
async def update_profile(
    request: ProfileUpdateRequest,
    user: CurrentUser,
    service: Service,
) -> ProfileResponse:
    changes = request.model_dump(exclude_unset=True)
    return profile_to_response(await service.update_profile(user, changes))


@router.put(
    "/avatar",
    response_model=ProfileResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
    summary="Upload avatar",
    description="Upload the raw image body (JPEG, PNG, WebP or GIF, up to 2 MB).",
)
async def upload_avatar(
    request: Request,
    user: CurrentUser,
    service: Service,
) -> ProfileResponse:
    """Replace the avatar image.

    Args:
        request: Request whose body is the image.
        user: Signed-in user.
        service: Profile service.

    Returns:
        The profile pointing at the new avatar.
    """
    content = await request.body()
    content_type = request.headers.get("content-type", "application/octet-stream")
    profile = await service.upload_avatar(user, content, content_type)
    return profile_to_response(profile)
