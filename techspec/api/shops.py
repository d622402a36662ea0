"""Shop registration endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from techspec.api.dependencies import CurrentUser, get_shop_service
from techspec.api.schemas import (
    ErrorResponse,
    ShopCreateRequest,
    ShopRegistrationResponse,
    ShopResponse,
)
from techspec.application.shop_service import ShopRegistration, ShopService
from techspec.domain.entities import Shop

router = APIRouter(prefix="/shops", tags=["Shops"])


def shop_to_response(shop: Shop) -> ShopResponse:
    """Convert Shop entity to response schema."""
    return ShopResponse(
        id=shop.id,
        owner_id=shop.owner_id,
        name=shop.name,
        slug=shop.slug,
        status=shop.status.value,
        description=shop.description,
        logo_url=shop.logo_url,
        address=shop.address,
        phone=shop.phone,
        email=shop.email,
        website=shop.website,
        created_at=shop.created_at,
        updated_at=shop.updated_at,
    )


@router.post(
    "",
    response_model=ShopRegistrationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
    },
    summary="Register shop",
    description="Register a shop pending approval and make the caller a shop owner.",
)
async def register_shop(
    request: ShopCreateRequest,
    user: CurrentUser,
    service: Annotated[ShopService, Depends(get_shop_service)],
) -> ShopRegistrationResponse:
    result = await service.register_shop(
        user,
        ShopRegistration(
            name=request.name,
            description=request.description,
            address=request.address,
            phone=request.phone,
            email=request.email,
            website=request.website,
        ),
    )
    return ShopRegistrationResponse(
        shop=shop_to_response(result.shop),
        role_updated=result.role_updated,
    )
