"""Admin API endpoints.

Every route here sits behind the static admin token. Errors use the
``{"error": message}`` body expected by the admin tooling. Payloads
are read only after the token check, so unauthenticated callers never
learn anything about the expected shape.
"""

from typing import Annotated, TypeVar

import structlog
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ValidationError

from techspec.api.dependencies import (
    AdminAPIError,
    get_admin_catalog_service,
    get_admin_review_service,
    get_admin_shop_service,
    get_import_service,
    require_admin_token,
)
from techspec.api.products import product_to_response
from techspec.api.reviews import review_to_response
from techspec.api.schemas import (
    AdminErrorResponse,
    CsvImportRequest,
    CsvImportResponse,
    ModerateReviewRequest,
    OkResponse,
    ProductResponse,
    ReviewResponse,
    ShopResponse,
    ShopStatusRequest,
)
from techspec.api.shops import shop_to_response
from techspec.application.import_service import ProductImportService
from techspec.application.review_service import ReviewService
from techspec.application.shop_service import ShopService
from techspec.catalog.service import CatalogService
from techspec.domain.exceptions import (
    BackendCallError,
    ConflictError,
    DomainError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationFailedError,
)
from techspec.domain.state_machines import ReviewStatus, ShopStatus

logger = structlog.get_logger()

router = APIRouter(
    tags=["Admin"],
    dependencies=[Depends(require_admin_token)],
    responses={
        400: {"model": AdminErrorResponse},
        401: {"model": AdminErrorResponse},
        500: {"model": AdminErrorResponse},
    },
)

M = TypeVar("M", bound=BaseModel)


# ============================================================================
# Helpers
# ============================================================================


async def read_payload(request: Request, model: type[M]) -> M:
    """Parse and validate the JSON body.

    Raises:
        AdminAPIError: 400 if the body is not valid JSON or does not
            match the model.
    """
    try:
        data = await request.json()
    except ValueError as e:
        raise AdminAPIError(400, "Request body must be JSON") from e
    try:
        return model.model_validate(data)
    except ValidationError as e:
        error = e.errors()[0]
        location = ".".join(str(part) for part in error.get("loc", ()))
        message = f"{location}: {error['msg']}" if location else error["msg"]
        raise AdminAPIError(400, f"Invalid payload ({message})") from e


def to_admin_error(exc: DomainError) -> AdminAPIError:
    """Map a domain error to its admin HTTP error."""
    if isinstance(exc, ValidationFailedError):
        return AdminAPIError(400, exc.message)
    if isinstance(exc, NotFoundError):
        return AdminAPIError(404, exc.message)
    if isinstance(exc, (InvalidStateTransitionError, ConflictError)):
        return AdminAPIError(409, exc.message)
    if isinstance(exc, BackendCallError):
        logger.error("Admin backend call failed", error=exc.message, error_code=exc.error_code)
    return AdminAPIError(500, exc.message)


# ============================================================================
# Bulk Import and Review Moderation
# ============================================================================


@router.post(
    "/api/csv-import",
    response_model=CsvImportResponse,
    summary="Import products from CSV",
    description="Insert one product per CSV row and report each row's outcome.",
)
async def csv_import(
    request: Request,
    service: Annotated[ProductImportService, Depends(get_import_service)],
) -> CsvImportResponse:
    """Import products.

    Args:
        request: Request with ``{"content": "<csv text>"}``.
        service: Import service bound to the admin backend client.

    Returns:
        ``{"results": [{"name", "id"} | {"name", "error"}]}`` in row order.
    """
    payload = await read_payload(request, CsvImportRequest)
    try:
        results = await service.import_csv(payload.content)
    except DomainError as e:
        raise to_admin_error(e) from e
    return CsvImportResponse(results=[r.to_dict() for r in results])


@router.post(
    "/api/moderate-review",
    response_model=OkResponse,
    responses={404: {"model": AdminErrorResponse}, 409: {"model": AdminErrorResponse}},
    summary="Moderate review",
    description="Approve or reject a pending review.",
)
async def moderate_review(
    request: Request,
    service: Annotated[ReviewService, Depends(get_admin_review_service)],
) -> OkResponse:
    payload = await read_payload(request, ModerateReviewRequest)
    try:
        await service.moderate(payload.review_id, ReviewStatus(payload.status))
    except DomainError as e:
        raise to_admin_error(e) from e
    return OkResponse()


# ============================================================================
# Admin Panel
# ============================================================================


@router.get(
    "/admin/products",
    response_model=list[ProductResponse],
    summary="All products",
)
async def admin_products(
    service: Annotated[CatalogService, Depends(get_admin_catalog_service)],
) -> list[ProductResponse]:
    try:
        products = await service.products.list_recent()
    except DomainError as e:
        raise to_admin_error(e) from e
    return [product_to_response(p, image_width=200) for p in products]


@router.get(
    "/admin/shops",
    response_model=list[ShopResponse],
    summary="All shops",
)
async def admin_shops(
    service: Annotated[ShopService, Depends(get_admin_shop_service)],
) -> list[ShopResponse]:
    try:
        shops = await service.list_all()
    except DomainError as e:
        raise to_admin_error(e) from e
    return [shop_to_response(s) for s in shops]


@router.get(
    "/admin/reviews",
    response_model=list[ReviewResponse],
    summary="All reviews",
)
async def admin_reviews(
    service: Annotated[ReviewService, Depends(get_admin_review_service)],
) -> list[ReviewResponse]:
    try:
        reviews = await service.list_all()
    except DomainError as e:
        raise to_admin_error(e) from e
    return [review_to_response(r) for r in reviews]


@router.post(
    "/admin/shops/{shop_id}/status",
    response_model=ShopResponse,
    responses={404: {"model": AdminErrorResponse}, 409: {"model": AdminErrorResponse}},
    summary="Moderate shop",
)
async def moderate_shop(
    shop_id: str,
    request: Request,
    service: Annotated[ShopService, Depends(get_admin_shop_service)],
) -> ShopResponse:
    payload = await read_payload(request, ShopStatusRequest)
    try:
        shop = await service.moderate(shop_id, ShopStatus(payload.status))
    except DomainError as e:
        raise to_admin_error(e) from e
    return shop_to_response(shop)
