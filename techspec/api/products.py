"""Product API endpoints.

Listing with filters, product detail, shop availability, comparison
and categories.
"""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from techspec.api.dependencies import get_catalog_service
from techspec.api.schemas import (
    CategoryResponse,
    ComparisonResponse,
    ComparisonRowResponse,
    ErrorResponse,
    ProductDetailResponse,
    ProductListResponse,
    ProductResponse,
    ShopOfferResponse,
    ShopSummary,
)
from techspec.catalog.compare import MAX_COMPARED_PRODUCTS, format_price
from techspec.catalog.filters import ProductFilter, SpecFilter
from techspec.catalog.images import gallery, main_image
from techspec.catalog.service import CatalogService, PaginationParams
from techspec.domain.entities import Category, Product, ShopProduct
from techspec.domain.exceptions import ValidationFailedError
from techspec.domain.state_machines import ProductStatus

router = APIRouter(tags=["Products"])

Service = Annotated[CatalogService, Depends(get_catalog_service)]


# ============================================================================
# Converters
# ============================================================================


def category_to_response(category: Category) -> CategoryResponse:
    """Convert Category entity to response schema."""
    return CategoryResponse(
        id=category.id,
        name=category.name,
        slug=category.slug,
        description=category.description,
        icon=category.icon,
    )


def product_to_response(product: Product, image_width: int = 800) -> ProductResponse:
    """Convert Product entity to response schema."""
    return ProductResponse(
        id=product.id,
        name=product.name,
        slug=product.slug,
        brand=product.brand,
        model=product.model,
        category_id=product.category_id,
        category=category_to_response(product.category) if product.category else None,
        description=product.description,
        specifications=product.specifications,
        images=product.images,
        image_url=main_image(product, image_width),
        release_date=product.release_date,
        price=product.price,
        status=product.status.value,
        created_at=product.created_at,
        updated_at=product.updated_at,
    )


def offer_to_response(offer: ShopProduct) -> ShopOfferResponse:
    """Convert ShopProduct entity to response schema."""
    shop = offer.shop
    return ShopOfferResponse(
        id=offer.id,
        shop_id=offer.shop_id,
        product_id=offer.product_id,
        price=offer.price,
        stock_status=offer.stock_status.value,
        stock_label=offer.stock_status.label,
        stock_quantity=offer.stock_quantity,
        last_updated=offer.last_updated,
        shop=(
            ShopSummary(
                id=shop.id,
                name=shop.name,
                slug=shop.slug,
                address=shop.address,
                phone=shop.phone,
                website=shop.website,
            )
            if shop
            else None
        ),
    )


def _parse_spec_filters(raw: list[str]) -> list[SpecFilter]:
    return [SpecFilter.parse(value) for value in raw if value.strip()]


# ============================================================================
# Endpoints
# ============================================================================


@router.get(
    "/products",
    response_model=ProductListResponse,
    responses={400: {"model": ErrorResponse}},
    summary="List products",
    description="List products with filters, sorting and pagination.",
)
async def list_products(
    service: Service,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
    sort_by: str = Query(default="created_at"),
    sort_order: str = Query(default="desc", pattern="^(asc|desc)$"),
    min_price: float | None = Query(default=None, ge=0),
    max_price: float | None = Query(default=None, ge=0),
    brand: str | None = Query(default=None),
    status: ProductStatus | None = Query(default=None),
    category: str | None = Query(default=None, description="Category slug"),
    q: str | None = Query(default=None, description="Free-text search"),
    spec: list[str] = Query(
        default=[], description='Specification filter, "term" or "key:term"'
    ),
    released_after: date | None = Query(default=None),
) -> ProductListResponse:
    """List products.

    Args:
        service: Catalog service.
        page: Page number (1-based).
        page_size: Items per page.
        sort_by: created_at, price, name or release_date.
        sort_order: asc or desc.
        min_price: Inclusive lower price bound.
        max_price: Inclusive upper price bound.
        brand: Brand substring.
        status: Product status.
        category: Category slug; unknown slugs are ignored.
        q: Text searched in name, brand and description.
        spec: Specification filters.
        released_after: Inclusive lower bound on the release date.

    Returns:
        Paginated products.
    """
    product_filter = ProductFilter(
        min_price=min_price,
        max_price=max_price,
        brand=brand or None,
        status=status,
        category_slug=category or None,
        query=q or None,
        spec_filters=_parse_spec_filters(spec),
        released_after=released_after,
    )
    result = await service.search_products(
        product_filter,
        PaginationParams(
            page=page,
            page_size=page_size,
            sort_by=sort_by,
            sort_order=sort_order,
        ),
    )
    return ProductListResponse(
        items=[product_to_response(p) for p in result.items],
        total=result.total,
        page=result.page,
        page_size=result.page_size,
        has_more=result.has_next,
    )


@router.get(
    "/products/compare",
    response_model=ComparisonResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Compare products",
    description="Side-by-side specification table for up to four products.",
)
async def compare_products(
    service: Service,
    ids: str = Query(..., description="Comma-separated product IDs"),
) -> ComparisonResponse:
    """Compare products.

    Args:
        service: Catalog service.
        ids: Comma-separated product IDs.

    Returns:
        Comparison table.

    Raises:
        ValidationFailedError: If no ID or more than four IDs are given.
    """
    product_ids = list(dict.fromkeys(i.strip() for i in ids.split(",") if i.strip()))
    if not product_ids:
        raise ValidationFailedError("At least one product id is required", field="ids")
    if len(product_ids) > MAX_COMPARED_PRODUCTS:
        raise ValidationFailedError(
            f"At most {MAX_COMPARED_PRODUCTS} products can be compared", field="ids"
        )

    comparison = await service.compare_products(product_ids)
    return ComparisonResponse(
        products=[product_to_response(p, image_width=400) for p in comparison.products],
        price_row=[format_price(p.price) for p in comparison.products],
        rows=[
            ComparisonRowResponse(key=row.key, label=row.label, values=row.values)
            for row in comparison.rows
        ],
        can_add_more=comparison.can_add_more,
    )


@router.get(
    "/products/{slug}",
    response_model=ProductDetailResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get product",
    description="Get a product with its image gallery by slug.",
)
async def get_product(slug: str, service: Service) -> ProductDetailResponse:
    """Get a product by slug."""
    product = await service.get_product(slug)
    summary = product_to_response(product, image_width=1200)
    return ProductDetailResponse(**summary.model_dump(), gallery=gallery(product))


@router.get(
    "/products/{product_id}/availability",
    response_model=list[ShopOfferResponse],
    summary="Product availability",
    description="Shops offering the product with price and stock status.",
)
async def get_availability(product_id: str, service: Service) -> list[ShopOfferResponse]:
    offers = await service.get_availability(product_id)
    return [offer_to_response(o) for o in offers]


@router.get(
    "/categories",
    response_model=list[CategoryResponse],
    summary="List categories",
)
async def list_categories(service: Service) -> list[CategoryResponse]:
    categories = await service.list_categories()
    return [category_to_response(c) for c in categories]
