"""Catalog service for product operations.

High-level service that combines repository operations with the
listing rules of the storefront: category slugs are resolved before
filtering, and specification filters fall back to in-process matching
when the backend rejects them.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar

import structlog

from techspec.catalog.compare import Comparison, build_comparison
from techspec.catalog.filters import ProductFilter
from techspec.catalog.repository import CategoryRepository, ProductRepository
from techspec.domain.entities import Category, Product, ShopProduct
from techspec.domain.exceptions import NotFoundError
from techspec.infrastructure.backend_client import BackendClient, BackendError

T = TypeVar("T")

logger = structlog.get_logger()


@dataclass
class PaginationParams:
    """Pagination parameters.

    Attributes:
        page: Page number (1-indexed).
        page_size: Items per page.
        sort_by: Sort field.
        sort_order: Sort order (asc/desc).
    """

    page: int = 1
    page_size: int = 20
    sort_by: str = "created_at"
    sort_order: str = "desc"

    @property
    def offset(self) -> int:
        """Calculate offset from page number."""
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int:
        """Get limit (alias for page_size)."""
        return self.page_size


@dataclass
class PaginatedResult(Generic[T]):
    """Paginated result container.

    Attributes:
        items: List of items.
        total: Total count.
        page: Current page.
        page_size: Items per page.
    """

    items: list[T]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        """Calculate total pages."""
        return (self.total + self.page_size - 1) // self.page_size

    @property
    def has_next(self) -> bool:
        """Check if there's a next page."""
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        """Check if there's a previous page."""
        return self.page > 1


def is_rejected_predicate(error: BackendError | None) -> bool:
    """Whether the backend refused to parse or evaluate the query."""
    return error is not None and error.status_code == 400


class CatalogService:
    """Service for catalog reads.

    Example usage:
        service = CatalogService(client)
        results = await service.search_products(
            ProductFilter(category_slug="smartphones", spec_filters=[SpecFilter("5G")]),
            PaginationParams(page=1, sort_by="price", sort_order="asc"),
        )
    """

    def __init__(self, client: BackendClient) -> None:
        """Initialize service with the backend client.

        Args:
            client: Backend service client.
        """
        self.client = client
        self.products = ProductRepository(client)
        self.categories = CategoryRepository(client)

    async def search_products(
        self,
        product_filter: ProductFilter,
        pagination: PaginationParams | None = None,
    ) -> PaginatedResult[Product]:
        """Search products with filters and pagination.

        An unknown category slug drops the category predicate instead
        of returning nothing.

        Args:
            product_filter: Filter state.
            pagination: Pagination and sort parameters.

        Returns:
            Paginated products.

        Raises:
            BackendCallError: If the backend query fails.
        """
        pagination = pagination or PaginationParams()

        category_id = None
        if product_filter.category_slug:
            category_id = await self.categories.resolve_slug(product_filter.category_slug)
            if category_id is None:
                logger.warning(
                    "Unknown category slug, listing without category filter",
                    category_slug=product_filter.category_slug,
                )

        response = await self.products.find(
            product_filter,
            category_id=category_id,
            sort_by=pagination.sort_by,
            sort_order=pagination.sort_order,
            limit=pagination.limit,
            offset=pagination.offset,
        )

        if (
            not response.success
            and product_filter.has_spec_filters
            and is_rejected_predicate(response.error)
        ):
            logger.warning(
                "Specification predicate rejected, filtering in process",
                error=response.error.message if response.error else None,
            )
            return await self._search_with_spec_fallback(
                product_filter, category_id, pagination
            )

        rows = response.unwrap() or []
        total = response.count if response.count is not None else len(rows)
        return PaginatedResult(
            items=[Product.from_row(row) for row in rows],
            total=total,
            page=pagination.page,
            page_size=pagination.page_size,
        )

    async def _search_with_spec_fallback(
        self,
        product_filter: ProductFilter,
        category_id: str | None,
        pagination: PaginationParams,
    ) -> PaginatedResult[Product]:
        """Re-run the query without spec predicates and match in process."""
        response = await self.products.find(
            product_filter,
            category_id=category_id,
            sort_by=pagination.sort_by,
            sort_order=pagination.sort_order,
            include_specs=False,
        )
        rows = response.unwrap() or []
        matched = [
            Product.from_row(row)
            for row in rows
            if product_filter.matches_specs(row.get("specifications"))
        ]
        start = pagination.offset
        return PaginatedResult(
            items=matched[start : start + pagination.limit],
            total=len(matched),
            page=pagination.page,
            page_size=pagination.page_size,
        )

    async def get_product(self, slug: str) -> Product:
        """Get a product by slug.

        Raises:
            NotFoundError: If no product has this slug.
        """
        product = await self.products.get_by_slug(slug)
        if product is None:
            raise NotFoundError("Product", slug)
        return product

    async def get_availability(self, product_id: str) -> list[ShopProduct]:
        """Shop offers for a product."""
        return await self.products.get_availability(product_id)

    async def compare_products(self, product_ids: list[str]) -> Comparison:
        """Build the comparison table for the given product IDs."""
        unique_ids = list(dict.fromkeys(product_ids))
        products = await self.products.get_by_ids(unique_ids)
        return build_comparison(products)

    async def list_compare_candidates(self, exclude_ids: list[str]) -> list[Product]:
        """Products that can still be added to a comparison."""
        excluded = set(exclude_ids)
        return [p for p in await self.products.list_by_name() if p.id not in excluded]

    async def list_categories(self) -> list[Category]:
        """All categories."""
        return await self.categories.list_all()
