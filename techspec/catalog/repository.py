"""Catalog repositories.

Read and write access to the product, category and shop offer tables
of the backend service.
"""

from typing import Any

import structlog

from techspec.catalog.filters import ProductFilter, apply_product_filter
from techspec.domain.entities import Category, Product, ShopProduct
from techspec.infrastructure.backend_client import BackendClient, BackendResponse

logger = structlog.get_logger()

PRODUCT_COLUMNS = "*,category:categories(*)"


class ProductRepository:
    """Repository for product rows.

    Example usage:
        repo = ProductRepository(client)
        response = await repo.find(
            ProductFilter(brand="Apple", max_price=1200),
            category_id=None,
            limit=20,
        )
    """

    def __init__(self, client: BackendClient, access_token: str | None = None) -> None:
        """Initialize repository with a backend client.

        Args:
            client: Backend service client.
            access_token: Optional user access token for row policies.
        """
        self.client = client
        self.access_token = access_token

    def _table(self):
        return self.client.table("products", access_token=self.access_token)

    async def find(
        self,
        product_filter: ProductFilter,
        category_id: str | None = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        limit: int | None = None,
        offset: int | None = None,
        include_specs: bool = True,
    ) -> BackendResponse:
        """Find products with filtering, sorting, and pagination.

        The raw response is returned so callers can react to a rejected
        predicate.

        Args:
            product_filter: Filter state.
            category_id: Resolved category id.
            sort_by: Sort field (created_at, price, name, release_date).
            sort_order: Sort order (asc, desc).
            limit: Maximum results.
            offset: Result offset for pagination.
            include_specs: Whether to send specification predicates.

        Returns:
            BackendResponse with product rows and the exact total.
        """
        query = self._table().select(PRODUCT_COLUMNS, count="exact")
        apply_product_filter(
            query,
            product_filter,
            category_id=category_id,
            include_specs=include_specs,
        )
        query.order(self._get_sort_column(sort_by), desc=sort_order.lower() == "desc")
        if limit is not None:
            query.limit(limit)
        if offset:
            query.offset(offset)
        return await query.execute()

    async def get_by_slug(self, slug: str) -> Product | None:
        """Get product by slug."""
        row = (
            await self._table().select(PRODUCT_COLUMNS).eq("slug", slug).maybe_single()
        ).unwrap()
        return Product.from_row(row) if row else None

    async def get_by_ids(self, product_ids: list[str]) -> list[Product]:
        """Get products by ID, in the order the IDs were given."""
        if not product_ids:
            return []
        rows = (await self._table().select("*").in_("id", product_ids).execute()).unwrap()
        by_id = {str(row["id"]): Product.from_row(row) for row in rows or []}
        return [by_id[pid] for pid in product_ids if pid in by_id]

    async def list_by_name(self) -> list[Product]:
        """All products ordered by name."""
        rows = (await self._table().select("*").order("name").execute()).unwrap()
        return [Product.from_row(row) for row in rows or []]

    async def list_recent(self) -> list[Product]:
        """All products, newest first."""
        rows = (
            await self._table().select("*").order("created_at", desc=True).execute()
        ).unwrap()
        return [Product.from_row(row) for row in rows or []]

    async def list_slugs(self) -> list[dict[str, Any]]:
        """Slug and last update of every product."""
        rows = (await self._table().select("slug,updated_at").execute()).unwrap()
        return list(rows or [])

    async def insert(self, payload: dict[str, Any]) -> BackendResponse:
        """Insert one product row."""
        return await self._table().select("*").insert(payload)

    async def get_availability(self, product_id: str) -> list[ShopProduct]:
        """Shop offers for a product with their shops embedded."""
        rows = (
            await self.client.table("shop_products", access_token=self.access_token)
            .select("*,shop:shops(*)")
            .eq("product_id", product_id)
            .execute()
        ).unwrap()
        return [ShopProduct.from_row(row) for row in rows or []]

    def _get_sort_column(self, sort_by: str) -> str:
        """Get the column used for sorting.

        Args:
            sort_by: Sort field name.

        Returns:
            Column name, ``created_at`` for unknown fields.
        """
        columns = {
            "created_at": "created_at",
            "price": "price",
            "name": "name",
            "release_date": "release_date",
        }
        return columns.get(sort_by, "created_at")


class CategoryRepository:
    """Repository for category rows."""

    def __init__(self, client: BackendClient) -> None:
        self.client = client

    async def list_all(self) -> list[Category]:
        """All categories ordered by name."""
        rows = (
            await self.client.table("categories").select("*").order("name").execute()
        ).unwrap()
        return [Category.from_row(row) for row in rows or []]

    async def resolve_slug(self, slug: str) -> str | None:
        """Resolve a category slug to its id.

        Returns None when the slug is unknown or the lookup fails; the
        lookup failure is logged, not raised.
        """
        response = await (
            self.client.table("categories").select("id").eq("slug", slug).maybe_single()
        )
        if not response.success:
            logger.warning(
                "Category lookup failed",
                slug=slug,
                error=response.error.message if response.error else None,
            )
            return None
        return str(response.data["id"]) if response.data else None
