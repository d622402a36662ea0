"""Product Catalog.

Provides product filtering and listing, comparison tables, debounced
search for interactive clients, image URL helpers and the sitemap.
"""

from techspec.catalog.compare import Comparison, ComparisonRow, build_comparison
from techspec.catalog.filters import ProductFilter, SpecFilter, apply_product_filter
from techspec.catalog.repository import CategoryRepository, ProductRepository
from techspec.catalog.search import DebouncedSearch, SearchOutcome
from techspec.catalog.service import CatalogService, PaginatedResult, PaginationParams
from techspec.catalog.sitemap import build_sitemap

__all__ = [
    # Filters
    "ProductFilter",
    "SpecFilter",
    "apply_product_filter",
    # Repository
    "CategoryRepository",
    "ProductRepository",
    # Service
    "CatalogService",
    "PaginatedResult",
    "PaginationParams",
    # Comparison
    "Comparison",
    "ComparisonRow",
    "build_comparison",
    # Search
    "DebouncedSearch",
    "SearchOutcome",
    # Sitemap
    "build_sitemap",
]
