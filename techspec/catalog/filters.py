"""Product filter translation.

Turns the storefront's filter state into row predicates for the
backend's product query:

- price bounds become inclusive ``gte``/``lte`` predicates, each applied
  on its own (no ``min <= max`` check)
- brand and free text become case-insensitive substring matches with
  LIKE wildcards in user input escaped
- specification sub-filters match inside the product's specification
  bag, with an in-process matcher used when the backend rejects the
  JSON path predicate
"""

import json
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from techspec.domain.exceptions import ValidationFailedError
from techspec.domain.state_machines import ProductStatus
from techspec.infrastructure.backend_client import TableQuery, condition

# Columns searched by the free-text query.
SEARCH_COLUMNS = ("name", "brand", "description")

# Specification keys searched by a spec filter that names no key.
SPEC_SEARCH_KEYS = ("network", "connectivity", "display", "features")

_SPEC_KEY = re.compile(r"^[A-Za-z0-9_]+$")


def escape_like(text: str) -> str:
    """Escape LIKE wildcards so user input matches literally."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def contains_pattern(text: str) -> str:
    """Case-insensitive substring pattern for ``ilike``."""
    return f"%{escape_like(text.strip())}%"


@dataclass(frozen=True)
class SpecFilter:
    """Substring match against the specification bag.

    Attributes:
        term: Text to look for (e.g. "5G", "touch").
        key: Specification key to look in; all well-known keys when None.
    """

    term: str
    key: str | None = None

    def __post_init__(self) -> None:
        if not self.term.strip():
            raise ValidationFailedError("Specification filter term is empty", field="spec")
        if self.key is not None and not _SPEC_KEY.match(self.key):
            raise ValidationFailedError(
                f"Invalid specification key: {self.key!r}", field="spec"
            )

    @classmethod
    def parse(cls, raw: str) -> "SpecFilter":
        """Parse ``"term"`` or ``"key:term"``."""
        key, sep, term = raw.partition(":")
        if sep and key.strip():
            return cls(term=term.strip(), key=key.strip())
        return cls(term=raw.strip())

    def column(self, key: str) -> str:
        return f"specifications->>{key}"

    def keys(self) -> tuple[str, ...]:
        """Specification keys this filter looks in."""
        return (self.key,) if self.key is not None else SPEC_SEARCH_KEYS

    def matches(self, specifications: dict[str, Any] | None) -> bool:
        """In-process match used when the backend rejects the predicate.

        Looks in the same keys as the backend predicate does.
        """
        if not specifications:
            return False
        needle = self.term.strip().lower()
        values = (specifications.get(key) for key in self.keys())
        return any(needle in _as_text(v).lower() for v in values if v is not None)


def _as_text(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


@dataclass
class ProductFilter:
    """Filter parameters for product listing.

    Attributes:
        min_price: Inclusive lower price bound.
        max_price: Inclusive upper price bound.
        brand: Brand substring.
        status: Lifecycle status.
        category_slug: Category slug, resolved to an id before querying.
        query: Free-text search in name, brand and description.
        spec_filters: Specification bag sub-filters.
        released_after: Inclusive lower bound on the release date.
    """

    min_price: float | None = None
    max_price: float | None = None
    brand: str | None = None
    status: ProductStatus | None = None
    category_slug: str | None = None
    query: str | None = None
    spec_filters: list[SpecFilter] = field(default_factory=list)
    released_after: date | None = None

    @property
    def has_spec_filters(self) -> bool:
        return bool(self.spec_filters)

    def matches_specs(self, specifications: dict[str, Any] | None) -> bool:
        """Whether a specification bag satisfies every spec filter."""
        return all(spec.matches(specifications) for spec in self.spec_filters)


def apply_product_filter(
    query: TableQuery,
    product_filter: ProductFilter,
    category_id: str | None = None,
    include_specs: bool = True,
) -> TableQuery:
    """Add the predicates for ``product_filter`` to a product query.

    Args:
        query: Query against the products table.
        product_filter: Filter state.
        category_id: Resolved category id; no category predicate when None.
        include_specs: Whether to send the specification predicates.

    Returns:
        The same query, for chaining.
    """
    f = product_filter

    if f.min_price is not None:
        query.gte("price", f.min_price)

    if f.max_price is not None:
        query.lte("price", f.max_price)

    if f.brand and f.brand.strip():
        query.ilike("brand", contains_pattern(f.brand))

    if f.status is not None:
        query.eq("status", f.status.value)

    if category_id is not None:
        query.eq("category_id", category_id)

    if f.query and f.query.strip():
        pattern = contains_pattern(f.query)
        query.or_(*(condition(column, "ilike", pattern) for column in SEARCH_COLUMNS))

    if f.released_after is not None:
        query.gte("release_date", f.released_after)

    if include_specs:
        for spec in f.spec_filters:
            pattern = contains_pattern(spec.term)
            if spec.key is not None:
                query.ilike(spec.column(spec.key), pattern)
            else:
                query.or_(*(condition(spec.column(key), "ilike", pattern) for key in spec.keys()))

    return query
