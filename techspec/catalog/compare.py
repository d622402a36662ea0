"""Side-by-side product comparison."""

from dataclasses import dataclass, field
from typing import Any

from techspec.domain.entities import Product

MAX_COMPARED_PRODUCTS = 4
MISSING = "-"


@dataclass
class ComparisonRow:
    """One specification key across all compared products."""

    key: str
    label: str
    values: list[str]


@dataclass
class Comparison:
    """Comparison table.

    Attributes:
        products: Compared products, at most four, no duplicates.
        rows: Union of specification keys in first-seen order.
    """

    products: list[Product] = field(default_factory=list)
    rows: list[ComparisonRow] = field(default_factory=list)

    @property
    def can_add_more(self) -> bool:
        return len(self.products) < MAX_COMPARED_PRODUCTS


def format_price(price: float | None) -> str:
    """Price label as shown in listings ("$1,299", "N/A")."""
    if price is None:
        return "N/A"
    if float(price).is_integer():
        return f"${price:,.0f}"
    return f"${price:,.2f}"


def _display(value: Any) -> str:
    if value is None or value == "":
        return MISSING
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return str(value)


def build_comparison(products: list[Product]) -> Comparison:
    """Build the comparison table for up to four products.

    Duplicates are dropped and anything past the fourth product is
    ignored. Keys missing from a product show as ``-``.
    """
    selected: list[Product] = []
    seen: set[str] = set()
    for product in products:
        if product.id in seen:
            continue
        seen.add(product.id)
        selected.append(product)
        if len(selected) == MAX_COMPARED_PRODUCTS:
            break

    keys: list[str] = []
    for product in selected:
        for key in product.specifications:
            if key not in keys:
                keys.append(key)

    rows = [
        ComparisonRow(
            key=key,
            label=key.replace("_", " "),
            values=[_display(p.specifications.get(key)) for p in selected],
        )
        for key in keys
    ]
    return Comparison(products=selected, rows=rows)
