"""Domain entities for the TechSpec storefront.

Every entity mirrors a row (or an RPC result) of the backend service.
Rows arrive as JSON dictionaries and are turned into dataclasses with
``from_row``; nothing here talks to the backend.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from techspec.domain.state_machines import (
    ProductStatus,
    ReviewStatus,
    ShopStatus,
    StockStatus,
    UserRole,
)

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """Derive a URL-safe slug from a display name.

    Lowercases the name and replaces every run of characters outside
    ``[a-z0-9]`` with a single hyphen. Uniqueness is left to the backend.

    Example:
        >>> slugify("Galaxy S24 Ultra (512GB)")
        'galaxy-s24-ultra-512gb-'
    """
    return _NON_ALNUM.sub("-", name.lower())


def parse_datetime(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp from the backend."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def parse_date(value: Any) -> date | None:
    """Parse an ISO-8601 date (or timestamp) from the backend."""
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    text = str(value)
    if "T" in text:
        parsed = parse_datetime(text)
        return parsed.date() if parsed else None
    return date.fromisoformat(text)


def _parse_price(value: Any) -> float | None:
    if value is None or value == "":
        return None
    return float(value)


# ============================================================================
# Catalog
# ============================================================================


@dataclass
class Category:
    """Product category."""

    id: str
    name: str
    slug: str
    description: str | None = None
    icon: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Category":
        """Create from a backend row."""
        return cls(
            id=str(row["id"]),
            name=row.get("name", ""),
            slug=row.get("slug", ""),
            description=row.get("description"),
            icon=row.get("icon"),
            created_at=parse_datetime(row.get("created_at")),
        )


@dataclass
class Product:
    """Catalog product with its specification bag.

    Attributes:
        specifications: Semi-structured key/value technical specs.
        images: Ordered image URLs; the first one is the main image.
        category: Embedded category when the query selected it.
    """

    id: str
    name: str
    slug: str
    brand: str
    model: str
    category_id: str | None = None
    description: str | None = None
    specifications: dict[str, Any] = field(default_factory=dict)
    images: list[str] = field(default_factory=list)
    release_date: date | None = None
    price: float | None = None
    status: ProductStatus = ProductStatus.ACTIVE
    created_at: datetime | None = None
    updated_at: datetime | None = None
    category: Category | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Product":
        """Create from a backend row, with or without embedded category."""
        specifications = row.get("specifications")
        images = row.get("images")
        category = row.get("category")
        return cls(
            id=str(row["id"]),
            name=row.get("name", ""),
            slug=row.get("slug", ""),
            brand=row.get("brand", ""),
            model=row.get("model", ""),
            category_id=row.get("category_id"),
            description=row.get("description"),
            specifications=specifications if isinstance(specifications, dict) else {},
            images=[str(i) for i in images] if isinstance(images, list) else [],
            release_date=parse_date(row.get("release_date")),
            price=_parse_price(row.get("price")),
            status=ProductStatus(row.get("status") or ProductStatus.ACTIVE.value),
            created_at=parse_datetime(row.get("created_at")),
            updated_at=parse_datetime(row.get("updated_at")),
            category=Category.from_row(category) if isinstance(category, dict) else None,
        )


# ============================================================================
# Shops
# ============================================================================


@dataclass
class Shop:
    """Shop registered by a shop owner."""

    id: str
    owner_id: str
    name: str
    slug: str
    status: ShopStatus = ShopStatus.PENDING
    description: str | None = None
    logo_url: str | None = None
    address: str | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Shop":
        """Create from a backend row."""
        return cls(
            id=str(row["id"]),
            owner_id=str(row.get("owner_id", "")),
            name=row.get("name", ""),
            slug=row.get("slug", ""),
            status=ShopStatus(row.get("status") or ShopStatus.PENDING.value),
            description=row.get("description"),
            logo_url=row.get("logo_url"),
            address=row.get("address"),
            phone=row.get("phone"),
            email=row.get("email"),
            website=row.get("website"),
            created_at=parse_datetime(row.get("created_at")),
            updated_at=parse_datetime(row.get("updated_at")),
        )


@dataclass
class ShopProduct:
    """A shop's offer for a product."""

    id: str
    shop_id: str
    product_id: str
    price: float
    stock_status: StockStatus
    stock_quantity: int | None = None
    last_updated: datetime | None = None
    shop: Shop | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "ShopProduct":
        """Create from a backend row with optional embedded shop."""
        shop = row.get("shop")
        return cls(
            id=str(row["id"]),
            shop_id=str(row.get("shop_id", "")),
            product_id=str(row.get("product_id", "")),
            price=float(row.get("price") or 0),
            stock_status=StockStatus(row.get("stock_status") or StockStatus.OUT_OF_STOCK.value),
            stock_quantity=row.get("stock_quantity"),
            last_updated=parse_datetime(row.get("last_updated")),
            shop=Shop.from_row(shop) if isinstance(shop, dict) else None,
        )


# ============================================================================
# Reviews
# ============================================================================


@dataclass
class Review:
    """User review of a product.

    ``helpful_count`` is maintained by the backend's recount function;
    clients never write it.
    """

    id: str
    product_id: str
    user_id: str
    rating: int
    title: str
    content: str
    helpful_count: int = 0
    status: ReviewStatus = ReviewStatus.PENDING
    created_at: datetime | None = None
    updated_at: datetime | None = None
    product_name: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Review":
        """Create from a backend row with optional embedded product name."""
        product = row.get("product")
        return cls(
            id=str(row["id"]),
            product_id=str(row.get("product_id", "")),
            user_id=str(row.get("user_id", "")),
            rating=int(row.get("rating") or 0),
            title=row.get("title") or "",
            content=row.get("content") or "",
            helpful_count=int(row.get("helpful_count") or 0),
            status=ReviewStatus(row.get("status") or ReviewStatus.PENDING.value),
            created_at=parse_datetime(row.get("created_at")),
            updated_at=parse_datetime(row.get("updated_at")),
            product_name=product.get("name") if isinstance(product, dict) else None,
        )


@dataclass
class ReviewVote:
    """One user's helpfulness vote on a review."""

    review_id: str
    user_id: str
    is_helpful: bool

    def to_row(self) -> dict[str, Any]:
        """Row payload for the votes table."""
        return {
            "review_id": self.review_id,
            "user_id": self.user_id,
            "is_helpful": self.is_helpful,
        }


# ============================================================================
# Users
# ============================================================================


@dataclass
class Profile:
    """Mirror of a user's identity with the role enum."""

    id: str
    email: str
    full_name: str | None = None
    avatar_url: str | None = None
    bio: str | None = None
    role: UserRole = UserRole.USER
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Profile":
        """Create from a backend row."""
        return cls(
            id=str(row["id"]),
            email=row.get("email") or "",
            full_name=row.get("full_name"),
            avatar_url=row.get("avatar_url"),
            bio=row.get("bio"),
            role=UserRole(row.get("role") or UserRole.USER.value),
            created_at=parse_datetime(row.get("created_at")),
            updated_at=parse_datetime(row.get("updated_at")),
        )


@dataclass
class AuthUser:
    """Signed-in user as reported by the backend's auth service."""

    id: str
    email: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    access_token: str | None = None

    @classmethod
    def from_payload(cls, data: dict[str, Any], access_token: str | None = None) -> "AuthUser":
        """Create from an auth ``user`` object."""
        return cls(
            id=str(data["id"]),
            email=data.get("email"),
            metadata=data.get("user_metadata") or {},
            access_token=access_token,
        )


@dataclass
class AuthSession:
    """Tokens returned by sign-in or OTP verification."""

    access_token: str
    refresh_token: str | None
    expires_in: int | None
    user: AuthUser | None

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "AuthSession":
        """Create from an auth token response."""
        user = data.get("user")
        token = data["access_token"]
        return cls(
            access_token=token,
            refresh_token=data.get("refresh_token"),
            expires_in=data.get("expires_in"),
            user=AuthUser.from_payload(user, token) if isinstance(user, dict) else None,
        )


# ============================================================================
# Aggregates
# ============================================================================


@dataclass(frozen=True)
class PlatformStats:
    """Platform counters computed on demand by the backend."""

    total_visitors: int = 0
    total_products: int = 0
    total_shops: int = 0
    total_reviews: int = 0
    total_users: int = 0

    @classmethod
    def zero(cls) -> "PlatformStats":
        """Fallback used when the aggregate cannot be fetched."""
        return cls()

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "PlatformStats":
        """Create from the aggregate RPC result."""
        return cls(
            total_visitors=int(data.get("total_visitors") or 0),
            total_products=int(data.get("total_products") or 0),
            total_shops=int(data.get("total_shops") or 0),
            total_reviews=int(data.get("total_reviews") or 0),
            total_users=int(data.get("total_users") or 0),
        )
