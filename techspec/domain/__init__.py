"""Domain layer - Entities, state machines and exceptions.

This module exports the storefront's domain building blocks:

- **Entities**: Row mirrors of the backend service (Product, Shop, Review, ...)
- **State Machines**: Forward-only moderation (ReviewStatus, ShopStatus)
- **Exceptions**: Domain-specific errors and failed backend calls

Example usage:
    from techspec.domain import ReviewStatus, slugify

    slugify("Pixel 9 Pro")  # "pixel-9-pro"
    ReviewStatus.PENDING.can_transition_to(ReviewStatus.APPROVED)  # True
"""

from techspec.domain.entities import (
    AuthSession,
    AuthUser,
    Category,
    PlatformStats,
    Product,
    Profile,
    Review,
    ReviewVote,
    Shop,
    ShopProduct,
    slugify,
)
from techspec.domain.exceptions import (
    BackendCallError,
    ConfigurationError,
    ConflictError,
    DomainError,
    InvalidStateTransitionError,
    NotAuthenticatedError,
    NotFoundError,
    ValidationFailedError,
)
from techspec.domain.state_machines import (
    ProductStatus,
    ReviewStatus,
    ShopStatus,
    StockStatus,
    UserRole,
    validate_review_transition,
    validate_shop_transition,
)

__all__ = [
    # Entities
    "AuthSession",
    "AuthUser",
    "Category",
    "PlatformStats",
    "Product",
    "Profile",
    "Review",
    "ReviewVote",
    "Shop",
    "ShopProduct",
    "slugify",
    # State machines
    "ProductStatus",
    "ReviewStatus",
    "ShopStatus",
    "StockStatus",
    "UserRole",
    "validate_review_transition",
    "validate_shop_transition",
    # Exceptions
    "BackendCallError",
    "ConfigurationError",
    "ConflictError",
    "DomainError",
    "InvalidStateTransitionError",
    "NotAuthenticatedError",
    "NotFoundError",
    "ValidationFailedError",
]
