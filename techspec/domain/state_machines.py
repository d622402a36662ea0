"""State machines and status enumerations for storefront rows.

Reviews and shops are created ``pending`` and only an admin can move
them forward. Products, stock and roles are plain enumerations with no
transition rules enforced on this side.
"""

from enum import Enum

from techspec.domain.exceptions import InvalidStateTransitionError


# ============================================================================
# Plain Enumerations
# ============================================================================


class ProductStatus(str, Enum):
    """Product lifecycle status."""

    ACTIVE = "active"
    UPCOMING = "upcoming"
    DISCONTINUED = "discontinued"


class StockStatus(str, Enum):
    """Availability of a product at a shop."""

    IN_STOCK = "in_stock"
    OUT_OF_STOCK = "out_of_stock"
    PRE_ORDER = "pre_order"

    @property
    def label(self) -> str:
        """Human-readable label."""
        return _STOCK_LABELS[self]


_STOCK_LABELS = {
    StockStatus.IN_STOCK: "In Stock",
    StockStatus.OUT_OF_STOCK: "Out of Stock",
    StockStatus.PRE_ORDER: "Pre-Order",
}


class UserRole(str, Enum):
    """Profile role controlling which affordances a user gets."""

    USER = "user"
    SHOP_OWNER = "shop_owner"
    ADMIN = "admin"


# ============================================================================
# Review State Machine
# ============================================================================


class ReviewStatus(str, Enum):
    """Review moderation states.

    State diagram:
        PENDING ──── approve ────► APPROVED
          │
          └──────── reject ─────► REJECTED

    Only APPROVED reviews are shown to end users.
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    def can_transition_to(self, target: "ReviewStatus") -> bool:
        """Check if transition to target state is valid.

        Args:
            target: Target state to transition to.

        Returns:
            True if transition is valid.
        """
        return target in _REVIEW_TRANSITIONS.get(self, set())

    def allowed_transitions(self) -> list["ReviewStatus"]:
        """Get list of valid target states."""
        return sorted(_REVIEW_TRANSITIONS.get(self, set()), key=lambda s: s.value)

    def is_terminal(self) -> bool:
        """Check if no further transitions are possible."""
        return len(_REVIEW_TRANSITIONS.get(self, set())) == 0

    def is_public(self) -> bool:
        """Check if reviews in this state are visible to end users."""
        return self == ReviewStatus.APPROVED


_REVIEW_TRANSITIONS: dict[ReviewStatus, set[ReviewStatus]] = {
    ReviewStatus.PENDING: {ReviewStatus.APPROVED, ReviewStatus.REJECTED},
    ReviewStatus.APPROVED: set(),  # Terminal state
    ReviewStatus.REJECTED: set(),  # Terminal state
}


# ============================================================================
# Shop State Machine
# ============================================================================


class ShopStatus(str, Enum):
    """Shop registration states.

    State diagram:
        PENDING ──── approve ────► APPROVED
          │
          └──────── reject ─────► REJECTED

    SUSPENDED exists in the backend schema but no operation leads to it.
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SUSPENDED = "suspended"

    def can_transition_to(self, target: "ShopStatus") -> bool:
        """Check if transition to target state is valid."""
        return target in _SHOP_TRANSITIONS.get(self, set())

    def allowed_transitions(self) -> list["ShopStatus"]:
        """Get list of valid target states."""
        return sorted(_SHOP_TRANSITIONS.get(self, set()), key=lambda s: s.value)

    def is_terminal(self) -> bool:
        """Check if no further transitions are possible."""
        return len(_SHOP_TRANSITIONS.get(self, set())) == 0


_SHOP_TRANSITIONS: dict[ShopStatus, set[ShopStatus]] = {
    ShopStatus.PENDING: {ShopStatus.APPROVED, ShopStatus.REJECTED},
    ShopStatus.APPROVED: set(),
    ShopStatus.REJECTED: set(),
    ShopStatus.SUSPENDED: set(),
}


# ============================================================================
# Validation Helpers
# ============================================================================


def validate_review_transition(
    review_id: str,
    current_status: ReviewStatus,
    target_status: ReviewStatus,
) -> None:
    """Validate and raise if review state transition is invalid.

    Args:
        review_id: Review identifier for error message.
        current_status: Current review status.
        target_status: Target review status.

    Raises:
        InvalidStateTransitionError: If transition is not valid.
    """
    if not current_status.can_transition_to(target_status):
        raise InvalidStateTransitionError(
            entity_type="Review",
            entity_id=review_id,
            current_state=current_status.value,
            target_state=target_status.value,
            allowed_transitions=[s.value for s in current_status.allowed_transitions()],
        )


def validate_shop_transition(
    shop_id: str,
    current_status: ShopStatus,
    target_status: ShopStatus,
) -> None:
    """Validate and raise if shop state transition is invalid.

    Args:
        shop_id: Shop identifier for error message.
        current_status: Current shop status.
        target_status: Target shop status.

    Raises:
        InvalidStateTransitionError: If transition is not valid.
    """
    if not current_status.can_transition_to(target_status):
        raise InvalidStateTransitionError(
            entity_type="Shop",
            entity_id=shop_id,
            current_state=current_status.value,
            target_state=target_status.value,
            allowed_transitions=[s.value for s in current_status.allowed_transitions()],
        )
