"""Tests for domain state machines."""

import pytest

from techspec.domain import ReviewStatus, ShopStatus, StockStatus
from techspec.domain.exceptions import InvalidStateTransitionError
from techspec.domain.state_machines import (
    validate_review_transition,
    validate_shop_transition,
)


class TestReviewStatus:
    """Tests for ReviewStatus state machine."""

    def test_pending_can_be_approved(self) -> None:
        """PENDING can transition to APPROVED."""
        assert ReviewStatus.PENDING.can_transition_to(ReviewStatus.APPROVED)

    def test_pending_can_be_rejected(self) -> None:
        """PENDING can transition to REJECTED."""
        assert ReviewStatus.PENDING.can_transition_to(ReviewStatus.REJECTED)

    def test_approved_cannot_be_rejected(self) -> None:
        """Moderation never goes backwards or sideways."""
        assert not ReviewStatus.APPROVED.can_transition_to(ReviewStatus.REJECTED)
        assert not ReviewStatus.REJECTED.can_transition_to(ReviewStatus.APPROVED)
        assert not ReviewStatus.APPROVED.can_transition_to(ReviewStatus.PENDING)

    def test_approved_and_rejected_are_terminal(self) -> None:
        assert ReviewStatus.APPROVED.is_terminal()
        assert ReviewStatus.REJECTED.is_terminal()
        assert ReviewStatus.APPROVED.allowed_transitions() == []

    def test_pending_allowed_transitions(self) -> None:
        assert ReviewStatus.PENDING.allowed_transitions() == [
            ReviewStatus.APPROVED,
            ReviewStatus.REJECTED,
        ]

    def test_only_approved_is_public(self) -> None:
        assert ReviewStatus.APPROVED.is_public()
        assert not ReviewStatus.PENDING.is_public()
        assert not ReviewStatus.REJECTED.is_public()


class TestShopStatus:
    """Tests for ShopStatus state machine."""

    def test_pending_can_be_approved_or_rejected(self) -> None:
        assert ShopStatus.PENDING.can_transition_to(ShopStatus.APPROVED)
        assert ShopStatus.PENDING.can_transition_to(ShopStatus.REJECTED)

    def test_pending_cannot_be_suspended(self) -> None:
        """No operation leads to SUSPENDED."""
        assert not ShopStatus.PENDING.can_transition_to(ShopStatus.SUSPENDED)

    def test_decided_shops_are_terminal(self) -> None:
        for status in (ShopStatus.APPROVED, ShopStatus.REJECTED, ShopStatus.SUSPENDED):
            assert status.is_terminal()


class TestStockStatus:
    def test_labels(self) -> None:
        assert StockStatus.IN_STOCK.label == "In Stock"
        assert StockStatus.OUT_OF_STOCK.label == "Out of Stock"
        assert StockStatus.PRE_ORDER.label == "Pre-Order"


class TestValidationHelpers:
    """Tests for transition validation helpers."""

    def test_valid_review_transition_passes(self) -> None:
        validate_review_transition("review-1", ReviewStatus.PENDING, ReviewStatus.APPROVED)

    def test_invalid_review_transition_raises(self) -> None:
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            validate_review_transition(
                "review-1", ReviewStatus.APPROVED, ReviewStatus.REJECTED
            )

        error = exc_info.value
        assert error.details["entity_type"] == "Review"
        assert error.details["entity_id"] == "review-1"
        assert error.details["current_state"] == "approved"
        assert error.details["target_state"] == "rejected"
        assert error.details["allowed_transitions"] == []

    def test_invalid_shop_transition_raises(self) -> None:
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            validate_shop_transition("shop-1", ShopStatus.REJECTED, ShopStatus.APPROVED)

        assert exc_info.value.details["entity_type"] == "Shop"
        assert "Cannot transition Shop(shop-1)" in exc_info.value.message
