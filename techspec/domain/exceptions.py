"""Domain exceptions.

All domain-level errors that represent business rule violations or
failed calls to the backend service. Application services raise these;
the API layer maps them to HTTP responses.
"""

from typing import Any


class DomainError(Exception):
    """Base class for all domain exceptions.

    All domain errors should inherit from this class to allow
    catching domain-specific errors at the application layer.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize domain error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================================
# State Machine Errors
# ============================================================================


class InvalidStateTransitionError(DomainError):
    """Raised when an invalid state transition is attempted.

    Reviews and shops only move forward out of ``pending``; anything
    else ends up here.
    """

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_state: str,
        target_state: str,
        allowed_transitions: list[str] | None = None,
    ) -> None:
        """Initialize invalid state transition error.

        Args:
            entity_type: Type of entity (e.g., "Review", "Shop").
            entity_id: ID of the entity.
            current_state: Current state of the entity.
            target_state: Attempted target state.
            allowed_transitions: List of allowed target states from current state.
        """
        allowed = allowed_transitions or []
        message = (
            f"Cannot transition {entity_type}({entity_id}) "
            f"from '{current_state}' to '{target_state}'. "
            f"Allowed transitions: {allowed}"
        )
        super().__init__(
            message,
            details={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "current_state": current_state,
                "target_state": target_state,
                "allowed_transitions": allowed,
            },
        )


# ============================================================================
# Request Errors
# ============================================================================


class NotAuthenticatedError(DomainError):
    """Raised when an operation needs a signed-in user and there is none."""

    def __init__(self, action: str = "perform this action") -> None:
        """Initialize not authenticated error.

        Args:
            action: What the caller tried to do.
        """
        super().__init__(
            f"Must be logged in to {action}",
            details={"action": action},
        )


class ValidationFailedError(DomainError):
    """Raised when user input fails local validation."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, details={"field": field} if field else {})
        self.field = field


class NotFoundError(DomainError):
    """Raised when a row does not exist."""

    def __init__(self, entity_type: str, key: str) -> None:
        super().__init__(
            f"{entity_type} {key} not found",
            details={"entity_type": entity_type, "key": key},
        )


class ConflictError(DomainError):
    """Raised when a conditional write matched no row."""

    pass


# ============================================================================
# Backend Errors
# ============================================================================


class ConfigurationError(DomainError):
    """Raised when the backend service secrets are missing."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(
            "Missing backend configuration: " + ", ".join(missing),
            details={"missing": missing},
        )


class BackendCallError(DomainError):
    """Raised when a call to the backend service failed.

    The backend's own message is kept verbatim so it can be shown to
    the user.
    """

    def __init__(
        self,
        message: str,
        error_code: str = "BACKEND_ERROR",
        status_code: int = 502,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize backend call error.

        Args:
            message: Message returned by the backend.
            error_code: Backend error code.
            status_code: HTTP status the backend answered with.
            details: Extra context from the backend.
        """
        super().__init__(message, details=details)
        self.error_code = error_code
        self.status_code = status_code
