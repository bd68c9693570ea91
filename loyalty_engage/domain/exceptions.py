"""Domain exceptions.

All domain-level errors that represent business rule violations.
These exceptions are raised when value objects or messages are
constructed from invalid input, before any remote call is attempted.
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
# Validation Errors
# ============================================================================


class ValidationError(DomainError):
    """Base class for input validation errors."""

    pass


class InvalidEmailError(ValidationError):
    """Raised when a customer email is missing or malformed."""

    def __init__(self, email: str | None) -> None:
        """Initialize invalid email error.

        Args:
            email: The rejected email value.
        """
        super().__init__(
            f"Invalid email address: {email!r}",
            details={"email": email},
        )


class MissingProductError(ValidationError):
    """Raised when a product reference has no identifier."""

    def __init__(self, context: str = "product") -> None:
        """Initialize missing product error.

        Args:
            context: Where the product id was expected.
        """
        super().__init__(
            f"Missing product id for {context}",
            details={"context": context},
        )


class InvalidQuantityError(ValidationError):
    """Raised when an invalid quantity is provided."""

    def __init__(self, quantity: int, reason: str = "Quantity must be positive") -> None:
        """Initialize invalid quantity error.

        Args:
            quantity: The invalid quantity value.
            reason: Explanation of why the quantity is invalid.
        """
        super().__init__(
            f"Invalid quantity {quantity}: {reason}",
            details={"quantity": quantity, "reason": reason},
        )


class UnknownMessageTypeError(DomainError):
    """Raised when no handler is registered for a message type."""

    def __init__(self, message_type: str) -> None:
        """Initialize unknown message type error.

        Args:
            message_type: Name of the unhandled message class.
        """
        super().__init__(
            f"No handler registered for message type '{message_type}'",
            details={"message_type": message_type},
        )
