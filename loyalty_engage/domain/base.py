"""Base classes for domain layer.

Provides foundational abstractions for value objects and the
outbound loyalty messages.
"""

import hashlib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar


# ============================================================================
# Value Object Base
# ============================================================================


@dataclass(frozen=True)
class ValueObject(ABC):
    """Base class for value objects.

    Value objects are immutable and compared by their attributes,
    not by identity. They have no lifecycle and are interchangeable
    when their values are equal.

    Example:
        @dataclass(frozen=True)
        class ProductLine(ValueObject):
            sku: str
            quantity: int
    """

    pass


# ============================================================================
# Loyalty Message Base
# ============================================================================


@dataclass(frozen=True)
class LoyaltyMessage(ABC):
    """Base class for outbound loyalty notifications.

    A message describes one notification for the remote loyalty API.
    It is immutable once constructed, and its wire payload is a pure
    function of its fields.

    Attributes:
        event_type: Event name used on the wire (set by subclass).
        email: Customer email the notification belongs to.
    """

    event_type: ClassVar[str]

    email: str

    @property
    @abstractmethod
    def correlation_id(self) -> str:
        """Identifier used to correlate logs and deduplicate deliveries.

        Returns:
            Order id, product id or date depending on the message type.
        """

    @property
    def idempotency_key(self) -> str:
        """Deterministic key for the remote call carrying this message.

        Returns:
            SHA-256 hex digest of event type, correlation id and email.
        """
        raw = f"{self.event_type}:{self.correlation_id}:{self.email}"
        return hashlib.sha256(raw.encode()).hexdigest()

    @abstractmethod
    def to_payload(self) -> Any:
        """Build the JSON body sent to the remote loyalty API.

        Returns:
            JSON-serializable payload.
        """

    def log_context(self) -> dict[str, Any]:
        """Get key-value context for structured logging.

        Returns:
            Dictionary with message type, email and correlation id.
        """
        return {
            "message_type": self.event_type,
            "email": self.email,
            "correlation_id": self.correlation_id,
        }
