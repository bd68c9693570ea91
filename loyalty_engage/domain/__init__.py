"""Domain layer - value objects, outbound messages, rules and errors.

This module exports the core domain building blocks:

- **Messages**: Immutable notifications for the loyalty API (Purchase, Return,
  FreeProductPurchase, FreeProductRemove)
- **Value Objects**: ProductLine, LoyaltyProfile
- **Rules**: Tier / points / coins predicates over a loyalty profile
- **Exceptions**: Validation errors raised before any remote call

Example usage:
    from loyalty_engage.domain import ProductLine, PurchaseMessage

    message = PurchaseMessage(
        email="jane@example.com",
        order_id="10001",
        order_date="2026-01-20T10:00:00+00:00",
        products=(ProductLine(sku="SKU-1", quantity=2, price=Decimal("9.99")),),
    )
    message.to_payload()  # [{"event": "Purchase", ...}]
"""

from loyalty_engage.domain.base import LoyaltyMessage, ValueObject
from loyalty_engage.domain.exceptions import (
    DomainError,
    InvalidEmailError,
    InvalidQuantityError,
    MissingProductError,
    UnknownMessageTypeError,
    ValidationError,
)
from loyalty_engage.domain.messages import (
    FreeProductPurchaseMessage,
    FreeProductRemoveMessage,
    PurchaseMessage,
    ReturnMessage,
)
from loyalty_engage.domain.rules import (
    CustomerCoinsRule,
    CustomerPointsRule,
    CustomerRule,
    CustomerTierRule,
    RuleOperator,
    build_rule,
)
from loyalty_engage.domain.value_objects import (
    LoyaltyProfile,
    ProductLine,
    is_valid_email,
    validate_email,
)

__all__ = [
    # Base
    "LoyaltyMessage",
    "ValueObject",
    # Messages
    "FreeProductPurchaseMessage",
    "FreeProductRemoveMessage",
    "PurchaseMessage",
    "ReturnMessage",
    # Value objects
    "LoyaltyProfile",
    "ProductLine",
    "is_valid_email",
    "validate_email",
    # Rules
    "CustomerCoinsRule",
    "CustomerPointsRule",
    "CustomerRule",
    "CustomerTierRule",
    "RuleOperator",
    "build_rule",
    # Exceptions
    "DomainError",
    "InvalidEmailError",
    "InvalidQuantityError",
    "MissingProductError",
    "UnknownMessageTypeError",
    "ValidationError",
]
