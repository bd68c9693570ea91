"""Value Objects for the domain layer.

Value objects are immutable objects that are defined by their attributes
rather than identity. They are interchangeable when their values are equal.
"""

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Self

from loyalty_engage.domain.base import ValueObject
from loyalty_engage.domain.exceptions import (
    InvalidEmailError,
    InvalidQuantityError,
    MissingProductError,
)

_EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}$")


def is_valid_email(email: str | None) -> bool:
    """Check whether a string looks like an email address.

    Args:
        email: Candidate address.

    Returns:
        True if the address matches the expected shape.
    """
    if not email:
        return False
    return _EMAIL_PATTERN.match(email.strip()) is not None


def validate_email(email: str | None) -> str:
    """Validate and normalize an email address.

    Args:
        email: Candidate address.

    Returns:
        The stripped address.

    Raises:
        InvalidEmailError: If the address is missing or malformed.
    """
    if not is_valid_email(email):
        raise InvalidEmailError(email)
    return email.strip()


# ============================================================================
# Product Line
# ============================================================================


@dataclass(frozen=True)
class ProductLine(ValueObject):
    """One product entry in a loyalty notification.

    Attributes:
        sku: Product identifier as known to the loyalty API.
        quantity: Number of units, always positive.
        price: Unit price; omitted from the payload when not known.
    """

    sku: str
    quantity: int
    price: Decimal | None = None

    def __post_init__(self) -> None:
        """Validate product line fields."""
        if not self.sku or not str(self.sku).strip():
            raise MissingProductError("product line")
        if self.quantity <= 0:
            raise InvalidQuantityError(self.quantity)
        if self.price is not None and not isinstance(self.price, Decimal):
            object.__setattr__(self, "price", Decimal(str(self.price)))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create from a `{sku, quantity, price?}` mapping.

        Args:
            data: Product mapping.

        Returns:
            ProductLine instance.
        """
        price = data.get("price")
        return cls(
            sku=str(data.get("sku") or ""),
            quantity=int(data.get("quantity", 0)),
            price=Decimal(str(price)) if price is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the wire shape.

        Returns:
            Mapping with sku, quantity and, when known, price as a number.
        """
        data: dict[str, Any] = {"sku": self.sku}
        if self.price is not None:
            data["price"] = float(self.price)
        data["quantity"] = self.quantity
        return data


# ============================================================================
# Loyalty Profile
# ============================================================================


@dataclass(frozen=True)
class LoyaltyProfile(ValueObject):
    """Loyalty state of a customer as last reported by the loyalty API.

    Attributes:
        current_tier: Opaque tier name (e.g. "Gold").
        points: Points balance.
        available_coins: Coins that can be spent on rewards.
        next_tier: Tier reached next, if any.
        points_to_next_tier: Points missing for the next tier.
    """

    current_tier: str | None = None
    points: int | None = None
    available_coins: int | None = None
    next_tier: str | None = None
    points_to_next_tier: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the storefront custom field names.

        Returns:
            Mapping with defaults applied to missing numbers.
        """
        return {
            "le_current_tier": self.current_tier,
            "le_points": self.points or 0,
            "le_available_coins": self.available_coins or 0,
            "le_next_tier": self.next_tier,
            "le_points_to_next_tier": self.points_to_next_tier or 0,
        }
