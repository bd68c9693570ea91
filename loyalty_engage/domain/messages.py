"""Outbound loyalty messages.

Each message describes one notification for the Loyalty Engage API and
knows how to render its own wire payload. Messages are validated on
construction so that invalid input never reaches the dispatch queue.
"""

from dataclasses import dataclass, field
from typing import Any

from loyalty_engage.domain.base import LoyaltyMessage
from loyalty_engage.domain.exceptions import InvalidQuantityError, MissingProductError
from loyalty_engage.domain.value_objects import ProductLine, validate_email


def _as_product_lines(products: Any) -> tuple[ProductLine, ...]:
    """Normalize a product sequence into a tuple of ProductLine."""
    return tuple(
        p if isinstance(p, ProductLine) else ProductLine.from_dict(p)
        for p in products
    )


@dataclass(frozen=True)
class PurchaseMessage(LoyaltyMessage):
    """A completed order, reported as a `Purchase` event.

    Attributes:
        order_id: Storefront order number.
        order_date: ISO-8601 order timestamp.
        products: Ordered products with price and quantity.
    """

    event_type = "Purchase"

    order_id: str
    order_date: str
    products: tuple[ProductLine, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "email", validate_email(self.email))
        object.__setattr__(self, "products", _as_product_lines(self.products))

    @property
    def correlation_id(self) -> str:
        return self.order_id

    def to_payload(self) -> list[dict[str, Any]]:
        return [
            {
                "event": self.event_type,
                "email": self.email,
                "orderId": self.order_id,
                "orderDate": self.order_date,
                "products": [p.to_dict() for p in self.products],
            }
        ]


@dataclass(frozen=True)
class ReturnMessage(LoyaltyMessage):
    """A returned delivery, reported as a `Return` event.

    The remote API reads the return date from the `orderDate` field.
    """

    event_type = "Return"

    return_date: str
    products: tuple[ProductLine, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "email", validate_email(self.email))
        object.__setattr__(self, "products", _as_product_lines(self.products))

    @property
    def correlation_id(self) -> str:
        return self.return_date

    def to_payload(self) -> list[dict[str, Any]]:
        return [
            {
                "event": self.event_type,
                "email": self.email,
                "orderDate": self.return_date,
                "products": [p.to_dict() for p in self.products],
            }
        ]


@dataclass(frozen=True)
class FreeProductPurchaseMessage(LoyaltyMessage):
    """Free (loyalty-redeemed) items of a completed order."""

    event_type = "FreeProductPurchase"

    order_id: str
    products: tuple[ProductLine, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "email", validate_email(self.email))
        lines = tuple(
            ProductLine(sku=p.sku, quantity=p.quantity)
            for p in _as_product_lines(self.products)
        )
        object.__setattr__(self, "products", lines)

    @property
    def correlation_id(self) -> str:
        return self.order_id

    def to_payload(self) -> dict[str, Any]:
        """Body of the cart purchase call."""
        return {
            "orderId": self.order_id,
            "products": [p.to_dict() for p in self.products],
        }


@dataclass(frozen=True)
class FreeProductRemoveMessage(LoyaltyMessage):
    """A free item removed from the storefront cart."""

    event_type = "FreeProductRemove"

    product_id: str
    quantity: int = 1

    def __post_init__(self) -> None:
        object.__setattr__(self, "email", validate_email(self.email))
        if not self.product_id or not self.product_id.strip():
            raise MissingProductError("free product removal")
        if self.quantity <= 0:
            raise InvalidQuantityError(self.quantity)

    @property
    def correlation_id(self) -> str:
        return self.product_id

    def to_payload(self) -> dict[str, Any]:
        """Body of the cart remove call."""
        return {"sku": self.product_id, "quantity": self.quantity}
