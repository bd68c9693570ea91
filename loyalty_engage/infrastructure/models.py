"""SQLAlchemy models for database tables.

Provides ORM models for customers, loyalty carts, orders mirrored for
loyalty placement, deliveries and promotions.
"""

from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import relationship

from loyalty_engage.infrastructure.database import Base

PRODUCT_LINE_ITEM = "product"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


# ============================================================================
# Customer Models
# ============================================================================


class CustomerModel(Base):
    """Customer with the loyalty fields mirrored from the loyalty API."""

    __tablename__ = "customers"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    email = Column(String(255), nullable=False, unique=True, index=True)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)

    # Loyalty fields
    le_current_tier = Column(String(100), nullable=True)
    le_points = Column(Integer, nullable=True)
    le_available_coins = Column(Integer, nullable=True)
    le_next_tier = Column(String(100), nullable=True)
    le_points_to_next_tier = Column(Integer, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    # Relationships
    carts = relationship("LoyaltyCartModel", back_populates="customer")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "le_current_tier": self.le_current_tier,
            "le_points": self.le_points,
            "le_available_coins": self.le_available_coins,
            "le_next_tier": self.le_next_tier,
            "le_points_to_next_tier": self.le_points_to_next_tier,
        }


# ============================================================================
# Loyalty Cart Models
# ============================================================================


class LoyaltyCartModel(Base):
    """Storefront cart holding loyalty (free) items.

    A cart stays active until its remote counterpart has been cleared.
    """

    __tablename__ = "loyalty_carts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    customer_id = Column(
        String(36),
        ForeignKey("customers.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    active = Column(Boolean, nullable=False, default=True, index=True)
    expiry_attempts = Column(Integer, nullable=False, default=0)
    promotion_code = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    # Relationships
    customer = relationship("CustomerModel", back_populates="carts")
    items = relationship(
        "LoyaltyCartItemModel",
        back_populates="cart",
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "active": self.active,
            "expiry_attempts": self.expiry_attempts,
            "promotion_code": self.promotion_code,
            "created_at": _isoformat(self.created_at),
        }


class LoyaltyCartItemModel(Base):
    """Item in a loyalty cart."""

    __tablename__ = "loyalty_cart_items"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    cart_id = Column(
        String(36),
        ForeignKey("loyalty_carts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id = Column(String(100), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(Numeric(12, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    # Relationships
    cart = relationship("LoyaltyCartModel", back_populates="items")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price": float(self.unit_price or 0),
        }


# ============================================================================
# Order Models
# ============================================================================


class OrderModel(Base):
    """Order mirrored for loyalty placement.

    Tracks whether the loyalty cart purchase was confirmed and how many
    placement attempts were made.
    """

    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    order_number = Column(String(100), nullable=False, index=True)
    customer_email = Column(String(255), nullable=True)
    order_date = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    # Loyalty placement
    loyalty_order_place = Column(Boolean, nullable=False, default=False, index=True)
    loyalty_order_place_retrieve = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    # Relationships
    line_items = relationship(
        "OrderLineItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
    )
    deliveries = relationship(
        "OrderDeliveryModel",
        back_populates="order",
        cascade="all, delete-orphan",
    )

    def product_line_items(self) -> list["OrderLineItemModel"]:
        """Line items of type `product`."""
        return [item for item in self.line_items if item.type == PRODUCT_LINE_ITEM]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "order_number": self.order_number,
            "customer_email": self.customer_email,
            "order_date": _isoformat(self.order_date),
            "loyalty_order_place": self.loyalty_order_place,
            "loyalty_order_place_retrieve": self.loyalty_order_place_retrieve,
        }


class OrderLineItemModel(Base):
    """Line item of an order.

    Only `product` items carry loyalty-relevant products; free items
    have a unit price of zero.
    """

    __tablename__ = "order_line_items"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    order_id = Column(
        String(36),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type = Column(String(50), nullable=False, default=PRODUCT_LINE_ITEM)
    product_id = Column(String(100), nullable=True)
    unit_price = Column(Numeric(12, 2), nullable=False, default=0)
    quantity = Column(Integer, nullable=False, default=1)

    # Relationships
    order = relationship("OrderModel", back_populates="line_items")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "type": self.type,
            "product_id": self.product_id,
            "unit_price": float(self.unit_price or 0),
            "quantity": self.quantity,
        }


class OrderDeliveryModel(Base):
    """Delivery of an order; `returned` deliveries trigger a Return event."""

    __tablename__ = "order_deliveries"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    order_id = Column(
        String(36),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    state = Column(String(50), nullable=False, default="open")

    # Relationships
    order = relationship("OrderModel", back_populates="deliveries")


# ============================================================================
# Promotion Models
# ============================================================================


class PromotionModel(Base):
    """Promotion created from a claimed loyalty discount code."""

    __tablename__ = "promotions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    code = Column(String(100), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    discount_percent = Column(Numeric(5, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "active": self.active,
            "discount_percent": float(self.discount_percent),
        }
