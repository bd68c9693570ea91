"""Repositories for loyalty tables.

Provide the queries used by the services and sweeps. Repositories
flush but never commit; the caller owns the transaction.
"""

from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal

from sqlalchemy import and_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from loyalty_engage.infrastructure.models import (
    CustomerModel,
    LoyaltyCartItemModel,
    LoyaltyCartModel,
    OrderDeliveryModel,
    OrderModel,
    PromotionModel,
)


class CustomerRepository:
    """Repository for customers and their loyalty fields."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self.session = session

    async def save(self, customer: CustomerModel) -> CustomerModel:
        """Save a customer to database."""
        self.session.add(customer)
        await self.session.flush()
        return customer

    async def get_by_id(self, customer_id: str) -> CustomerModel | None:
        """Get customer by ID."""
        result = await self.session.execute(
            select(CustomerModel).where(CustomerModel.id == customer_id)
        )
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> CustomerModel | None:
        """Get customer by email.

        Args:
            email: Customer email, matched exactly.

        Returns:
            Customer if found, None otherwise.
        """
        result = await self.session.execute(
            select(CustomerModel).where(CustomerModel.email == email)
        )
        return result.scalar_one_or_none()


class LoyaltyCartRepository:
    """Repository for loyalty carts and their items."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self.session = session

    async def save(self, cart: LoyaltyCartModel) -> LoyaltyCartModel:
        """Save a cart to database."""
        self.session.add(cart)
        await self.session.flush()
        return cart

    async def get_active_for_customer(self, customer_id: str) -> LoyaltyCartModel | None:
        """Get the newest active cart of a customer, with items loaded."""
        query = (
            select(LoyaltyCartModel)
            .where(
                and_(
                    LoyaltyCartModel.customer_id == customer_id,
                    LoyaltyCartModel.active.is_(True),
                )
            )
            .options(selectinload(LoyaltyCartModel.items))
            .order_by(LoyaltyCartModel.created_at.desc())
            .limit(1)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_or_create_active(self, customer_id: str) -> LoyaltyCartModel:
        """Get the customer's active cart, creating one on demand."""
        cart = await self.get_active_for_customer(customer_id)
        if cart is not None:
            return cart

        cart = LoyaltyCartModel(customer_id=customer_id, active=True, items=[])
        return await self.save(cart)

    async def find_expired(
        self,
        cutoff: datetime,
        retry_limit: int = 0,
    ) -> Sequence[LoyaltyCartModel]:
        """Find carts due for remote clearing.

        Args:
            cutoff: Carts created at or before this instant are expired.
            retry_limit: When positive, carts with this many failed
                clearing attempts are skipped.

        Returns:
            Active carts owned by a customer, oldest first.
        """
        conditions = [
            LoyaltyCartModel.created_at <= cutoff,
            LoyaltyCartModel.customer_id.is_not(None),
            LoyaltyCartModel.active.is_(True),
        ]
        if retry_limit > 0:
            conditions.append(LoyaltyCartModel.expiry_attempts < retry_limit)

        query = (
            select(LoyaltyCartModel)
            .where(and_(*conditions))
            .options(selectinload(LoyaltyCartModel.customer))
            .order_by(LoyaltyCartModel.created_at)
        )
        result = await self.session.execute(query)
        return result.scalars().all()

    async def get_with_customer(self, cart_id: str) -> LoyaltyCartModel | None:
        """Get cart by ID with its customer loaded."""
        query = (
            select(LoyaltyCartModel)
            .where(LoyaltyCartModel.id == cart_id)
            .options(selectinload(LoyaltyCartModel.customer))
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def add_item(
        self,
        cart: LoyaltyCartModel,
        product_id: str,
        quantity: int = 1,
        unit_price: Decimal = Decimal("0"),
    ) -> LoyaltyCartItemModel:
        """Add a product to a cart.

        Loyalty items are zero-priced; adding an existing product bumps
        its quantity.
        """
        for item in cart.items:
            if item.product_id == product_id:
                item.quantity += quantity
                await self.session.flush()
                return item

        item = LoyaltyCartItemModel(
            cart_id=cart.id,
            product_id=product_id,
            quantity=quantity,
            unit_price=unit_price,
        )
        cart.items.append(item)
        await self.session.flush()
        return item

    async def remove_item(self, cart: LoyaltyCartModel, product_id: str) -> bool:
        """Remove one unit of a product from a cart.

        Returns:
            True if the product was in the cart.
        """
        for item in list(cart.items):
            if item.product_id == product_id:
                if item.quantity > 1:
                    item.quantity -= 1
                else:
                    cart.items.remove(item)
                await self.session.flush()
                return True
        return False

    async def clear_items(self, cart: LoyaltyCartModel) -> int:
        """Remove every item of a cart.

        Returns:
            Number of removed items.
        """
        removed = len(cart.items)
        cart.items.clear()
        await self.session.flush()
        return removed


class OrderRepository:
    """Repository for orders mirrored for loyalty placement."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self.session = session

    async def save(self, order: OrderModel) -> OrderModel:
        """Save an order to database."""
        self.session.add(order)
        await self.session.flush()
        return order

    async def get_by_id(self, order_id: str) -> OrderModel | None:
        """Get order by ID with line items loaded."""
        query = (
            select(OrderModel)
            .where(OrderModel.id == order_id)
            .options(selectinload(OrderModel.line_items))
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def find_unplaced(self, retrieve_limit: int) -> Sequence[OrderModel]:
        """Find orders whose loyalty purchase still needs confirming.

        Args:
            retrieve_limit: Orders with this many attempts are excluded.

        Returns:
            Unplaced orders under the attempt limit, oldest first.
        """
        query = (
            select(OrderModel)
            .where(
                and_(
                    OrderModel.loyalty_order_place.is_(False),
                    OrderModel.loyalty_order_place_retrieve < retrieve_limit,
                )
            )
            .options(selectinload(OrderModel.line_items))
            .order_by(OrderModel.created_at)
        )
        result = await self.session.execute(query)
        return result.scalars().all()

    async def increment_place_attempts(self, order_id: str) -> None:
        """Count one failed placement attempt without loading the order."""
        await self.session.execute(
            update(OrderModel)
            .where(OrderModel.id == order_id)
            .values(
                loyalty_order_place_retrieve=OrderModel.loyalty_order_place_retrieve + 1
            )
        )

    async def get_delivery(self, delivery_id: str) -> OrderDeliveryModel | None:
        """Get a delivery with its order and the order's line items."""
        query = (
            select(OrderDeliveryModel)
            .where(OrderDeliveryModel.id == delivery_id)
            .options(
                selectinload(OrderDeliveryModel.order).selectinload(OrderModel.line_items)
            )
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()


class PromotionRepository:
    """Repository for promotions created from discount codes."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self.session = session

    async def get_by_code(self, code: str) -> PromotionModel | None:
        """Get promotion by code."""
        result = await self.session.execute(
            select(PromotionModel).where(PromotionModel.code == code)
        )
        return result.scalar_one_or_none()

    async def get_or_create(
        self,
        code: str,
        name: str,
        discount_percent: Decimal,
    ) -> PromotionModel:
        """Get a promotion by code, creating an active one if missing."""
        promotion = await self.get_by_code(code)
        if promotion is not None:
            return promotion

        promotion = PromotionModel(
            code=code,
            name=name,
            active=True,
            discount_percent=discount_percent,
        )
        self.session.add(promotion)
        await self.session.flush()
        return promotion
