"""Tests for the loyalty table repositories."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from loyalty_engage.infrastructure.repositories import (
    CustomerRepository,
    LoyaltyCartRepository,
    OrderRepository,
    PromotionRepository,
)


class TestCustomerRepository:
    """Tests for CustomerRepository."""

    @pytest.mark.asyncio
    async def test_get_by_email(self, session, db_helpers) -> None:
        """Customers are found by exact email."""
        customer = await db_helpers.create_customer(session, "jane@example.com", le_points=10)
        repo = CustomerRepository(session)

        found = await repo.get_by_email("jane@example.com")
        assert found is not None
        assert found.id == customer.id
        assert await repo.get_by_email("other@example.com") is None


class TestLoyaltyCartRepository:
    """Tests for LoyaltyCartRepository."""

    @pytest.mark.asyncio
    async def test_find_expired_selects_old_active_owned_carts(self, session, db_helpers) -> None:
        """Only active carts with a customer older than the cutoff are selected."""
        customer = await db_helpers.create_customer(session, "jane@example.com")
        expired = await db_helpers.create_cart(session, customer, age_minutes=90)
        await db_helpers.create_cart(session, customer, age_minutes=30)
        await db_helpers.create_cart(session, customer, age_minutes=120, active=False)
        await db_helpers.create_cart(session, None, age_minutes=120)

        cutoff = datetime.now(timezone.utc) - timedelta(minutes=60)
        carts = await LoyaltyCartRepository(session).find_expired(cutoff)

        assert [c.id for c in carts] == [expired.id]
        assert carts[0].customer.email == "jane@example.com"

    @pytest.mark.asyncio
    async def test_find_expired_respects_retry_limit(self, session, db_helpers) -> None:
        """Carts at the retry limit are skipped only when a limit is set."""
        customer = await db_helpers.create_customer(session, "jane@example.com")
        await db_helpers.create_cart(session, customer, age_minutes=90, expiry_attempts=3)

        cutoff = datetime.now(timezone.utc) - timedelta(minutes=60)
        repo = LoyaltyCartRepository(session)

        assert len(await repo.find_expired(cutoff, retry_limit=0)) == 1
        assert len(await repo.find_expired(cutoff, retry_limit=3)) == 0
        assert len(await repo.find_expired(cutoff, retry_limit=4)) == 1

    @pytest.mark.asyncio
    async def test_items_add_remove_clear(self, session, db_helpers) -> None:
        """Items are added with zero price and removed one unit at a time."""
        customer = await db_helpers.create_customer(session, "jane@example.com")
        repo = LoyaltyCartRepository(session)
        cart = await repo.get_or_create_active(customer.id)

        await repo.add_item(cart, "FREE-1")
        await repo.add_item(cart, "FREE-1")
        await repo.add_item(cart, "FREE-2")
        assert {i.product_id: i.quantity for i in cart.items} == {"FREE-1": 2, "FREE-2": 1}
        assert all(i.unit_price == 0 for i in cart.items)

        assert await repo.remove_item(cart, "FREE-1")
        assert await repo.remove_item(cart, "FREE-2")
        assert not await repo.remove_item(cart, "FREE-3")
        assert {i.product_id: i.quantity for i in cart.items} == {"FREE-1": 1}

        assert await repo.clear_items(cart) == 1
        assert cart.items == []

    @pytest.mark.asyncio
    async def test_get_or_create_reuses_active_cart(self, session, db_helpers) -> None:
        """An existing active cart is returned instead of a new one."""
        customer = await db_helpers.create_customer(session, "jane@example.com")
        repo = LoyaltyCartRepository(session)

        first = await repo.get_or_create_active(customer.id)
        await session.commit()
        second = await repo.get_or_create_active(customer.id)

        assert first.id == second.id


class TestOrderRepository:
    """Tests for OrderRepository."""

    @pytest.mark.asyncio
    async def test_find_unplaced(self, session, db_helpers) -> None:
        """Placed orders and orders at the attempt limit are excluded."""
        pending = await db_helpers.create_order(session, order_number="1")
        await db_helpers.create_order(session, order_number="2", placed=True)
        await db_helpers.create_order(session, order_number="3", retrieve=5)
        retried = await db_helpers.create_order(session, order_number="4", retrieve=4)

        orders = await OrderRepository(session).find_unplaced(retrieve_limit=5)

        assert {o.id for o in orders} == {pending.id, retried.id}

    @pytest.mark.asyncio
    async def test_product_line_items(self, session, db_helpers) -> None:
        """Only product-type line items are loyalty products."""
        order = await db_helpers.create_order(
            session,
            items=[
                {"product_id": "SKU-1", "unit_price": "10", "quantity": 1},
                {"product_id": None, "unit_price": "-5", "quantity": 1, "type": "promotion"},
            ],
        )

        loaded = await OrderRepository(session).get_by_id(order.id)
        assert [i.product_id for i in loaded.product_line_items()] == ["SKU-1"]


class TestPromotionRepository:
    """Tests for PromotionRepository."""

    @pytest.mark.asyncio
    async def test_get_or_create_is_idempotent(self, session) -> None:
        """A code is created once and reused afterwards."""
        repo = PromotionRepository(session)

        first = await repo.get_or_create("LE-10", "Loyalty", Decimal("10"))
        second = await repo.get_or_create("LE-10", "Loyalty", Decimal("20"))

        assert first.id == second.id
        assert second.discount_percent == Decimal("10")
