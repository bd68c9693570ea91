"""Shared fixtures for loyalty connector tests."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from loyalty_engage.infrastructure.config import Settings
from loyalty_engage.infrastructure.database import Base, build_engine
from loyalty_engage.infrastructure.loyalty_client import LoyaltyEngageClient
from loyalty_engage.infrastructure.models import (
    CustomerModel,
    LoyaltyCartModel,
    OrderLineItemModel,
    OrderModel,
)


# ============================================================================
# Settings
# ============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Settings with test credentials and no .env lookup."""
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite://",
        tenant_id="tenant-1",
        bearer_token="secret-token",
        logger_enable=True,
        scheduler_enabled=False,
    )


# ============================================================================
# Database
# ============================================================================


@pytest_asyncio.fixture
async def session_factory():
    """In-memory SQLite database with all tables created."""
    engine = build_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def session(session_factory):
    """Session on the in-memory database."""
    async with session_factory() as session:
        yield session


async def create_customer(session: AsyncSession, email: str, **fields: Any) -> CustomerModel:
    """Insert a customer."""
    customer = CustomerModel(email=email, **fields)
    session.add(customer)
    await session.commit()
    return customer


async def create_cart(
    session: AsyncSession,
    customer: CustomerModel | None,
    age_minutes: int,
    active: bool = True,
    expiry_attempts: int = 0,
) -> LoyaltyCartModel:
    """Insert a loyalty cart created `age_minutes` ago."""
    cart = LoyaltyCartModel(
        customer_id=customer.id if customer is not None else None,
        active=active,
        expiry_attempts=expiry_attempts,
        created_at=datetime.now(timezone.utc) - timedelta(minutes=age_minutes),
    )
    session.add(cart)
    await session.commit()
    return cart


async def create_order(
    session: AsyncSession,
    order_number: str = "10001",
    email: str | None = "jane@example.com",
    items: list[dict[str, Any]] | None = None,
    placed: bool = False,
    retrieve: int = 0,
) -> OrderModel:
    """Insert an order with line items.

    Items are `{product_id, unit_price, quantity, type?}` mappings.
    """
    if items is None:
        items = [{"product_id": "SKU-1", "unit_price": "19.99", "quantity": 2}]

    order = OrderModel(
        order_number=order_number,
        customer_email=email,
        order_date=datetime(2026, 1, 20, 10, 0, tzinfo=timezone.utc),
        loyalty_order_place=placed,
        loyalty_order_place_retrieve=retrieve,
        line_items=[
            OrderLineItemModel(
                type=item.get("type", "product"),
                product_id=item.get("product_id"),
                unit_price=Decimal(str(item.get("unit_price", 0))),
                quantity=item.get("quantity", 1),
            )
            for item in items
        ],
    )
    session.add(order)
    await session.commit()
    return order


@pytest.fixture
def db_helpers():
    """Helpers for inserting test rows."""
    return SimpleNamespace(
        create_customer=create_customer,
        create_cart=create_cart,
        create_order=create_order,
    )


# ============================================================================
# Loyalty Client
# ============================================================================


@pytest.fixture
def mock_client() -> MagicMock:
    """Loyalty client whose remote calls all answer 200."""
    client = MagicMock(spec=LoyaltyEngageClient)
    client.add_to_cart = AsyncMock(return_value=200)
    client.remove_item = AsyncMock(return_value=200)
    client.remove_all_items = AsyncMock(return_value=200)
    client.place_order = AsyncMock(return_value=200)
    client.send_event = AsyncMock(return_value=200)
    client.claim_discount = AsyncMock(
        return_value={"discountCode": "LE-CODE-10", "discount": 0.1}
    )
    return client
