"""Fixtures for API tests.

Each request of a TestClient may run on its own event loop, so the API
tests use a file database without connection pooling.
"""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from loyalty_engage.api.dependencies import (
    get_cart_expiry,
    get_client,
    get_db_session,
    get_order_place,
    get_subscriber,
)
from loyalty_engage.application.dispatch import DispatchQueue
from loyalty_engage.application.subscribers import LoyaltyEventSubscriber
from loyalty_engage.application.sweeps import CartExpirySweep, OrderPlaceSweep
from loyalty_engage.infrastructure.config import settings
from loyalty_engage.infrastructure.database import Base, build_engine
from loyalty_engage.main import app

RETURN_TIME = datetime(2026, 2, 1, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def api_session_factory(tmp_path):
    """File-backed SQLite database with all tables created."""
    engine = build_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'loyalty.db'}",
        poolclass=NullPool,
    )

    async def create_tables() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(create_tables())
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    asyncio.run(engine.dispose())


@pytest.fixture
def run_db(api_session_factory) -> Callable[..., Any]:
    """Run `func(session, *args)` on the API database and return its result."""

    def _run(func: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any) -> Any:
        async def _with_session() -> Any:
            async with api_session_factory() as session:
                result = await func(session, *args, **kwargs)
                await session.commit()
                return result

        return asyncio.run(_with_session())

    return _run


@pytest.fixture
def dispatch_queue() -> DispatchQueue:
    return DispatchQueue()


@pytest.fixture
def client(api_session_factory, mock_client, test_settings, dispatch_queue):
    """TestClient with database, loyalty client and background parts overridden."""

    async def override_session():
        async with api_session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    subscriber = LoyaltyEventSubscriber(
        session_factory=api_session_factory,
        queue=dispatch_queue,
        config=test_settings,
        clock=lambda: RETURN_TIME,
    )
    cart_expiry = CartExpirySweep(api_session_factory, mock_client, test_settings)
    order_place = OrderPlaceSweep(api_session_factory, mock_client, test_settings)

    app.dependency_overrides[get_db_session] = override_session
    app.dependency_overrides[get_client] = lambda: mock_client
    app.dependency_overrides[get_subscriber] = lambda: subscriber
    app.dependency_overrides[get_cart_expiry] = lambda: cart_expiry
    app.dependency_overrides[get_order_place] = lambda: order_place

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict[str, str]:
    """Authorization header accepted by the API key middleware."""
    return {"Authorization": f"Bearer {settings.api_key}"}
