"""Periodic reconciliation sweeps.

CartExpirySweep clears the remote cart of every stale loyalty cart and
deactivates it once the remote API confirms. OrderPlaceSweep confirms
loyalty purchases that were not placed yet, counting failed attempts
so that an order is given up after a bounded number of tries.

Both sweeps call the remote API inline and process candidates one at a
time, committing after each. A failure on one candidate is rolled back
and logged, and the sweep moves on.
"""

import asyncio
import hashlib
from collections.abc import Callable
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from loyalty_engage.application.subscribers import order_product_lines
from loyalty_engage.domain.messages import FreeProductPurchaseMessage
from loyalty_engage.infrastructure.config import Settings, settings
from loyalty_engage.infrastructure.database import get_session_factory
from loyalty_engage.infrastructure.loyalty_client import (
    DispatchOutcome,
    LoyaltyEngageClient,
    get_loyalty_client,
)
from loyalty_engage.infrastructure.models import LoyaltyCartModel, OrderModel
from loyalty_engage.infrastructure.repositories import (
    LoyaltyCartRepository,
    OrderRepository,
)

logger = structlog.get_logger()

ORDER_PLACE_KEY_PREFIX = "OrderPlace"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def order_place_key(order_number: str, email: str) -> str:
    """Idempotency key of the order placement call.

    Distinct from the FreeProductPurchase key of the same order, whose
    payload holds only the free lines.
    """
    raw = f"{ORDER_PLACE_KEY_PREFIX}:{order_number}:{email}"
    return hashlib.sha256(raw.encode()).hexdigest()


# ============================================================================
# Summaries
# ============================================================================


@dataclass
class CartExpirySummary:
    """Counters of one cart expiry sweep.

    Attributes:
        processed: Expired carts considered.
        deactivated: Carts whose remote cart was cleared.
        failed: Carts left active after a failed remote call.
        skipped: Carts without a resolvable customer email.
    """

    processed: int = 0
    deactivated: int = 0
    failed: int = 0
    skipped: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


@dataclass
class OrderPlaceSummary:
    """Counters of one order placement sweep."""

    processed: int = 0
    placed: int = 0
    failed: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


# ============================================================================
# Cart Expiry
# ============================================================================

DEACTIVATED = "deactivated"
FAILED = "failed"
SKIPPED = "skipped"


class CartExpirySweep:
    """Clears remote carts of local carts older than the expiry window."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        client: LoyaltyEngageClient | None = None,
        config: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize sweep.

        Args:
            session_factory: Factory for the sweep's session.
            client: Loyalty API client.
            config: Settings with expiry window and retry limit.
            clock: Source of the current time.
        """
        self.session_factory = session_factory or get_session_factory()
        self.client = client or get_loyalty_client()
        self.config = config or settings
        self.clock = clock or _utcnow
        self._lock = asyncio.Lock()

    async def run(self) -> CartExpirySummary:
        """Run one sweep.

        Overlapping calls wait for the running sweep to finish.

        Returns:
            Sweep counters.
        """
        async with self._lock:
            return await self._sweep()

    async def _sweep(self) -> CartExpirySummary:
        summary = CartExpirySummary()
        cutoff = self.clock() - timedelta(minutes=self.config.cart_expiry_minutes)
        retry_limit = self.config.cart_expiry_retry_limit

        async with self.session_factory() as session:
            repo = LoyaltyCartRepository(session)
            carts = await repo.find_expired(cutoff, retry_limit=retry_limit)
            cart_ids = [cart.id for cart in carts]

            logger.info(
                "Cart expiry sweep started",
                candidates=len(cart_ids),
                cutoff=cutoff.isoformat(),
            )

            # Reloaded per cart: a rollback expires every loaded instance.
            for cart_id in cart_ids:
                summary.processed += 1
                try:
                    cart = await repo.get_with_customer(cart_id)
                    if cart is None:
                        continue
                    result = await self._expire(cart)
                    await session.commit()
                except Exception as e:
                    await session.rollback()
                    summary.failed += 1
                    logger.exception(
                        "Error processing expired cart",
                        cart_id=cart_id,
                        error=str(e),
                    )
                    continue

                setattr(summary, result, getattr(summary, result) + 1)

        logger.info("Cart expiry sweep finished", **summary.to_dict())
        return summary

    async def _expire(self, cart: LoyaltyCartModel) -> str:
        email = cart.customer.email if cart.customer is not None else None
        if not email:
            logger.error(
                "Customer email not found for expired cart",
                cart_id=cart.id,
                customer_id=cart.customer_id,
            )
            return SKIPPED

        outcome = DispatchOutcome(await self.client.remove_all_items(email))
        if outcome.succeeded:
            cart.active = False
            logger.info("Expired loyalty cart cleared", cart_id=cart.id, email=email)
            return DEACTIVATED

        if self.config.cart_expiry_retry_limit > 0:
            cart.expiry_attempts = (cart.expiry_attempts or 0) + 1
        logger.warning(
            "Failed to clear expired loyalty cart",
            cart_id=cart.id,
            email=email,
            response=outcome.status_code,
        )
        return FAILED


# ============================================================================
# Order Placement
# ============================================================================


class OrderPlaceSweep:
    """Confirms loyalty purchases of orders that were not placed yet."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        client: LoyaltyEngageClient | None = None,
        config: Settings | None = None,
    ) -> None:
        """Initialize sweep.

        Args:
            session_factory: Factory for the sweep's session.
            client: Loyalty API client.
            config: Settings with the attempt limit.
        """
        self.session_factory = session_factory or get_session_factory()
        self.client = client or get_loyalty_client()
        self.config = config or settings
        self._lock = asyncio.Lock()

    async def run(self) -> OrderPlaceSummary:
        """Run one sweep.

        Overlapping calls wait for the running sweep to finish.

        Returns:
            Sweep counters.
        """
        async with self._lock:
            return await self._sweep()

    async def _sweep(self) -> OrderPlaceSummary:
        summary = OrderPlaceSummary()

        async with self.session_factory() as session:
            repo = OrderRepository(session)
            orders = await repo.find_unplaced(self.config.order_retrieve_limit)
            order_ids = [order.id for order in orders]

            logger.info("Order place sweep started", candidates=len(order_ids))

            for order_id in order_ids:
                summary.processed += 1
                try:
                    order = await repo.get_by_id(order_id)
                    if order is None:
                        continue
                    placed = await self._place(order)
                    if placed:
                        order.loyalty_order_place = True
                    else:
                        order.loyalty_order_place_retrieve = (
                            order.loyalty_order_place_retrieve or 0
                        ) + 1
                    await session.commit()
                except Exception as e:
                    await session.rollback()
                    summary.failed += 1
                    logger.exception(
                        "Error placing loyalty order",
                        order_id=order_id,
                        error=str(e),
                    )
                    await self._count_attempt(session, repo, order_id)
                    continue

                if placed:
                    summary.placed += 1
                else:
                    summary.failed += 1

        logger.info("Order place sweep finished", **summary.to_dict())
        return summary

    async def _count_attempt(
        self, session: AsyncSession, repo: OrderRepository, order_id: str
    ) -> None:
        try:
            await repo.increment_place_attempts(order_id)
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.exception(
                "Failed to record order place attempt",
                order_id=order_id,
                error=str(e),
            )

    async def _place(self, order: OrderModel) -> bool:
        message = FreeProductPurchaseMessage(
            email=order.customer_email,
            order_id=order.order_number,
            products=tuple(order_product_lines(order, priced=False)),
        )
        payload = message.to_payload()
        outcome = DispatchOutcome(
            await self.client.place_order(
                message.email,
                payload["orderId"],
                payload["products"],
                idempotency_key=order_place_key(order.order_number, message.email),
            )
        )
        if outcome.succeeded:
            logger.info("Loyalty order placed", order_number=order.order_number)
            return True

        logger.warning(
            "Loyalty order not placed",
            order_number=order.order_number,
            response=outcome.status_code,
            attempt=(order.loyalty_order_place_retrieve or 0) + 1,
        )
        return False


# Global sweep instances
_cart_expiry_sweep: CartExpirySweep | None = None
_order_place_sweep: OrderPlaceSweep | None = None


def get_cart_expiry_sweep() -> CartExpirySweep:
    """Get the cart expiry sweep singleton."""
    global _cart_expiry_sweep
    if _cart_expiry_sweep is None:
        _cart_expiry_sweep = CartExpirySweep()
    return _cart_expiry_sweep


def get_order_place_sweep() -> OrderPlaceSweep:
    """Get the order place sweep singleton."""
    global _order_place_sweep
    if _order_place_sweep is None:
        _order_place_sweep = OrderPlaceSweep()
    return _order_place_sweep
