"""Domain event subscribers.

Turn storefront events into loyalty messages:
- order -> completed: Purchase event and FreeProductPurchase
- order_delivery -> returned: Return event
- product line item removed: FreeProductRemove for free items

Subscribers only build and enqueue messages. Problems with the stored
data are logged and never raised to the event source.
"""

from collections.abc import Callable
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from loyalty_engage.application.dispatch import DispatchQueue, get_dispatch_queue
from loyalty_engage.domain.base import LoyaltyMessage
from loyalty_engage.domain.exceptions import DomainError
from loyalty_engage.domain.messages import (
    FreeProductPurchaseMessage,
    FreeProductRemoveMessage,
    PurchaseMessage,
    ReturnMessage,
)
from loyalty_engage.domain.value_objects import ProductLine
from loyalty_engage.infrastructure.config import Settings, settings
from loyalty_engage.infrastructure.database import get_session_factory
from loyalty_engage.infrastructure.models import PRODUCT_LINE_ITEM, OrderModel
from loyalty_engage.infrastructure.repositories import OrderRepository

logger = structlog.get_logger()

ORDER_ENTITY = "order"
ORDER_DELIVERY_ENTITY = "order_delivery"
ORDER_COMPLETED = "completed"
DELIVERY_RETURNED = "returned"


def order_product_lines(
    order: OrderModel,
    free_only: bool = False,
    priced: bool = True,
) -> list[ProductLine]:
    """Build product lines from an order's product line items.

    Lines the loyalty API would reject, such as a zero quantity, are
    logged and left out so the remaining lines are still reported.

    Args:
        order: Order with its line items loaded.
        free_only: Keep only zero-priced lines.
        priced: Include the unit price on each line.

    Returns:
        Product lines in line item order.
    """
    lines: list[ProductLine] = []
    for item in order.product_line_items():
        if not item.product_id:
            continue
        price = Decimal(str(item.unit_price or 0))
        if free_only and price != 0:
            continue
        try:
            lines.append(
                ProductLine(
                    sku=item.product_id,
                    quantity=item.quantity,
                    price=price if priced else None,
                )
            )
        except DomainError as e:
            logger.warning(
                "Skipping invalid order line",
                order_number=order.order_number,
                product_id=item.product_id,
                quantity=item.quantity,
                error=e.message,
            )
    return lines


class LoyaltyEventSubscriber:
    """Builds loyalty messages from storefront events and enqueues them."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        queue: DispatchQueue | None = None,
        config: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize subscriber.

        Args:
            session_factory: Factory for sessions used to load orders.
            queue: Queue receiving the built messages.
            config: Settings with the export flags.
            clock: Source of the current time for return dates.
        """
        self.session_factory = session_factory or get_session_factory()
        self.queue = queue or get_dispatch_queue()
        self.config = config or settings
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def _enqueue(self, message: LoyaltyMessage, queued: list[LoyaltyMessage]) -> None:
        self.queue.enqueue(message)
        queued.append(message)

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    async def on_state_transition(
        self,
        entity_name: str,
        entity_id: str,
        to_state: str,
    ) -> list[LoyaltyMessage]:
        """Handle a state machine transition.

        Args:
            entity_name: Entity whose state changed.
            entity_id: Identifier of the entity.
            to_state: State entered.

        Returns:
            Messages that were enqueued.
        """
        queued: list[LoyaltyMessage] = []
        try:
            if entity_name == ORDER_ENTITY and to_state == ORDER_COMPLETED:
                await self._order_completed(entity_id, queued)
            elif entity_name == ORDER_DELIVERY_ENTITY and to_state == DELIVERY_RETURNED:
                await self._delivery_returned(entity_id, queued)
        except Exception as e:
            logger.exception(
                "Error handling state transition",
                entity_name=entity_name,
                entity_id=entity_id,
                to_state=to_state,
                error=str(e),
            )
        return queued

    async def _order_completed(self, order_id: str, queued: list[LoyaltyMessage]) -> None:
        async with self.session_factory() as session:
            order = await OrderRepository(session).get_by_id(order_id)

        if order is None:
            logger.error("Order not found for completed transition", order_id=order_id)
            return

        if not order.customer_email:
            logger.error(
                "Order has no customer email",
                order_id=order_id,
                order_number=order.order_number,
            )
            return

        if self.config.purchase_event:
            self._purchase(order, queued)

        self._free_purchase(order, queued)

    def _purchase(self, order: OrderModel, queued: list[LoyaltyMessage]) -> None:
        products = order_product_lines(order)
        if not products:
            logger.error(
                "No products found in order",
                order_number=order.order_number,
            )
            return

        try:
            message = PurchaseMessage(
                email=order.customer_email,
                order_id=order.order_number,
                order_date=order.order_date.isoformat(),
                products=tuple(products),
            )
        except DomainError as e:
            logger.error(
                "Purchase message rejected",
                order_number=order.order_number,
                error=e.message,
            )
            return
        self._enqueue(message, queued)

    def _free_purchase(self, order: OrderModel, queued: list[LoyaltyMessage]) -> None:
        products = order_product_lines(order, free_only=True, priced=False)
        if not products:
            return

        try:
            message = FreeProductPurchaseMessage(
                email=order.customer_email,
                order_id=order.order_number,
                products=tuple(products),
            )
        except DomainError as e:
            logger.error(
                "Free product purchase message rejected",
                order_number=order.order_number,
                error=e.message,
            )
            return
        self._enqueue(message, queued)

    async def _delivery_returned(
        self, delivery_id: str, queued: list[LoyaltyMessage]
    ) -> None:
        if not self.config.return_event:
            return

        async with self.session_factory() as session:
            delivery = await OrderRepository(session).get_delivery(delivery_id)

        if delivery is None or delivery.order is None:
            logger.error("Order not found for returned delivery", delivery_id=delivery_id)
            return

        order = delivery.order
        try:
            message = ReturnMessage(
                email=order.customer_email,
                return_date=self.clock().isoformat(),
                products=tuple(order_product_lines(order)),
            )
        except DomainError as e:
            logger.error(
                "Return message rejected",
                delivery_id=delivery_id,
                order_number=order.order_number,
                error=e.message,
            )
            return
        self._enqueue(message, queued)

    # ------------------------------------------------------------------
    # Cart line items
    # ------------------------------------------------------------------

    def on_line_item_removed(
        self,
        email: str | None,
        product_id: str | None,
        quantity: int = 1,
        unit_price: Any = 0,
        item_type: str = PRODUCT_LINE_ITEM,
    ) -> list[LoyaltyMessage]:
        """Handle removal of a storefront cart line item.

        Only zero-priced product items belong to the loyalty cart.

        Args:
            email: Email of the cart's customer.
            product_id: Removed product.
            quantity: Removed units.
            unit_price: Unit price of the removed item.
            item_type: Line item type.

        Returns:
            Messages that were enqueued.
        """
        queued: list[LoyaltyMessage] = []
        if item_type != PRODUCT_LINE_ITEM:
            return queued
        if Decimal(str(unit_price or 0)) != 0:
            return queued

        if not email or not product_id:
            logger.error(
                "Free product removal without email or product",
                email=email,
                product_id=product_id,
            )
            return queued

        try:
            message = FreeProductRemoveMessage(
                email=email,
                product_id=product_id,
                quantity=quantity,
            )
        except DomainError as e:
            logger.error(
                "Free product remove message rejected",
                email=email,
                product_id=product_id,
                error=e.message,
            )
            return queued
        self._enqueue(message, queued)
        return queued


# Global subscriber instance
_subscriber: LoyaltyEventSubscriber | None = None


def get_event_subscriber() -> LoyaltyEventSubscriber:
    """Get the event subscriber singleton.

    Returns:
        LoyaltyEventSubscriber instance.
    """
    global _subscriber
    if _subscriber is None:
        _subscriber = LoyaltyEventSubscriber()
    return _subscriber
