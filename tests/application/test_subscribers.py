"""Tests for the storefront event subscriber."""

from datetime import datetime, timezone

import pytest

from loyalty_engage.application.dispatch import DispatchQueue
from loyalty_engage.application.subscribers import LoyaltyEventSubscriber
from loyalty_engage.domain import (
    FreeProductPurchaseMessage,
    FreeProductRemoveMessage,
    PurchaseMessage,
    ReturnMessage,
)
from loyalty_engage.infrastructure.models import OrderDeliveryModel

RETURN_TIME = datetime(2026, 2, 1, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def queue() -> DispatchQueue:
    return DispatchQueue()


@pytest.fixture
def subscriber(session_factory, queue, test_settings) -> LoyaltyEventSubscriber:
    return LoyaltyEventSubscriber(
        session_factory=session_factory,
        queue=queue,
        config=test_settings,
        clock=lambda: RETURN_TIME,
    )


MIXED_ITEMS = [
    {"product_id": "SKU-1", "unit_price": "19.99", "quantity": 2},
    {"product_id": "FREE-1", "unit_price": "0", "quantity": 1},
    {"product_id": None, "unit_price": "-5", "quantity": 1, "type": "promotion"},
]


class TestOrderCompleted:
    """Tests for order -> completed transitions."""

    @pytest.mark.asyncio
    async def test_purchase_and_free_purchase(self, session, db_helpers, subscriber, queue) -> None:
        """A completed order yields a Purchase and a FreeProductPurchase."""
        order = await db_helpers.create_order(session, items=MIXED_ITEMS)

        queued = await subscriber.on_state_transition("order", order.id, "completed")

        assert [type(m) for m in queued] == [PurchaseMessage, FreeProductPurchaseMessage]
        assert queue.qsize() == 2

        purchase = queued[0].to_payload()[0]
        assert purchase["orderId"] == "10001"
        assert purchase["orderDate"].startswith("2026-01-20T10:00:00")
        assert purchase["products"] == [
            {"sku": "SKU-1", "price": 19.99, "quantity": 2},
            {"sku": "FREE-1", "price": 0.0, "quantity": 1},
        ]
        assert queued[1].to_payload() == {
            "orderId": "10001",
            "products": [{"sku": "FREE-1", "quantity": 1}],
        }

    @pytest.mark.asyncio
    async def test_purchase_event_disabled(
        self, session, db_helpers, subscriber, test_settings
    ) -> None:
        """Free items are still confirmed when purchase export is off."""
        test_settings.purchase_event = False
        order = await db_helpers.create_order(session, items=MIXED_ITEMS)

        queued = await subscriber.on_state_transition("order", order.id, "completed")

        assert [type(m) for m in queued] == [FreeProductPurchaseMessage]

    @pytest.mark.asyncio
    async def test_no_free_items(self, session, db_helpers, subscriber) -> None:
        """Orders without free items only produce a Purchase."""
        order = await db_helpers.create_order(session)

        queued = await subscriber.on_state_transition("order", order.id, "completed")

        assert [type(m) for m in queued] == [PurchaseMessage]

    @pytest.mark.asyncio
    async def test_missing_email_enqueues_nothing(self, session, db_helpers, subscriber, queue) -> None:
        """Guest orders without an email are logged and dropped."""
        order = await db_helpers.create_order(session, email=None)

        assert await subscriber.on_state_transition("order", order.id, "completed") == []
        assert queue.qsize() == 0

    @pytest.mark.asyncio
    async def test_invalid_email_enqueues_nothing(self, session, db_helpers, subscriber) -> None:
        """Malformed emails never reach the queue."""
        order = await db_helpers.create_order(session, email="not-an-email", items=MIXED_ITEMS)

        assert await subscriber.on_state_transition("order", order.id, "completed") == []

    @pytest.mark.asyncio
    async def test_unknown_order(self, subscriber) -> None:
        """Unknown orders are ignored."""
        assert await subscriber.on_state_transition("order", "missing", "completed") == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("entity_name", "to_state"),
        [("order", "cancelled"), ("payment", "completed"), ("order_delivery", "shipped")],
    )
    async def test_other_transitions_ignored(
        self, session, db_helpers, subscriber, entity_name, to_state
    ) -> None:
        """Only the two loyalty transitions produce messages."""
        order = await db_helpers.create_order(session)

        assert await subscriber.on_state_transition(entity_name, order.id, to_state) == []


class TestDeliveryReturned:
    """Tests for order_delivery -> returned transitions."""

    async def _delivery(self, session, db_helpers) -> OrderDeliveryModel:
        order = await db_helpers.create_order(session)
        delivery = OrderDeliveryModel(order_id=order.id, state="returned")
        session.add(delivery)
        await session.commit()
        return delivery

    @pytest.mark.asyncio
    async def test_return_event(self, session, db_helpers, subscriber) -> None:
        """A returned delivery yields a Return dated at the transition."""
        delivery = await self._delivery(session, db_helpers)

        queued = await subscriber.on_state_transition("order_delivery", delivery.id, "returned")

        assert len(queued) == 1
        message = queued[0]
        assert isinstance(message, ReturnMessage)
        assert message.return_date == RETURN_TIME.isoformat()
        assert message.to_payload()[0]["products"] == [
            {"sku": "SKU-1", "price": 19.99, "quantity": 2}
        ]

    @pytest.mark.asyncio
    async def test_return_event_disabled(
        self, session, db_helpers, subscriber, test_settings
    ) -> None:
        """No Return is built when return export is off."""
        test_settings.return_event = False
        delivery = await self._delivery(session, db_helpers)

        assert await subscriber.on_state_transition("order_delivery", delivery.id, "returned") == []


class TestLineItemRemoved:
    """Tests for cart line item removal."""

    def test_free_item_removal(self, subscriber, queue) -> None:
        """Removing a zero-priced product enqueues a FreeProductRemove."""
        queued = subscriber.on_line_item_removed("jane@example.com", "FREE-1", quantity=2)

        assert len(queued) == 1
        assert isinstance(queued[0], FreeProductRemoveMessage)
        assert queued[0].to_payload() == {"sku": "FREE-1", "quantity": 2}
        assert queue.qsize() == 1

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"unit_price": "9.99"},
            {"item_type": "promotion"},
            {"email": None},
            {"email": "broken"},
            {"quantity": 0},
        ],
    )
    def test_ignored_removals(self, subscriber, queue, kwargs) -> None:
        """Paid items, other item types and invalid input enqueue nothing."""
        params = {"email": "jane@example.com", "product_id": "FREE-1"}
        params.update(kwargs)

        assert subscriber.on_line_item_removed(**params) == []
        assert queue.qsize() == 0


class TestInvalidOrderLines:
    """Tests for orders holding a line the loyalty API would reject."""

    @pytest.mark.asyncio
    async def test_zero_quantity_line_is_skipped(self, session, db_helpers, subscriber) -> None:
        """One bad line does not drop the free purchase or the other lines."""
        order = await db_helpers.create_order(
            session,
            items=[
                {"product_id": "SKU-1", "unit_price": "19.99", "quantity": 0},
                {"product_id": "SKU-2", "unit_price": "5.00", "quantity": 1},
                {"product_id": "FREE-1", "unit_price": "0", "quantity": 1},
            ],
        )

        queued = await subscriber.on_state_transition("order", order.id, "completed")

        assert [type(m) for m in queued] == [PurchaseMessage, FreeProductPurchaseMessage]
        assert [p["sku"] for p in queued[0].to_payload()[0]["products"]] == ["SKU-2", "FREE-1"]
        assert queued[1].to_payload()["products"] == [{"sku": "FREE-1", "quantity": 1}]

    @pytest.mark.asyncio
    async def test_only_bad_lines(self, session, db_helpers, subscriber, queue) -> None:
        """An order whose lines are all invalid enqueues nothing."""
        order = await db_helpers.create_order(
            session,
            items=[{"product_id": "FREE-1", "unit_price": "0", "quantity": 0}],
        )

        assert await subscriber.on_state_transition("order", order.id, "completed") == []
        assert queue.qsize() == 0
