"""Tests for the inbound event endpoints."""

from loyalty_engage.infrastructure.models import OrderDeliveryModel


class TestStateTransition:
    """Tests for POST /events/state-transition."""

    def test_completed_order_is_queued(
        self, client, auth_headers, run_db, db_helpers, dispatch_queue
    ) -> None:
        """A completed order queues its loyalty messages and answers 202."""
        order = run_db(
            db_helpers.create_order,
            items=[
                {"product_id": "SKU-1", "unit_price": "19.99", "quantity": 1},
                {"product_id": "FREE-1", "unit_price": "0", "quantity": 1},
            ],
        )

        response = client.post(
            "/events/state-transition",
            json={"entityName": "order", "entityId": order.id, "toState": "completed"},
            headers=auth_headers,
        )

        assert response.status_code == 202
        assert response.json() == {
            "accepted": True,
            "queued": ["Purchase", "FreeProductPurchase"],
        }
        assert dispatch_queue.qsize() == 2

    def test_returned_delivery_is_queued(
        self, client, auth_headers, run_db, db_helpers, dispatch_queue
    ) -> None:
        """A returned delivery queues a Return."""
        order = run_db(db_helpers.create_order)

        async def add_delivery(session):
            delivery = OrderDeliveryModel(order_id=order.id, state="returned")
            session.add(delivery)
            await session.flush()
            return delivery

        delivery = run_db(add_delivery)

        response = client.post(
            "/events/state-transition",
            json={"entityName": "order_delivery", "entityId": delivery.id, "toState": "returned"},
            headers=auth_headers,
        )

        assert response.status_code == 202
        assert response.json()["queued"] == ["Return"]

    def test_unrelated_transition(self, client, auth_headers, dispatch_queue) -> None:
        """Other transitions are accepted without queuing anything."""
        response = client.post(
            "/events/state-transition",
            json={"entityName": "order", "entityId": "x", "toState": "cancelled"},
            headers=auth_headers,
        )

        assert response.status_code == 202
        assert response.json()["queued"] == []
        assert dispatch_queue.qsize() == 0

    def test_snake_case_fields_accepted(self, client, auth_headers) -> None:
        """Field names work as well as their camelCase aliases."""
        response = client.post(
            "/events/state-transition",
            json={"entity_name": "order", "entity_id": "x", "to_state": "open"},
            headers=auth_headers,
        )
        assert response.status_code == 202


class TestLineItemRemoved:
    """Tests for POST /events/line-item-removed."""

    def test_free_item(self, client, auth_headers, dispatch_queue) -> None:
        """Removing a free item queues a FreeProductRemove."""
        response = client.post(
            "/events/line-item-removed",
            json={"email": "jane@example.com", "productId": "FREE-1", "quantity": 2},
            headers=auth_headers,
        )

        assert response.status_code == 202
        assert response.json()["queued"] == ["FreeProductRemove"]
        assert dispatch_queue.qsize() == 1

    def test_paid_item(self, client, auth_headers, dispatch_queue) -> None:
        """Paid items are not part of the loyalty cart."""
        response = client.post(
            "/events/line-item-removed",
            json={"email": "jane@example.com", "productId": "SKU-1", "unitPrice": 9.99},
            headers=auth_headers,
        )

        assert response.status_code == 202
        assert response.json()["queued"] == []

    def test_invalid_quantity(self, client, auth_headers) -> None:
        """Quantities below one are rejected."""
        response = client.post(
            "/events/line-item-removed",
            json={"email": "jane@example.com", "productId": "FREE-1", "quantity": 0},
            headers=auth_headers,
        )
        assert response.status_code == 422
