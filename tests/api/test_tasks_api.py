"""Tests for the manual sweep endpoints."""

from unittest.mock import AsyncMock


class TestCartExpiryTask:
    """Tests for POST /tasks/cart-expiry/run."""

    def test_run(self, client, auth_headers, run_db, db_helpers, mock_client) -> None:
        """An expired cart is cleared and reported."""

        async def seed(session):
            customer = await db_helpers.create_customer(session, "jane@example.com")
            await db_helpers.create_cart(session, customer, age_minutes=90)

        run_db(seed)

        response = client.post("/tasks/cart-expiry/run", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"processed": 1, "deactivated": 1, "failed": 0, "skipped": 0}
        mock_client.remove_all_items.assert_awaited_once_with("jane@example.com")

    def test_run_with_nothing_to_do(self, client, auth_headers, mock_client) -> None:
        """An empty sweep reports zero counters."""
        response = client.post("/tasks/cart-expiry/run", headers=auth_headers)

        assert response.json()["processed"] == 0
        mock_client.remove_all_items.assert_not_awaited()


class TestOrderPlaceTask:
    """Tests for POST /tasks/order-place/run."""

    def test_run(self, client, auth_headers, run_db, db_helpers, mock_client) -> None:
        """Unplaced orders are placed, failures counted."""
        mock_client.place_order = AsyncMock(side_effect=[200, 500])
        run_db(db_helpers.create_order, order_number="1")
        run_db(db_helpers.create_order, order_number="2")

        response = client.post("/tasks/order-place/run", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"processed": 2, "placed": 1, "failed": 1}

    def test_requires_auth(self, client) -> None:
        """Sweeps cannot be triggered anonymously."""
        response = client.post("/tasks/order-place/run")
        assert response.status_code == 401
