"""Tests for the API middleware stack."""

from unittest.mock import MagicMock

import pytest

from loyalty_engage.api.dependencies import get_subscriber
from loyalty_engage.domain.exceptions import InvalidEmailError
from loyalty_engage.main import app

CART_ADD = "/loyalty/cart/add"
BODY = {"email": "a@b.com", "productId": "SKU1"}


class TestApiKey:
    """Tests for bearer API key authentication."""

    def test_missing_header(self, client) -> None:
        """Requests without Authorization are rejected."""
        response = client.post(CART_ADD, json=BODY)

        assert response.status_code == 401
        assert response.json()["error_code"] == "UNAUTHORIZED"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    @pytest.mark.parametrize("header", ["Basic abc", "Bearer", "token-only"])
    def test_bad_format(self, client, header) -> None:
        """Only the Bearer scheme with a key is accepted."""
        response = client.post(CART_ADD, json=BODY, headers={"Authorization": header})

        assert response.status_code == 401
        assert response.json()["error_code"] == "UNAUTHORIZED"

    def test_wrong_key(self, client, mock_client) -> None:
        """A wrong key never reaches the handler."""
        response = client.post(CART_ADD, json=BODY, headers={"Authorization": "Bearer wrong"})

        assert response.status_code == 401
        assert response.json()["error_code"] == "INVALID_API_KEY"
        mock_client.add_to_cart.assert_not_awaited()

    def test_valid_key(self, client, auth_headers) -> None:
        """The configured key is accepted."""
        assert client.post(CART_ADD, json=BODY, headers=auth_headers).status_code == 200


class TestRequestId:
    """Tests for request ID correlation."""

    def test_generated(self, client) -> None:
        """A request ID is generated when none is sent."""
        response = client.get("/health")
        assert response.headers["X-Request-ID"]

    def test_echoed(self, client) -> None:
        """A caller supplied request ID is echoed back."""
        response = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"


class TestErrorHandling:
    """Tests for the error handling middleware."""

    def test_domain_error_is_400(self, client, auth_headers) -> None:
        """Domain errors escaping a handler become 400 responses."""
        subscriber = MagicMock()
        subscriber.on_line_item_removed.side_effect = InvalidEmailError("broken")
        app.dependency_overrides[get_subscriber] = lambda: subscriber

        response = client.post(
            "/events/line-item-removed",
            json={"email": "broken", "productId": "FREE-1"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    def test_unhandled_error_is_500(self, client, auth_headers) -> None:
        """Unexpected errors become a generic 500."""
        subscriber = MagicMock()
        subscriber.on_line_item_removed.side_effect = RuntimeError("boom")
        app.dependency_overrides[get_subscriber] = lambda: subscriber

        response = client.post(
            "/events/line-item-removed",
            json={"email": "jane@example.com", "productId": "FREE-1"},
            headers=auth_headers,
        )

        assert response.status_code == 500
        body = response.json()
        assert body["error_code"] == "INTERNAL_ERROR"
        assert body["message"] == "An internal error occurred"
