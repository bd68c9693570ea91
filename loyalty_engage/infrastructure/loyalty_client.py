"""Loyalty Engage HTTP client.

Thin wrapper over the remote loyalty API. Every call returns the upstream
status code (or a "no response" sentinel on transport failure) and never
raises past this module; retrying is left to the caller.
"""

import base64
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx
import structlog

from loyalty_engage.infrastructure.config import DEFAULT_LOYALTY_API_URL, Settings, settings

logger = structlog.get_logger()

HTTP_OK = 200

# add_to_cart reports a transport failure as status 0 instead of None
NO_STATUS = 0


# ============================================================================
# Outcomes
# ============================================================================


@dataclass(frozen=True)
class DispatchOutcome:
    """Result of one remote call.

    Attributes:
        status_code: Upstream HTTP status, None when no response arrived.
    """

    status_code: int | None

    @property
    def succeeded(self) -> bool:
        """True iff the remote API answered 200."""
        return self.status_code == HTTP_OK


def resolve_base_url(configured_url: str | None) -> str:
    """Pin the API base URL to the production host.

    An empty URL, or one outside the production host, falls back to the
    default host.

    Args:
        configured_url: URL from configuration.

    Returns:
        Base URL without trailing slash.
    """
    if not configured_url:
        logger.warning(
            "Loyalty API URL not set in config, using default",
            default_url=DEFAULT_LOYALTY_API_URL,
        )
        return DEFAULT_LOYALTY_API_URL

    if not configured_url.startswith(DEFAULT_LOYALTY_API_URL):
        logger.warning(
            "Loyalty API URL does not start with the required base URL, using default",
            configured_url=configured_url,
            default_url=DEFAULT_LOYALTY_API_URL,
        )
        return DEFAULT_LOYALTY_API_URL

    return configured_url.rstrip("/")


def build_basic_auth(tenant_id: str, bearer_token: str) -> str:
    """Build the Authorization header value.

    Args:
        tenant_id: Loyalty Engage tenant identifier.
        bearer_token: Tenant API token.

    Returns:
        `Basic base64(tenant_id:bearer_token)`.
    """
    raw = f"{tenant_id}:{bearer_token}".encode()
    return f"Basic {base64.b64encode(raw).decode()}"


# ============================================================================
# Client
# ============================================================================


class LoyaltyEngageClient:
    """HTTP client for the Loyalty Engage API.

    Holds no per-call state: two identical calls are independent
    requests with independent outcomes.
    """

    def __init__(
        self,
        config: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Settings to read credentials and flags from.
            transport: Optional httpx transport (used by tests).
        """
        self.config = config or settings
        self.base_url = resolve_base_url(self.config.loyalty_api_url)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def logging_enabled(self) -> bool:
        """Whether request/response details are logged."""
        return self.config.logger_enable

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.config.http_timeout_seconds,
                transport=self._transport,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": build_basic_auth(
                        self.config.tenant_id, self.config.bearer_token
                    ),
                },
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "LoyaltyEngageClient":
        """Context manager entry."""
        return self

    async def __aexit__(self, *args: object) -> None:
        """Context manager exit."""
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        json: Any = None,
        idempotency_key: str | None = None,
    ) -> httpx.Response:
        """Send one request.

        Raises:
            httpx.HTTPError: On transport failure.
        """
        client = await self._get_client()
        headers = {}
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key
        return await client.request(method, path, json=json, headers=headers)

    @staticmethod
    def _email_segment(email: str) -> str:
        """Percent-encode an email for use as one URL path segment."""
        return quote(email.strip(), safe="@")

    @classmethod
    def _shop_path(cls, email: str, suffix: str = "") -> str:
        return f"/api/v1/loyalty/shop/{cls._email_segment(email)}/cart{suffix}"

    # ------------------------------------------------------------------
    # Cart
    # ------------------------------------------------------------------

    async def add_to_cart(self, email: str, sku: str) -> int:
        """Reserve one unit of a product in the customer's loyalty cart.

        Args:
            email: Customer email.
            sku: Product identifier.

        Returns:
            Upstream status code, or 0 when no response arrived.
        """
        payload = {"sku": sku, "quantity": 1}
        try:
            response = await self._request(
                "POST", self._shop_path(email, "/add"), json=payload
            )
        except httpx.HTTPError as e:
            if self.logging_enabled:
                logger.error(
                    "Loyalty add to cart failed",
                    email=email,
                    sku=sku,
                    error=str(e),
                )
            return NO_STATUS

        if self.logging_enabled:
            logger.info(
                "Loyalty add to cart response",
                email=email,
                sku=sku,
                quantity=1,
                response_code=response.status_code,
                response_body=response.text,
            )
        return response.status_code

    async def remove_item(self, email: str, sku: str, quantity: int) -> int | None:
        """Remove units of a product from the customer's loyalty cart.

        Args:
            email: Customer email.
            sku: Product identifier.
            quantity: Units to remove.

        Returns:
            Upstream status code, or None when no response arrived.
        """
        payload = {"sku": sku, "quantity": quantity}
        try:
            response = await self._request(
                "DELETE", self._shop_path(email, "/remove"), json=payload
            )
        except httpx.HTTPError as e:
            if self.logging_enabled:
                logger.error(
                    "Loyalty remove item failed",
                    email=email,
                    sku=sku,
                    error=str(e),
                )
            return None

        if self.logging_enabled:
            logger.info(
                "Loyalty remove item response",
                email=email,
                sku=sku,
                quantity=quantity,
                response_code=response.status_code,
            )
        return response.status_code

    async def remove_all_items(self, email: str) -> int | None:
        """Clear the customer's loyalty cart.

        Args:
            email: Customer email.

        Returns:
            Upstream status code, or None when no response arrived.
        """
        try:
            response = await self._request("DELETE", self._shop_path(email))
        except httpx.HTTPError as e:
            if self.logging_enabled:
                logger.error(
                    "Loyalty remove all items failed",
                    email=email,
                    error=str(e),
                )
            return None

        if self.logging_enabled:
            logger.info(
                "Loyalty remove all items response",
                email=email,
                response_code=response.status_code,
            )
        return response.status_code

    async def place_order(
        self,
        email: str,
        order_id: str,
        products: list[dict[str, Any]],
        idempotency_key: str | None = None,
    ) -> int | None:
        """Confirm the purchase of the customer's loyalty cart.

        Args:
            email: Customer email.
            order_id: Storefront order number.
            products: `{sku, quantity}` entries.
            idempotency_key: Optional key for safe redelivery.

        Returns:
            Upstream status code, or None when no response arrived.
        """
        payload = {"orderId": order_id, "products": products}
        try:
            response = await self._request(
                "POST",
                self._shop_path(email, "/purchase"),
                json=payload,
                idempotency_key=idempotency_key,
            )
        except httpx.HTTPError as e:
            if self.logging_enabled:
                logger.error(
                    "Loyalty place order failed",
                    email=email,
                    order_id=order_id,
                    error=str(e),
                )
            return None

        if self.logging_enabled:
            logger.info(
                "Loyalty place order response",
                email=email,
                order_id=order_id,
                response_code=response.status_code,
            )
        return response.status_code

    # ------------------------------------------------------------------
    # Events and discounts
    # ------------------------------------------------------------------

    async def send_event(
        self,
        payload: list[dict[str, Any]],
        idempotency_key: str | None = None,
    ) -> int | None:
        """Send an event envelope to the events endpoint.

        Request and response are always logged.

        Args:
            payload: List holding one `{event, email, ...}` envelope.
            idempotency_key: Optional key for safe redelivery.

        Returns:
            Upstream status code, or None when no response arrived.
        """
        path = "/api/v1/events"
        logger.info(
            "Sending loyalty event",
            url=f"{self.base_url}{path}",
            payload=payload,
            tenant_id=self.config.tenant_id,
        )
        try:
            response = await self._request(
                "POST", path, json=payload, idempotency_key=idempotency_key
            )
        except httpx.HTTPError as e:
            logger.exception(
                "Loyalty send event failed",
                url=f"{self.base_url}{path}",
                payload=payload,
                error=str(e),
            )
            return None

        logger.info(
            "Loyalty event response",
            status_code=response.status_code,
            content=response.text,
        )
        return response.status_code

    async def claim_discount(
        self, email: str, discount: float
    ) -> dict[str, Any] | None:
        """Exchange loyalty points for a discount code.

        Args:
            email: Customer email.
            discount: Discount rate (0.1 = 10%).

        Returns:
            Parsed `{discountCode, discount}` body on 200, None otherwise.
        """
        path = f"/api/v1/discount/{self._email_segment(email)}/claim"
        if self.logging_enabled:
            logger.info(
                "Claiming loyalty discount",
                url=f"{self.base_url}{path}",
                email=email,
                discount=discount,
            )
        try:
            response = await self._request("POST", path, json={"discount": discount})
        except httpx.HTTPError as e:
            if self.logging_enabled:
                logger.error(
                    "Loyalty claim discount failed",
                    email=email,
                    discount=discount,
                    error=str(e),
                )
            return None

        if self.logging_enabled:
            logger.info(
                "Loyalty discount claim response",
                email=email,
                discount=discount,
                response_code=response.status_code,
                response_body=response.text,
            )

        if response.status_code != HTTP_OK:
            return None

        try:
            data = response.json()
        except ValueError:
            logger.error(
                "Loyalty discount claim returned invalid JSON",
                email=email,
                response_body=response.text[:200],
            )
            return None
        return data if isinstance(data, dict) else None


# Global client instance
_loyalty_client: LoyaltyEngageClient | None = None


def get_loyalty_client() -> LoyaltyEngageClient:
    """Get the loyalty client singleton.

    Returns:
        LoyaltyEngageClient instance.
    """
    global _loyalty_client
    if _loyalty_client is None:
        _loyalty_client = LoyaltyEngageClient()
    return _loyalty_client


async def close_loyalty_client() -> None:
    """Close and forget the loyalty client singleton."""
    global _loyalty_client
    if _loyalty_client is not None:
        await _loyalty_client.close()
        _loyalty_client = None
