"""Loyalty cart service.

Storefront-facing operations on the loyalty cart. Every operation asks
the remote loyalty API first and only changes the local cart once the
remote side answered 200.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any
from uuid import uuid4

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from loyalty_engage.domain.value_objects import is_valid_email
from loyalty_engage.infrastructure.loyalty_client import (
    HTTP_OK,
    LoyaltyEngageClient,
    get_loyalty_client,
)
from loyalty_engage.infrastructure.models import CustomerModel, LoyaltyCartModel
from loyalty_engage.infrastructure.repositories import (
    CustomerRepository,
    LoyaltyCartRepository,
    PromotionRepository,
)

logger = structlog.get_logger()

DEFAULT_DISCOUNT_RATE = 0.1
PROMOTION_NAME = "LoyaltyEngage Auto Promotion"
INVALID_EMAIL_MESSAGE = "Invalid email address provided."


@dataclass
class CartActionResult:
    """Result of a loyalty cart operation.

    Attributes:
        success: Whether the operation went through.
        message: Human-readable outcome.
    """

    success: bool
    message: str

    @classmethod
    def ok(cls, message: str) -> "CartActionResult":
        return cls(success=True, message=message)

    @classmethod
    def error(cls, message: str) -> "CartActionResult":
        return cls(success=False, message=message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"success": self.success, "message": self.message}


def fallback_discount_code() -> str:
    """Generate a discount code for claims that returned none."""
    return f"LOYALTY-{uuid4().hex[:8].upper()}"


class LoyaltyCartService:
    """Service for loyalty cart operations.

    Example usage:
        async with async_session_factory() as session:
            service = LoyaltyCartService(session)
            result = await service.add_product("jane@example.com", "SKU-1")
            await session.commit()
    """

    def __init__(
        self,
        session: AsyncSession,
        client: LoyaltyEngageClient | None = None,
    ) -> None:
        """Initialize service with database session.

        Args:
            session: Async SQLAlchemy session.
            client: Loyalty API client.
        """
        self.session = session
        self.client = client or get_loyalty_client()
        self.customers = CustomerRepository(session)
        self.carts = LoyaltyCartRepository(session)
        self.promotions = PromotionRepository(session)

    async def _customer(self, email: str) -> CustomerModel:
        customer = await self.customers.get_by_email(email)
        if customer is None:
            customer = await self.customers.save(CustomerModel(email=email))
        return customer

    async def _active_cart(self, email: str) -> LoyaltyCartModel:
        customer = await self._customer(email)
        return await self.carts.get_or_create_active(customer.id)

    async def _existing_cart(self, email: str) -> LoyaltyCartModel | None:
        customer = await self.customers.get_by_email(email)
        if customer is None:
            return None
        return await self.carts.get_active_for_customer(customer.id)

    async def add_product(self, email: str, product_id: str) -> CartActionResult:
        """Add a loyalty product to the customer's cart.

        Args:
            email: Customer email.
            product_id: Product to add.

        Returns:
            Operation result.
        """
        if not email or not product_id:
            return CartActionResult.error("Email and Product ID are required.")
        if not is_valid_email(email):
            return CartActionResult.error(INVALID_EMAIL_MESSAGE)
        email = email.strip()

        try:
            status = await self.client.add_to_cart(email, product_id)
            if status != HTTP_OK:
                return CartActionResult.error(
                    "Product could not be added. User is not eligible."
                )

            cart = await self._active_cart(email)
            await self.carts.add_item(cart, product_id, quantity=1, unit_price=Decimal("0"))

            logger.info("Product added to loyalty cart", email=email, product_id=product_id)
            return CartActionResult.ok("Product added to loyalty cart successfully.")
        except Exception as e:
            logger.exception(
                "Error adding product to loyalty cart",
                email=email,
                product_id=product_id,
                error=str(e),
            )
            return CartActionResult.error(str(e))

    async def remove_product(self, email: str, product_id: str) -> CartActionResult:
        """Remove one unit of a loyalty product from the customer's cart.

        Args:
            email: Customer email.
            product_id: Product to remove.

        Returns:
            Operation result.
        """
        if not email or not product_id:
            return CartActionResult.error("Email and Product ID are required.")
        if not is_valid_email(email):
            return CartActionResult.error(INVALID_EMAIL_MESSAGE)
        email = email.strip()

        try:
            status = await self.client.remove_item(email, product_id, 1)
            if status != HTTP_OK:
                return CartActionResult.error(
                    "Product could not be removed from loyalty system."
                )

            cart = await self._existing_cart(email)
            if cart is not None:
                await self.carts.remove_item(cart, product_id)

            return CartActionResult.ok("Product removed from loyalty cart successfully.")
        except Exception as e:
            logger.exception(
                "Error removing product from loyalty cart",
                email=email,
                product_id=product_id,
                error=str(e),
            )
            return CartActionResult.error(str(e))

    async def remove_all_products(self, email: str) -> CartActionResult:
        """Clear the customer's loyalty cart.

        Args:
            email: Customer email.

        Returns:
            Operation result.
        """
        if not email:
            return CartActionResult.error("Email is required.")
        if not is_valid_email(email):
            return CartActionResult.error(INVALID_EMAIL_MESSAGE)
        email = email.strip()

        try:
            status = await self.client.remove_all_items(email)
            if status != HTTP_OK:
                return CartActionResult.error(
                    "Products could not be removed from loyalty system."
                )

            cart = await self._existing_cart(email)
            if cart is not None:
                await self.carts.clear_items(cart)

            return CartActionResult.ok(
                "All products removed from loyalty cart successfully."
            )
        except Exception as e:
            logger.exception(
                "Error removing all products from loyalty cart",
                email=email,
                error=str(e),
            )
            return CartActionResult.error(str(e))

    async def claim_discount_after_add_to_cart(
        self,
        email: str,
        product_id: str,
        discount: float = DEFAULT_DISCOUNT_RATE,
    ) -> CartActionResult:
        """Add a loyalty product and exchange points for a discount code.

        The claimed code is stored as a promotion and attached to the
        customer's active cart.

        Args:
            email: Customer email.
            product_id: Product to add.
            discount: Discount rate to claim (0.1 = 10%).

        Returns:
            Operation result.
        """
        if not email or not product_id:
            return CartActionResult.error("Email and Product ID are required.")
        if not is_valid_email(email):
            return CartActionResult.error(INVALID_EMAIL_MESSAGE)
        email = email.strip()

        try:
            status = await self.client.add_to_cart(email, product_id)
            if status != HTTP_OK:
                return CartActionResult.error("Failed to add product to loyalty cart.")

            claimed = await self.client.claim_discount(email, discount)
            if not claimed:
                return CartActionResult.error("No discount code returned.")

            code = claimed.get("discountCode") or fallback_discount_code()
            rate = claimed.get("discount")
            if rate is None:
                rate = discount
            await self.promotions.get_or_create(
                code=code,
                name=PROMOTION_NAME,
                discount_percent=Decimal(str(rate)) * 100,
            )

            cart = await self._active_cart(email)
            await self.carts.add_item(cart, product_id, quantity=1, unit_price=Decimal("0"))
            cart.promotion_code = code
            await self.session.flush()

            logger.info(
                "Loyalty discount applied",
                email=email,
                product_id=product_id,
                code=code,
            )
            return CartActionResult.ok(f"Product added and discount code '{code}' applied.")
        except Exception as e:
            logger.exception(
                "Error claiming discount",
                email=email,
                product_id=product_id,
                discount=discount,
                error=str(e),
            )
            return CartActionResult.error(str(e))
