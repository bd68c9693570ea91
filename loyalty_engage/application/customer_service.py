"""Customer loyalty service.

Reads and updates the loyalty fields stored on a customer, and
evaluates customer rules against them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from loyalty_engage.domain.rules import CustomerRule
from loyalty_engage.domain.value_objects import LoyaltyProfile, is_valid_email
from loyalty_engage.infrastructure.models import CustomerModel
from loyalty_engage.infrastructure.repositories import CustomerRepository

logger = structlog.get_logger()

STRING_FIELDS = ("le_current_tier", "le_next_tier")
NUMBER_FIELDS = ("le_points", "le_available_coins", "le_points_to_next_tier")
LOYALTY_FIELDS = STRING_FIELDS + NUMBER_FIELDS


class CustomerErrorCode(str, Enum):
    """Error codes of customer loyalty operations."""

    INVALID_EMAIL = "INVALID_EMAIL"
    CUSTOMER_NOT_FOUND = "CUSTOMER_NOT_FOUND"
    INVALID_DATA = "INVALID_DATA"


@dataclass
class CustomerLoyaltyResult:
    """Result of a customer loyalty operation.

    Attributes:
        success: Whether the operation went through.
        message: Outcome message, set on failure and on update.
        error_code: Machine-readable failure reason.
        customer_id: Customer identifier when found.
        email: Customer email when found.
        loyalty_data: Loyalty fields with defaults applied.
    """

    success: bool
    message: str | None = None
    error_code: CustomerErrorCode | None = None
    customer_id: str | None = None
    email: str | None = None
    loyalty_data: dict[str, Any] | None = None

    @classmethod
    def failure(cls, code: CustomerErrorCode, message: str) -> "CustomerLoyaltyResult":
        return cls(success=False, message=message, error_code=code)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, omitting unset fields."""
        data: dict[str, Any] = {"success": self.success}
        if self.message is not None:
            data["message"] = self.message
        if self.customer_id is not None:
            data["customer_id"] = self.customer_id
        if self.email is not None:
            data["email"] = self.email
        if self.loyalty_data is not None:
            data["loyalty_data"] = self.loyalty_data
        return data


def profile_of(customer: CustomerModel) -> LoyaltyProfile:
    """Build the loyalty profile of a stored customer."""
    return LoyaltyProfile(
        current_tier=customer.le_current_tier,
        points=customer.le_points,
        available_coins=customer.le_available_coins,
        next_tier=customer.le_next_tier,
        points_to_next_tier=customer.le_points_to_next_tier,
    )


class CustomerLoyaltyService:
    """Service for customer loyalty data."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize service with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self.session = session
        self.customers = CustomerRepository(session)

    async def _find(
        self, email: str | None
    ) -> tuple[CustomerModel | None, CustomerLoyaltyResult | None]:
        if not is_valid_email(email):
            return None, CustomerLoyaltyResult.failure(
                CustomerErrorCode.INVALID_EMAIL, "Invalid email address provided"
            )

        customer = await self.customers.get_by_email(email.strip())
        if customer is None:
            return None, CustomerLoyaltyResult.failure(
                CustomerErrorCode.CUSTOMER_NOT_FOUND,
                f"Customer not found with email: {email}",
            )
        return customer, None

    async def get_customer_loyalty_data(self, email: str | None) -> CustomerLoyaltyResult:
        """Get a customer's loyalty fields.

        Args:
            email: Customer email.

        Returns:
            Result with `loyalty_data`; missing tiers are None and
            missing numbers are 0.
        """
        customer, failure = await self._find(email)
        if failure is not None:
            return failure

        return CustomerLoyaltyResult(
            success=True,
            customer_id=customer.id,
            email=customer.email,
            loyalty_data=profile_of(customer).to_dict(),
        )

    async def update_customer_loyalty_data(
        self,
        email: str | None,
        data: dict[str, Any],
    ) -> CustomerLoyaltyResult:
        """Update the provided loyalty fields of a customer.

        Fields absent from `data` (or None) are left untouched; numeric
        fields are coerced to int.

        Args:
            email: Customer email.
            data: Loyalty fields keyed by their `le_*` names.

        Returns:
            Operation result.
        """
        customer, failure = await self._find(email)
        if failure is not None:
            return failure

        updates: dict[str, Any] = {}
        try:
            for name in STRING_FIELDS:
                if data.get(name) is not None:
                    updates[name] = str(data[name])
            for name in NUMBER_FIELDS:
                if data.get(name) is not None:
                    updates[name] = int(data[name])
        except (TypeError, ValueError) as e:
            logger.error(
                "Invalid customer loyalty data",
                email=email,
                error=str(e),
            )
            return CustomerLoyaltyResult.failure(
                CustomerErrorCode.INVALID_DATA,
                f"Error updating customer loyalty data: {e}",
            )

        for name, value in updates.items():
            setattr(customer, name, value)
        await self.session.flush()
        logger.info(
            "Customer loyalty data updated successfully",
            customer_id=customer.id,
            email=customer.email,
        )
        return CustomerLoyaltyResult(
            success=True,
            message="Customer loyalty data updated successfully",
            customer_id=customer.id,
        )

    async def matches_rule(self, email: str | None, rule: CustomerRule) -> bool:
        """Evaluate a customer rule for the customer with this email.

        Unknown customers are treated as guests and never match.
        """
        profile = None
        if is_valid_email(email):
            customer = await self.customers.get_by_email(email.strip())
            if customer is not None:
                profile = profile_of(customer)
        return rule.match(profile)
