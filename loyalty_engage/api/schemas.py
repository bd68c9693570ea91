"""API schemas for the loyalty connector.

Pydantic models for request/response validation and serialization.
Request bodies use the storefront's camelCase field names.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class CamelModel(BaseModel):
    """Base model accepting both camelCase aliases and field names."""

    model_config = ConfigDict(populate_by_name=True)


# ============================================================================
# Common Schemas
# ============================================================================


class ErrorDetail(BaseModel):
    """Detailed error information."""

    field: str | None = Field(default=None, description="Field that caused the error")
    message: str = Field(..., description="Error message")


class ErrorResponse(BaseModel):
    """Standard error response.

    All API errors follow this format for consistency.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: list[Any] = Field(default_factory=list, description="Additional error details")
    request_id: str | None = Field(default=None, description="Request ID for correlation")


# ============================================================================
# Loyalty Cart Schemas
# ============================================================================


class CartProductRequest(CamelModel):
    """Request naming a customer and a loyalty product."""

    email: str = Field(..., description="Customer email")
    product_id: str = Field(default="", alias="productId", description="Product ID")


class CartRemoveAllRequest(CamelModel):
    """Request to clear a customer's loyalty cart."""

    email: str = Field(..., description="Customer email")


class ClaimDiscountRequest(CartProductRequest):
    """Request to add a product and claim a points discount."""

    discount: float = Field(
        default=0.1,
        gt=0,
        le=1,
        description="Discount rate to claim (0.1 = 10%)",
    )


class CartActionResponse(BaseModel):
    """Outcome of a loyalty cart operation."""

    success: bool
    message: str


# ============================================================================
# Customer Schemas
# ============================================================================


class CustomerLookupRequest(CamelModel):
    """Request to read a customer's loyalty data."""

    email: str = Field(..., description="Customer email")


class CustomerUpdateRequest(CamelModel):
    """Request to update a customer's loyalty fields.

    Omitted fields keep their stored value.
    """

    email: str = Field(..., description="Customer email")
    le_current_tier: str | None = None
    le_points: int | None = None
    le_available_coins: int | None = None
    le_next_tier: str | None = None
    le_points_to_next_tier: int | None = None

    def loyalty_fields(self) -> dict[str, Any]:
        """Loyalty fields that were provided."""
        return self.model_dump(exclude={"email"}, exclude_none=True)


class LoyaltyDataSchema(BaseModel):
    """Loyalty fields of a customer."""

    le_current_tier: str | None = None
    le_points: int = 0
    le_available_coins: int = 0
    le_next_tier: str | None = None
    le_points_to_next_tier: int = 0


class CustomerLoyaltyResponse(BaseModel):
    """Customer loyalty data."""

    success: bool = True
    customer_id: str
    email: str
    loyalty_data: LoyaltyDataSchema


class CustomerUpdateResponse(BaseModel):
    """Outcome of a loyalty data update."""

    success: bool = True
    customer_id: str
    message: str


class RuleMatchRequest(CamelModel):
    """Request to evaluate a loyalty rule for a customer."""

    email: str | None = Field(default=None, description="Customer email, omitted for guests")
    kind: Literal["tier", "points", "coins"] = Field(..., description="Profile field compared")
    operator: str = Field(default="=", description="Comparison operator")
    value: str | int | None = Field(default=None, description="Threshold to compare against")


class RuleMatchResponse(BaseModel):
    """Outcome of a rule evaluation."""

    success: bool = True
    rule: str
    matched: bool


# ============================================================================
# Event Schemas
# ============================================================================


class StateTransitionRequest(CamelModel):
    """A storefront state machine transition."""

    entity_name: str = Field(..., alias="entityName", description="e.g. order, order_delivery")
    entity_id: str = Field(..., alias="entityId")
    to_state: str = Field(..., alias="toState", description="e.g. completed, returned")


class LineItemRemovedRequest(CamelModel):
    """A line item removed from a storefront cart."""

    email: str | None = None
    product_id: str | None = Field(default=None, alias="productId")
    quantity: int = Field(default=1, ge=1)
    unit_price: float = Field(default=0, alias="unitPrice", ge=0)
    type: str = Field(default="product", description="Line item type")


class EventAcceptedResponse(BaseModel):
    """Acknowledgement of an inbound event."""

    accepted: bool = True
    queued: list[str] = Field(
        default_factory=list, description="Types of the loyalty messages queued"
    )


# ============================================================================
# Task Schemas
# ============================================================================


class CartExpirySummarySchema(BaseModel):
    """Counters of one cart expiry sweep."""

    processed: int
    deactivated: int
    failed: int
    skipped: int


class OrderPlaceSummarySchema(BaseModel):
    """Counters of one order placement sweep."""

    processed: int
    placed: int
    failed: int
