"""Customer loyalty API endpoints.

- POST /loyalty/customer/get - read a customer's loyalty fields
- POST /loyalty/customer/update - update a customer's loyalty fields
- POST /loyalty/customer/match-rule - evaluate a tier, points or coins rule
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from loyalty_engage.api.dependencies import get_customer_service
from loyalty_engage.api.schemas import (
    CustomerLoyaltyResponse,
    CustomerLookupRequest,
    CustomerUpdateRequest,
    CustomerUpdateResponse,
    ErrorResponse,
    LoyaltyDataSchema,
    RuleMatchRequest,
    RuleMatchResponse,
)
from loyalty_engage.application.customer_service import (
    CustomerErrorCode,
    CustomerLoyaltyResult,
    CustomerLoyaltyService,
)
from loyalty_engage.domain.rules import build_rule

router = APIRouter(prefix="/loyalty/customer", tags=["Customer Loyalty"])

CustomerServiceDep = Annotated[CustomerLoyaltyService, Depends(get_customer_service)]


def _raise_for(result: CustomerLoyaltyResult, not_found_status: int) -> None:
    if result.success:
        return
    status_code = (
        not_found_status
        if result.error_code == CustomerErrorCode.CUSTOMER_NOT_FOUND
        else status.HTTP_400_BAD_REQUEST
    )
    raise HTTPException(
        status_code=status_code,
        detail={
            "error_code": result.error_code.value if result.error_code else "ERROR",
            "message": result.message,
        },
    )


@router.post(
    "/get",
    response_model=CustomerLoyaltyResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid email"},
        404: {"model": ErrorResponse, "description": "Customer not found"},
    },
    summary="Get customer loyalty data",
)
async def get_customer_loyalty(
    request: CustomerLookupRequest, service: CustomerServiceDep
) -> CustomerLoyaltyResponse:
    result = await service.get_customer_loyalty_data(request.email)
    _raise_for(result, status.HTTP_404_NOT_FOUND)
    return CustomerLoyaltyResponse(
        customer_id=result.customer_id,
        email=result.email,
        loyalty_data=LoyaltyDataSchema(**result.loyalty_data),
    )


@router.post(
    "/update",
    response_model=CustomerUpdateResponse,
    responses={400: {"model": ErrorResponse, "description": "Update rejected"}},
    summary="Update customer loyalty data",
)
async def update_customer_loyalty(
    request: CustomerUpdateRequest, service: CustomerServiceDep
) -> CustomerUpdateResponse:
    """Update the provided loyalty fields; unknown customers are a 400."""
    result = await service.update_customer_loyalty_data(
        request.email, request.loyalty_fields()
    )
    _raise_for(result, status.HTTP_400_BAD_REQUEST)
    return CustomerUpdateResponse(customer_id=result.customer_id, message=result.message)


@router.post(
    "/match-rule",
    response_model=RuleMatchResponse,
    responses={400: {"model": ErrorResponse, "description": "Unsupported rule"}},
    summary="Evaluate a customer loyalty rule",
)
async def match_rule(
    request: RuleMatchRequest, service: CustomerServiceDep
) -> RuleMatchResponse:
    """Check a tier, points or coins condition against the stored profile.

    Unknown customers and guests never match.
    """
    try:
        rule = build_rule(request.kind, request.operator, request.value)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error_code": "INVALID_RULE", "message": str(e)},
        ) from e
    matched = await service.matches_rule(request.email, rule)
    return RuleMatchResponse(rule=rule.name, matched=matched)
