"""Loyalty cart API endpoints.

Provides endpoints called by the storefront:
- POST /loyalty/cart/add - reserve a loyalty product
- POST /loyalty/cart/remove - release one unit of a loyalty product
- POST /loyalty/cart/remove-all - clear the loyalty cart
- POST /loyalty/cart/claim-discount - add a product and claim a discount code
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from loyalty_engage.api.dependencies import get_cart_service
from loyalty_engage.api.schemas import (
    CartActionResponse,
    CartProductRequest,
    CartRemoveAllRequest,
    ClaimDiscountRequest,
)
from loyalty_engage.application.cart_service import CartActionResult, LoyaltyCartService

router = APIRouter(prefix="/loyalty/cart", tags=["Loyalty Cart"])

CartServiceDep = Annotated[LoyaltyCartService, Depends(get_cart_service)]


def _respond(result: CartActionResult) -> JSONResponse:
    """200 on success, 400 otherwise, with the `{success, message}` body."""
    return JSONResponse(
        status_code=status.HTTP_200_OK if result.success else status.HTTP_400_BAD_REQUEST,
        content=CartActionResponse(**result.to_dict()).model_dump(),
    )


@router.post(
    "/add",
    response_model=CartActionResponse,
    summary="Add a product to the loyalty cart",
)
async def add_product(request: CartProductRequest, service: CartServiceDep) -> JSONResponse:
    result = await service.add_product(request.email, request.product_id)
    return _respond(result)


@router.post(
    "/remove",
    response_model=CartActionResponse,
    summary="Remove a product from the loyalty cart",
)
async def remove_product(request: CartProductRequest, service: CartServiceDep) -> JSONResponse:
    result = await service.remove_product(request.email, request.product_id)
    return _respond(result)


@router.post(
    "/remove-all",
    response_model=CartActionResponse,
    summary="Remove all products from the loyalty cart",
)
async def remove_all_products(
    request: CartRemoveAllRequest, service: CartServiceDep
) -> JSONResponse:
    result = await service.remove_all_products(request.email)
    return _respond(result)


@router.post(
    "/claim-discount",
    response_model=CartActionResponse,
    summary="Add a product and claim a loyalty discount",
)
async def claim_discount(
    request: ClaimDiscountRequest, service: CartServiceDep
) -> JSONResponse:
    """Add a product, claim a points discount and apply its code to the cart."""
    result = await service.claim_discount_after_add_to_cart(
        request.email,
        request.product_id,
        request.discount,
    )
    return _respond(result)
