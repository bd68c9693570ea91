"""Manual sweep triggers.

- POST /tasks/cart-expiry/run - run one cart expiry sweep
- POST /tasks/order-place/run - run one order placement sweep

A manual run waits for a scheduled run of the same sweep to finish.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from loyalty_engage.api.dependencies import get_cart_expiry, get_order_place
from loyalty_engage.api.schemas import CartExpirySummarySchema, OrderPlaceSummarySchema
from loyalty_engage.application.sweeps import CartExpirySweep, OrderPlaceSweep

router = APIRouter(prefix="/tasks", tags=["Tasks"])


@router.post("/cart-expiry/run", response_model=CartExpirySummarySchema)
async def run_cart_expiry(
    sweep: Annotated[CartExpirySweep, Depends(get_cart_expiry)],
) -> CartExpirySummarySchema:
    summary = await sweep.run()
    return CartExpirySummarySchema(**summary.to_dict())


@router.post("/order-place/run", response_model=OrderPlaceSummarySchema)
async def run_order_place(
    sweep: Annotated[OrderPlaceSweep, Depends(get_order_place)],
) -> OrderPlaceSummarySchema:
    summary = await sweep.run()
    return OrderPlaceSummarySchema(**summary.to_dict())
