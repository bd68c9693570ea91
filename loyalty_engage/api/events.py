"""Inbound storefront event endpoints.

The storefront reports domain events here; matching events are turned
into loyalty messages and queued for delivery. Both endpoints answer
202 as soon as the messages are queued.
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, status

from loyalty_engage.api.dependencies import get_subscriber
from loyalty_engage.api.schemas import (
    EventAcceptedResponse,
    LineItemRemovedRequest,
    StateTransitionRequest,
)
from loyalty_engage.application.subscribers import LoyaltyEventSubscriber

logger = structlog.get_logger()

router = APIRouter(prefix="/events", tags=["Events"])

SubscriberDep = Annotated[LoyaltyEventSubscriber, Depends(get_subscriber)]


@router.post(
    "/state-transition",
    response_model=EventAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Report a state machine transition",
)
async def state_transition(
    request: StateTransitionRequest, subscriber: SubscriberDep
) -> EventAcceptedResponse:
    logger.info(
        "State transition received",
        entity_name=request.entity_name,
        entity_id=request.entity_id,
        to_state=request.to_state,
    )
    queued = await subscriber.on_state_transition(
        request.entity_name,
        request.entity_id,
        request.to_state,
    )
    return EventAcceptedResponse(queued=[m.event_type for m in queued])


@router.post(
    "/line-item-removed",
    response_model=EventAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Report a removed cart line item",
)
async def line_item_removed(
    request: LineItemRemovedRequest, subscriber: SubscriberDep
) -> EventAcceptedResponse:
    queued = subscriber.on_line_item_removed(
        email=request.email,
        product_id=request.product_id,
        quantity=request.quantity,
        unit_price=request.unit_price,
        item_type=request.type,
    )
    return EventAcceptedResponse(queued=[m.event_type for m in queued])
