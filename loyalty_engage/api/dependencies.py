"""FastAPI dependencies shared by the routers."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from loyalty_engage.application.cart_service import LoyaltyCartService
from loyalty_engage.application.customer_service import CustomerLoyaltyService
from loyalty_engage.application.subscribers import (
    LoyaltyEventSubscriber,
    get_event_subscriber,
)
from loyalty_engage.application.sweeps import (
    CartExpirySweep,
    OrderPlaceSweep,
    get_cart_expiry_sweep,
    get_order_place_sweep,
)
from loyalty_engage.infrastructure.database import get_session
from loyalty_engage.infrastructure.loyalty_client import (
    LoyaltyEngageClient,
    get_loyalty_client,
)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session, committed when the handler returns."""
    async for session in get_session():
        yield session


def get_client() -> LoyaltyEngageClient:
    """Loyalty API client."""
    return get_loyalty_client()


def get_subscriber() -> LoyaltyEventSubscriber:
    """Event subscriber feeding the dispatch queue."""
    return get_event_subscriber()


def get_cart_expiry() -> CartExpirySweep:
    """Cart expiry sweep."""
    return get_cart_expiry_sweep()


def get_order_place() -> OrderPlaceSweep:
    """Order placement sweep."""
    return get_order_place_sweep()


SessionDep = Annotated[AsyncSession, Depends(get_db_session)]
ClientDep = Annotated[LoyaltyEngageClient, Depends(get_client)]


def get_cart_service(session: SessionDep, client: ClientDep) -> LoyaltyCartService:
    """Loyalty cart service bound to the request session."""
    return LoyaltyCartService(session, client=client)


def get_customer_service(session: SessionDep) -> CustomerLoyaltyService:
    """Customer loyalty service bound to the request session."""
    return CustomerLoyaltyService(session)
