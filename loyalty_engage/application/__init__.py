"""Application layer module.

Contains the dispatch pipeline, event subscribers, periodic sweeps and
the storefront-facing services.
"""

from loyalty_engage.application.cart_service import (
    CartActionResult,
    LoyaltyCartService,
)
from loyalty_engage.application.customer_service import (
    CustomerLoyaltyResult,
    CustomerLoyaltyService,
)
from loyalty_engage.application.dispatch import (
    DispatchQueue,
    DispatchWorker,
    HandlerRegistry,
    get_dispatch_queue,
    get_dispatch_worker,
)
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

__all__ = [
    "CartActionResult",
    "LoyaltyCartService",
    "CustomerLoyaltyResult",
    "CustomerLoyaltyService",
    "DispatchQueue",
    "DispatchWorker",
    "HandlerRegistry",
    "get_dispatch_queue",
    "get_dispatch_worker",
    "LoyaltyEventSubscriber",
    "get_event_subscriber",
    "CartExpirySweep",
    "OrderPlaceSweep",
    "get_cart_expiry_sweep",
    "get_order_place_sweep",
]
