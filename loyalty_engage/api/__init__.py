"""API layer module.

Contains FastAPI routers, middleware and request/response schemas.
"""

from loyalty_engage.api.cart import router as cart_router
from loyalty_engage.api.customers import router as customers_router
from loyalty_engage.api.events import router as events_router
from loyalty_engage.api.health import router as health_router
from loyalty_engage.api.tasks import router as tasks_router

__all__ = [
    "cart_router",
    "customers_router",
    "events_router",
    "health_router",
    "tasks_router",
]
