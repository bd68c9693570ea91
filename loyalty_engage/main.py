"""Loyalty Engage connector main application module.

This module initializes the FastAPI application and configures
core middleware, routers, and startup/shutdown events.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from loyalty_engage.api.cart import router as cart_router
from loyalty_engage.api.customers import router as customers_router
from loyalty_engage.api.events import router as events_router
from loyalty_engage.api.health import router as health_router
from loyalty_engage.api.middleware import error_body, setup_middleware
from loyalty_engage.api.tasks import router as tasks_router
from loyalty_engage.application.dispatch import get_dispatch_worker
from loyalty_engage.application.scheduler import SweepScheduler
from loyalty_engage.infrastructure.config import settings
from loyalty_engage.infrastructure.database import engine
from loyalty_engage.infrastructure.logging import configure_logging
from loyalty_engage.infrastructure.loyalty_client import close_loyalty_client

configure_logging(settings.log_level)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup and shutdown events.

    Starts the dispatch worker and, when enabled, the sweep scheduler.

    Args:
        app: The FastAPI application instance.

    Yields:
        None after startup, cleanup happens after yield.
    """
    logger.info(
        "Starting Loyalty Engage connector",
        version=settings.api_version,
        debug=settings.debug,
    )

    worker = get_dispatch_worker()
    worker.start()

    scheduler = SweepScheduler()
    if settings.scheduler_enabled:
        scheduler.start()
    else:
        logger.info("Sweep scheduler disabled")

    yield

    logger.info("Shutting down Loyalty Engage connector")
    await scheduler.stop()
    await worker.stop()
    await close_loyalty_client()
    await engine.dispose()


app = FastAPI(
    title="Loyalty Engage Connector",
    description="Synchronizes storefront carts, orders and customers with Loyalty Engage",
    version=settings.api_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Request ID, API key auth, error handling
setup_middleware(app)

app.include_router(health_router, tags=["Health"])
app.include_router(cart_router)
app.include_router(customers_router)
app.include_router(events_router)
app.include_router(tasks_router)


# ============================================================================
# Custom Exception Handlers
# ============================================================================


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions with consistent format."""
    request_id = getattr(request.state, "request_id", None)

    detail = exc.detail
    if isinstance(detail, dict):
        error_code = detail.get("error_code", "ERROR")
        message = detail.get("message", str(detail))
        details = detail.get("details", [])
    else:
        error_code = "ERROR"
        message = str(detail)
        details = []

    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(error_code, message, request_id, details),
        headers=getattr(exc, "headers", None),
    )
