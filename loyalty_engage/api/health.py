"""Health check endpoints.

Provides endpoints for monitoring service health and readiness.
"""

import structlog
from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel
from sqlalchemy import text

from loyalty_engage.api.dependencies import SessionDep
from loyalty_engage.application.dispatch import get_dispatch_queue
from loyalty_engage.infrastructure.config import settings

logger = structlog.get_logger()

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    service: str
    version: str


class ReadinessResponse(BaseModel):
    """Readiness check response schema."""

    status: str
    database: str
    queued_messages: int


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Check service health.

    Returns:
        Health status with service name and version.
    """
    return HealthResponse(
        status="healthy",
        service="loyalty-engage-connector",
        version=settings.api_version,
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(session: SessionDep) -> ReadinessResponse:
    """Check if service is ready to accept requests.

    Returns:
        Readiness status with database state and dispatch backlog.

    Raises:
        HTTPException: 503 when the database is unreachable.
    """
    try:
        await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.error("Database readiness check failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"error_code": "NOT_READY", "message": "Database unavailable"},
        )

    return ReadinessResponse(
        status="ready",
        database="ok",
        queued_messages=get_dispatch_queue().qsize(),
    )
