"""Scheduler for the periodic sweeps.

Registers the cart expiry and order placement sweeps on interval
triggers. Each job runs at most once at a time and missed runs are
coalesced into one.
"""

import inspect
from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from loyalty_engage.application.sweeps import (
    CartExpirySweep,
    OrderPlaceSweep,
    get_cart_expiry_sweep,
    get_order_place_sweep,
)
from loyalty_engage.infrastructure.config import Settings, settings

logger = structlog.get_logger()

CART_EXPIRY_JOB_ID = "loyalty-cart-expiry"
ORDER_PLACE_JOB_ID = "loyalty-order-place"


class SweepScheduler:
    """Runs the sweeps on fixed intervals."""

    def __init__(
        self,
        cart_expiry: CartExpirySweep | None = None,
        order_place: OrderPlaceSweep | None = None,
        config: Settings | None = None,
    ) -> None:
        self.cart_expiry = cart_expiry or get_cart_expiry_sweep()
        self.order_place = order_place or get_order_place_sweep()
        self.config = config or settings
        self._scheduler: AsyncIOScheduler | None = None

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None

    def start(self) -> None:
        """Register both sweeps and start the scheduler."""
        if self._scheduler is not None:
            return

        scheduler = AsyncIOScheduler(timezone="UTC")
        jobs = [
            (
                CART_EXPIRY_JOB_ID,
                self.cart_expiry.run,
                self.config.cart_expiry_interval_seconds,
            ),
            (
                ORDER_PLACE_JOB_ID,
                self.order_place.run,
                self.config.order_place_interval_seconds,
            ),
        ]
        for job_id, func, seconds in jobs:
            scheduler.add_job(
                self._wrap(job_id, func),
                trigger=IntervalTrigger(seconds=seconds),
                id=job_id,
                max_instances=1,
                coalesce=True,
                replace_existing=True,
            )
            logger.info("Registered sweep job", job_id=job_id, interval_seconds=seconds)

        scheduler.start()
        self._scheduler = scheduler
        logger.info("Sweep scheduler started", jobs=len(jobs))

    async def stop(self) -> None:
        """Stop the scheduler without waiting for running jobs."""
        if self._scheduler is None:
            return
        result = self._scheduler.shutdown(wait=False)
        if inspect.isawaitable(result):
            await result
        self._scheduler = None
        logger.info("Sweep scheduler stopped")

    def job_ids(self) -> list[str]:
        """Identifiers of the registered jobs."""
        if self._scheduler is None:
            return []
        return [job.id for job in self._scheduler.get_jobs()]

    @staticmethod
    def _wrap(
        job_id: str, func: Callable[[], Awaitable[Any]]
    ) -> Callable[[], Awaitable[None]]:
        async def _runner() -> None:
            try:
                summary = await func()
            except Exception as e:
                logger.exception("Sweep job failed", job_id=job_id, error=str(e))
                return
            logger.debug("Sweep job finished", job_id=job_id, summary=summary.to_dict())

        return _runner
