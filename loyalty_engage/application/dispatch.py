"""Loyalty message dispatch.

Decouples event detection from delivery:
- DispatchQueue accepts messages without waiting for the remote API
- HandlerRegistry maps each message type to exactly one handler
- DispatchWorker consumes the queue in a background task

Handlers never raise. A failed delivery is logged and reported through
the returned DispatchOutcome; the worker keeps running.
"""

import asyncio
import contextlib
from collections.abc import Awaitable, Callable

import structlog

from loyalty_engage.domain.base import LoyaltyMessage
from loyalty_engage.domain.exceptions import UnknownMessageTypeError
from loyalty_engage.domain.messages import (
    FreeProductPurchaseMessage,
    FreeProductRemoveMessage,
    PurchaseMessage,
    ReturnMessage,
)
from loyalty_engage.infrastructure.loyalty_client import (
    DispatchOutcome,
    LoyaltyEngageClient,
    get_loyalty_client,
)

logger = structlog.get_logger()

Handler = Callable[[LoyaltyMessage], Awaitable[int | None]]


# ============================================================================
# Handlers
# ============================================================================


class HandlerRegistry:
    """Routes each message to the remote call for its type."""

    def __init__(self, client: LoyaltyEngageClient | None = None) -> None:
        """Initialize registry.

        Args:
            client: Loyalty API client.
        """
        self.client = client or get_loyalty_client()
        self._handlers: dict[type[LoyaltyMessage], Handler] = {
            PurchaseMessage: self._send_event,
            ReturnMessage: self._send_event,
            FreeProductPurchaseMessage: self._place_order,
            FreeProductRemoveMessage: self._remove_item,
        }

    def handler_for(self, message: LoyaltyMessage) -> Handler:
        """Look up the handler for a message.

        Raises:
            UnknownMessageTypeError: If the type has no handler.
        """
        handler = self._handlers.get(type(message))
        if handler is None:
            raise UnknownMessageTypeError(type(message).__name__)
        return handler

    async def handle(self, message: LoyaltyMessage) -> DispatchOutcome:
        """Deliver one message to the remote API.

        Args:
            message: Message to deliver.

        Returns:
            Outcome of the remote call. Exceptions are logged and
            reported as an outcome without status.
        """
        context = message.log_context()
        logger.info("Processing loyalty message", **context)

        try:
            handler = self.handler_for(message)
            status_code = await handler(message)
        except Exception as e:
            logger.exception(
                "Error processing loyalty message",
                error=str(e),
                **context,
            )
            return DispatchOutcome(status_code=None)

        outcome = DispatchOutcome(status_code=status_code)
        if outcome.succeeded:
            logger.info("Loyalty message sent successfully", **context)
        else:
            logger.error(
                "Failed to send loyalty message",
                response=status_code,
                **context,
            )
        return outcome

    async def _send_event(self, message: LoyaltyMessage) -> int | None:
        return await self.client.send_event(
            message.to_payload(),
            idempotency_key=message.idempotency_key,
        )

    async def _place_order(self, message: FreeProductPurchaseMessage) -> int | None:
        payload = message.to_payload()
        return await self.client.place_order(
            message.email,
            payload["orderId"],
            payload["products"],
            idempotency_key=message.idempotency_key,
        )

    async def _remove_item(self, message: FreeProductRemoveMessage) -> int | None:
        return await self.client.remove_item(
            message.email,
            message.product_id,
            message.quantity,
        )


# ============================================================================
# Queue and Worker
# ============================================================================


class DispatchQueue:
    """In-process queue of messages awaiting delivery."""

    def __init__(self) -> None:
        """Initialize queue."""
        self._queue: asyncio.Queue[LoyaltyMessage] = asyncio.Queue()

    def enqueue(self, message: LoyaltyMessage) -> None:
        """Schedule a message for delivery and return immediately."""
        self._queue.put_nowait(message)
        logger.debug("Loyalty message queued", **message.log_context())

    async def get(self) -> LoyaltyMessage:
        """Wait for the next message."""
        return await self._queue.get()

    def task_done(self) -> None:
        """Mark the last message returned by get() as handled."""
        self._queue.task_done()

    async def join(self) -> None:
        """Wait until every queued message was handled."""
        await self._queue.join()

    def qsize(self) -> int:
        """Number of messages waiting."""
        return self._queue.qsize()


class DispatchWorker:
    """Background consumer of the dispatch queue."""

    def __init__(
        self,
        queue: DispatchQueue | None = None,
        registry: HandlerRegistry | None = None,
    ) -> None:
        """Initialize worker.

        Args:
            queue: Queue to consume.
            registry: Handlers for dequeued messages.
        """
        self.queue = queue or get_dispatch_queue()
        self.registry = registry or HandlerRegistry()
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        """Whether the consumer task is alive."""
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start consuming in a background task."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="loyalty-dispatch-worker")
        logger.info("Dispatch worker started")

    async def _run(self) -> None:
        while True:
            message = await self.queue.get()
            try:
                await self.registry.handle(message)
            finally:
                self.queue.task_done()

    async def drain(self) -> None:
        """Wait until every queued message was handled."""
        await self.queue.join()

    async def stop(self) -> None:
        """Cancel the consumer task."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Dispatch worker stopped")


# Global instances
_dispatch_queue: DispatchQueue | None = None
_dispatch_worker: DispatchWorker | None = None


def get_dispatch_queue() -> DispatchQueue:
    """Get the dispatch queue singleton.

    Returns:
        DispatchQueue instance.
    """
    global _dispatch_queue
    if _dispatch_queue is None:
        _dispatch_queue = DispatchQueue()
    return _dispatch_queue


def get_dispatch_worker() -> DispatchWorker:
    """Get the dispatch worker singleton.

    Returns:
        DispatchWorker bound to the dispatch queue singleton.
    """
    global _dispatch_worker
    if _dispatch_worker is None:
        _dispatch_worker = DispatchWorker(queue=get_dispatch_queue())
    return _dispatch_worker


def reset_dispatch() -> None:
    """Reset the dispatch singletons (for testing)."""
    global _dispatch_queue, _dispatch_worker
    _dispatch_queue = None
    _dispatch_worker = None
