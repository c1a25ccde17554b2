"""
Dispatch scheduler: automatic driver assignment after a bounded delay.

Each pending booking gets one cancellable asyncio task. When it fires it
calls ``request_assignment`` exactly once. Losing to a manual trigger or a
cancellation is the expected outcome of a race and is only logged.
"""
import asyncio
import logging
from datetime import datetime, timezone

from ridebook.errors import (
    BookingError,
    InvalidTransitionError,
    NotFoundError,
)
from ridebook.schemas.schemas import BookingEvent, BookingStatusEnum
from ridebook.services.durable_store import DurableStore
from ridebook.services.lifecycle import LifecycleEngine

logger = logging.getLogger(__name__)


class DispatchScheduler:
    def __init__(self, engine: LifecycleEngine, window_seconds: float = 15.0):
        self.engine = engine
        self.window_seconds = window_seconds
        self._timers: dict[str, asyncio.Task] = {}

    def armed(self, booking_id: str) -> bool:
        return booking_id in self._timers

    def arm(self, booking_id: str, delay: float | None = None) -> bool:
        """Start the countdown for a booking. Returns False if one is already running."""
        if booking_id in self._timers:
            return False
        delay = self.window_seconds if delay is None else max(delay, 0.0)
        self._timers[booking_id] = asyncio.create_task(
            self._fire_after(booking_id, delay), name=f"dispatch:{booking_id}"
        )
        logger.info("Armed dispatch timer for booking=%s (%.1fs)", booking_id, delay)
        return True

    def disarm(self, booking_id: str) -> bool:
        task = self._timers.pop(booking_id, None)
        if task is None:
            return False
        task.cancel()
        logger.info("Disarmed dispatch timer for booking=%s", booking_id)
        return True

    async def _fire_after(self, booking_id: str, delay: float) -> None:
        await asyncio.sleep(delay)
        # Leave the registry first so the resulting transition event cannot cancel this task
        self._timers.pop(booking_id, None)
        try:
            await self.engine.request_assignment(booking_id)
        except (InvalidTransitionError, NotFoundError) as exc:
            logger.info("Dispatch timer for booking=%s found nothing to do: %s", booking_id, exc)
        except BookingError as exc:
            logger.error("Dispatch failed for booking=%s: %s", booking_id, exc)
        except Exception as exc:
            logger.error("Unexpected dispatch error for booking=%s: %s", booking_id, exc, exc_info=True)

    async def on_booking_event(self, event: BookingEvent) -> None:
        """Store observer: arm on creation, disarm once a booking leaves pending."""
        booking = event.booking
        if booking.status == BookingStatusEnum.pending:
            if event.previous_status is None:
                self.arm(booking.id)
        else:
            self.disarm(booking.id)

    async def reconcile(self, durable: DurableStore) -> int:
        """
        Re-arm timers for pending bookings that lost theirs (e.g. a restart).
        Each gets whatever is left of its window, firing immediately if overdue.
        """
        now = datetime.now(timezone.utc)
        pending = await durable.query_by_status(BookingStatusEnum.pending)
        armed = 0
        for booking in pending:
            age = (now - booking.created_at).total_seconds()
            if self.arm(booking.id, delay=self.window_seconds - age):
                armed += 1
        if armed:
            logger.info("Reconciled %d pending bookings", armed)
        return armed

    async def shutdown(self) -> None:
        tasks = list(self._timers.values())
        self._timers.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
