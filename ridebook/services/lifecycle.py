"""
Booking lifecycle engine.

State machine:

    pending ──► confirmed ──► completed
       │
       └──────► cancelled

``request_assignment`` is the only path into ``confirmed``. It may be called
concurrently for one booking by the dispatch timer and a manual trigger; the
store's status-guarded update lets exactly one of them through and the rest
see InvalidTransitionError.
"""
import logging

from ridebook.errors import InvalidTransitionError
from ridebook.schemas.schemas import BookingRecord, BookingStatusEnum
from ridebook.services.booking_store import BookingStore
from ridebook.services.driver_pool import DriverPool
from ridebook.services.selection import DriverSelector

logger = logging.getLogger(__name__)

S = BookingStatusEnum

VALID_TRANSITIONS: dict[BookingStatusEnum, frozenset[BookingStatusEnum]] = {
    S.pending: frozenset({S.confirmed, S.cancelled}),
    S.confirmed: frozenset({S.completed}),
    S.completed: frozenset(),
    S.cancelled: frozenset(),
}


def is_valid_transition(current: BookingStatusEnum | str, next_state: BookingStatusEnum | str) -> bool:
    return S(next_state) in VALID_TRANSITIONS.get(S(current), frozenset())


class LifecycleEngine:
    def __init__(self, store: BookingStore, pool: DriverPool, selector: DriverSelector):
        self.store = store
        self.pool = pool
        self.selector = selector

    async def request_assignment(self, booking_id: str) -> BookingRecord:
        """
        Attach a driver to a pending booking.

        Raises NotFoundError, InvalidTransitionError (already assigned,
        cancelled or completed, including losing a race) and
        NoDriverAvailableError.
        """
        booking = await self.store.get(booking_id)
        self._check(booking, S.confirmed)

        driver = self.selector.select(self.pool.snapshot())
        confirmed = await self.store.apply_assignment(booking_id, driver)
        logger.info("Assigned driver=%s to booking=%s", driver.id, booking_id)
        return confirmed

    async def complete(self, booking_id: str) -> BookingRecord:
        return await self._transition(booking_id, S.confirmed, S.completed)

    async def cancel(self, booking_id: str) -> BookingRecord:
        return await self._transition(booking_id, S.pending, S.cancelled)

    async def _transition(
        self, booking_id: str, source: BookingStatusEnum, target: BookingStatusEnum
    ) -> BookingRecord:
        # The store decides legality against durable state; the projection may trail it
        return await self.store.apply_transition(booking_id, source, target)

    @staticmethod
    def _check(booking: BookingRecord, target: BookingStatusEnum) -> None:
        if not is_valid_transition(booking.status, target):
            raise InvalidTransitionError(booking.id, booking.status.value, target.value)
