"""
Booking store: the authoritative booking set plus an in-memory projection.

Flow for every mutation:
  1. Write to the durable store and wait for the result
  2. Only on success, replace the projection entry
  3. Notify observers

Readers therefore never see the projection ahead of durable state, and a
failed write leaves the projection untouched.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from ridebook.errors import (
    InvalidTransitionError,
    NotFoundError,
    UnauthenticatedError,
    ValidationError,
)
from ridebook.schemas.schemas import (
    STATUS_CLASSES,
    BookingEvent,
    BookingRecord,
    BookingStatusEnum,
    DriverInfo,
    FIELD_MAX_LENGTHS,
    StatusClassEnum,
)
from ridebook.services.durable_store import DurableStore

logger = logging.getLogger(__name__)

Observer = Callable[[BookingEvent], Awaitable[None]]

_STAGE = {
    BookingStatusEnum.pending: 0,
    BookingStatusEnum.confirmed: 1,
    BookingStatusEnum.completed: 2,
    BookingStatusEnum.cancelled: 2,
}


class BookingStore:
    def __init__(self, durable: DurableStore):
        self._durable = durable
        self._bookings: dict[str, BookingRecord] = {}
        self._observers: list[Observer] = []

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register an async callback; returns a function that removes it."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    async def _notify(self, booking: BookingRecord, previous: Optional[BookingStatusEnum]) -> None:
        event = BookingEvent(booking=booking, previous_status=previous)
        for observer in list(self._observers):
            try:
                await observer(event)
            except Exception as exc:
                logger.error("Booking observer failed for booking=%s: %s", booking.id, exc, exc_info=True)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, booking_id: str) -> BookingRecord:
        booking = self._bookings.get(booking_id)
        if booking is not None:
            return booking

        booking = await self._durable.get(booking_id)
        if booking is None:
            raise NotFoundError(booking_id)
        self._remember(booking)
        return booking

    async def load_rider(self, rider_id: str) -> list[BookingRecord]:
        """Merge one rider's durable bookings into the projection."""
        records = await self._durable.query_by_rider(rider_id)
        for record in records:
            self._remember(record)
        return list(records)

    async def list_by_rider(
        self, rider_id: Optional[str], status_class: StatusClassEnum
    ) -> list[BookingRecord]:
        if not rider_id:
            raise UnauthenticatedError("A rider must be signed in to list bookings")
        # Always merge a fresh read so bookings made by other processes show up
        await self.load_rider(rider_id)

        wanted = STATUS_CLASSES[StatusClassEnum(status_class)]
        matches = [
            b for b in self._bookings.values()
            if b.rider_id == rider_id and b.status in wanted
        ]
        return sorted(matches, key=lambda b: (b.created_at, b.id))

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create(
        self,
        rider_id: Optional[str],
        pickup: str,
        dropoff: str,
        date: str,
        time: str,
    ) -> BookingRecord:
        if not rider_id:
            raise UnauthenticatedError("A rider must be signed in to create a booking")

        fields = {"pickup": pickup, "dropoff": dropoff, "date": date, "time": time}
        missing = [name for name, value in fields.items() if not value or not str(value).strip()]
        if missing:
            raise ValidationError(f"Missing required field(s): {', '.join(missing)}")
        too_long = [name for name, value in fields.items() if len(str(value)) > FIELD_MAX_LENGTHS[name]]
        if too_long:
            raise ValidationError(f"Field(s) too long: {', '.join(too_long)}")

        record = BookingRecord(
            id=str(uuid.uuid4()),
            rider_id=rider_id,
            status=BookingStatusEnum.pending,
            created_at=datetime.now(timezone.utc),
            **fields,
        )
        stored = await self._durable.insert(record)
        self._remember(stored)
        logger.info("Created booking=%s for rider=%s", stored.id, rider_id)

        await self._notify(stored, None)
        return stored

    async def apply_assignment(self, booking_id: str, driver: DriverInfo) -> BookingRecord:
        """Atomically move ``pending -> confirmed`` with a copy of ``driver``."""
        return await self._swap(
            booking_id,
            BookingStatusEnum.pending,
            BookingStatusEnum.confirmed,
            driver.model_copy(),
        )

    async def apply_transition(
        self,
        booking_id: str,
        expected: BookingStatusEnum,
        new: BookingStatusEnum,
    ) -> BookingRecord:
        return await self._swap(booking_id, expected, new, None)

    async def _swap(
        self,
        booking_id: str,
        expected: BookingStatusEnum,
        new: BookingStatusEnum,
        driver: Optional[DriverInfo],
    ) -> BookingRecord:
        known = self._bookings.get(booking_id)
        if known is not None and known.status != expected and _STAGE[known.status] >= _STAGE[expected]:
            # Projection is never ahead of durable state, so this is final
            raise InvalidTransitionError(booking_id, known.status.value, new.value)

        try:
            updated = await self._durable.update_status_and_driver(booking_id, expected, new, driver)
        except InvalidTransitionError:
            await self._refresh(booking_id)
            raise

        self._remember(updated)
        logger.info("Booking=%s %s -> %s", booking_id, expected.value, new.value)

        await self._notify(updated, expected)
        return updated

    async def _refresh(self, booking_id: str) -> None:
        current = await self._durable.get(booking_id)
        if current is not None:
            self._remember(current)

    def _remember(self, record: BookingRecord) -> None:
        # A slow refresh must not roll the projection back past a newer write
        known = self._bookings.get(record.id)
        if known is None or _STAGE[record.status] >= _STAGE[known.status]:
            self._bookings[record.id] = record
