"""
Durable booking repository backed by async SQLAlchemy.

Every status change goes through ``update_status_and_driver``, a
status-guarded UPDATE:

    UPDATE bookings SET status = :new, ... WHERE id = :id AND status = :expected

Only one writer can match the ``expected`` pre-image, so racing transitions
are serialized by the database itself and hold across processes.
"""
import logging
from datetime import datetime, timezone
from typing import Protocol, Sequence

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ridebook.errors import InvalidTransitionError, NotFoundError, StoreUnavailableError
from ridebook.models.booking import Booking
from ridebook.schemas.schemas import BookingRecord, BookingStatusEnum, DriverInfo, Vehicle

logger = logging.getLogger(__name__)


class DurableStore(Protocol):
    async def insert(self, record: BookingRecord) -> BookingRecord: ...

    async def get(self, booking_id: str) -> BookingRecord | None: ...

    async def update_status_and_driver(
        self,
        booking_id: str,
        expected_status: BookingStatusEnum,
        new_status: BookingStatusEnum,
        driver: DriverInfo | None = None,
    ) -> BookingRecord: ...

    async def query_by_rider(self, rider_id: str) -> Sequence[BookingRecord]: ...

    async def query_by_status(self, status: BookingStatusEnum) -> Sequence[BookingRecord]: ...


def _aware(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_record(row: Booking) -> BookingRecord:
    driver = None
    if row.driver_id is not None:
        driver = DriverInfo(
            id=row.driver_id,
            name=row.driver_name,
            phone=row.driver_phone,
            rating=row.driver_rating,
            vehicle=Vehicle(
                make=row.vehicle_make,
                model=row.vehicle_model,
                color=row.vehicle_color,
                license_plate=row.license_plate,
            ),
        )
    return BookingRecord(
        id=row.id,
        rider_id=row.rider_id,
        pickup=row.pickup,
        dropoff=row.dropoff,
        date=row.date,
        time=row.time,
        status=BookingStatusEnum(row.status),
        driver=driver,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


def _driver_columns(driver: DriverInfo) -> dict:
    return {
        "driver_id": driver.id,
        "driver_name": driver.name,
        "driver_phone": driver.phone,
        "driver_rating": driver.rating,
        "vehicle_make": driver.vehicle.make,
        "vehicle_model": driver.vehicle.model,
        "vehicle_color": driver.vehicle.color,
        "license_plate": driver.vehicle.license_plate,
    }


class SqlDurableStore:
    """``DurableStore`` over the ``bookings`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def insert(self, record: BookingRecord) -> BookingRecord:
        row = Booking(
            id=record.id,
            rider_id=record.rider_id,
            pickup=record.pickup,
            dropoff=record.dropoff,
            date=record.date,
            time=record.time,
            status=record.status.value,
            created_at=record.created_at,
            updated_at=record.created_at,
        )
        try:
            async with self._session_factory() as db:
                db.add(row)
                await db.commit()
                await db.refresh(row)
                return to_record(row)
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Insert failed for booking=%s: %s", record.id, exc)
            raise StoreUnavailableError(f"Could not persist booking {record.id}") from exc

    async def get(self, booking_id: str) -> BookingRecord | None:
        try:
            async with self._session_factory() as db:
                row = await db.get(Booking, booking_id)
                return to_record(row) if row is not None else None
        except (SQLAlchemyError, OSError) as exc:
            raise StoreUnavailableError(f"Could not load booking {booking_id}") from exc

    async def update_status_and_driver(
        self,
        booking_id: str,
        expected_status: BookingStatusEnum,
        new_status: BookingStatusEnum,
        driver: DriverInfo | None = None,
    ) -> BookingRecord:
        """
        Compare-and-swap on ``status``.

        Raises NotFoundError if the id is unknown and InvalidTransitionError
        if the current status no longer equals ``expected_status``. A ``None``
        driver leaves the stored snapshot untouched.
        """
        values = {"status": new_status.value, "updated_at": datetime.now(timezone.utc)}
        if driver is not None:
            values.update(_driver_columns(driver))

        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    update(Booking)
                    .where(Booking.id == booking_id, Booking.status == expected_status.value)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 1:
                    row = await db.get(Booking, booking_id)
                    await db.commit()
                    return to_record(row)

                await db.rollback()
                row = await db.get(Booking, booking_id)
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Status update failed for booking=%s: %s", booking_id, exc)
            raise StoreUnavailableError(f"Could not update booking {booking_id}") from exc

        if row is None:
            raise NotFoundError(booking_id)
        raise InvalidTransitionError(booking_id, row.status, new_status.value)

    async def query_by_rider(self, rider_id: str) -> Sequence[BookingRecord]:
        try:
            async with self._session_factory() as db:
                result = await db.execute(select(Booking).where(Booking.rider_id == rider_id))
                return [to_record(row) for row in result.scalars()]
        except (SQLAlchemyError, OSError) as exc:
            raise StoreUnavailableError(f"Could not query bookings for rider {rider_id}") from exc

    async def query_by_status(self, status: BookingStatusEnum) -> Sequence[BookingRecord]:
        try:
            async with self._session_factory() as db:
                result = await db.execute(select(Booking).where(Booking.status == status.value))
                return [to_record(row) for row in result.scalars()]
        except (SQLAlchemyError, OSError) as exc:
            raise StoreUnavailableError(f"Could not query {status.value} bookings") from exc
