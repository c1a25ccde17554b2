"""
Driver pool: the read-only set of drivers the engine may assign.

The pool holds an immutable snapshot. ``refresh()`` swaps in a new snapshot
from the ``drivers`` table; bookings keep their own copy of the driver they
were given, so a refresh never rewrites history.
"""
import asyncio
import logging
from typing import Iterable

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ridebook.errors import StoreUnavailableError
from ridebook.models.driver import Driver
from ridebook.schemas.schemas import DriverInfo, Vehicle

logger = logging.getLogger(__name__)

DEMO_DRIVERS: tuple[dict, ...] = (
    {
        "name": "Michael Smith",
        "phone": "+1 (555) 123-4567",
        "rating": 4.8,
        "vehicle_make": "Toyota",
        "vehicle_model": "Camry",
        "vehicle_color": "Silver",
        "license_plate": "ABC 1234",
    },
    {
        "name": "Sarah Johnson",
        "phone": "+1 (555) 987-6543",
        "rating": 4.9,
        "vehicle_make": "Honda",
        "vehicle_model": "Accord",
        "vehicle_color": "Black",
        "license_plate": "XYZ 7890",
    },
)


def driver_to_info(row: Driver) -> DriverInfo:
    return DriverInfo(
        id=row.id,
        name=row.name,
        phone=row.phone,
        rating=row.rating,
        vehicle=Vehicle(
            make=row.vehicle_make,
            model=row.vehicle_model,
            color=row.vehicle_color,
            license_plate=row.license_plate,
        ),
    )


class DriverPool:
    def __init__(
        self,
        drivers: Iterable[DriverInfo] = (),
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ):
        self._drivers: tuple[DriverInfo, ...] = tuple(drivers)
        self._session_factory = session_factory

    def snapshot(self) -> tuple[DriverInfo, ...]:
        return self._drivers

    def __len__(self) -> int:
        return len(self._drivers)

    async def refresh(self) -> tuple[DriverInfo, ...]:
        """Reload the snapshot from the database (no-op for a static pool)."""
        if self._session_factory is None:
            return self._drivers
        try:
            async with self._session_factory() as db:
                result = await db.execute(select(Driver).order_by(Driver.created_at, Driver.id))
                self._drivers = tuple(driver_to_info(row) for row in result.scalars())
        except (SQLAlchemyError, OSError) as exc:
            raise StoreUnavailableError("Could not load driver pool") from exc
        logger.info("Driver pool refreshed: %d drivers", len(self._drivers))
        return self._drivers

    async def refresh_forever(self, interval_seconds: float) -> None:
        """
        Re-read the pool every ``interval_seconds`` until cancelled.

        Drivers registered through another process only reach this one via
        this loop. A failed reload keeps the previous snapshot.
        """
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                await self.refresh()
            except StoreUnavailableError as exc:
                logger.error("Driver pool refresh failed: %s", exc)


async def seed_demo_drivers(session_factory: async_sessionmaker[AsyncSession]) -> int:
    """Insert the demo drivers when the table is empty. Returns rows added."""
    async with session_factory() as db:
        count = await db.scalar(select(func.count()).select_from(Driver))
        if count:
            return 0
        db.add_all(Driver(**data) for data in DEMO_DRIVERS)
        await db.commit()
    logger.info("Seeded %d demo drivers", len(DEMO_DRIVERS))
    return len(DEMO_DRIVERS)
