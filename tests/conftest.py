"""
Shared fixtures: an in-memory durable store and a wired booking runtime.
"""
import asyncio
from typing import Sequence

import pytest
import pytest_asyncio

from ridebook.errors import InvalidTransitionError, NotFoundError, StoreUnavailableError
from ridebook.runtime import build_runtime
from ridebook.schemas.schemas import BookingRecord, BookingStatusEnum, DriverInfo, Vehicle
from ridebook.services.driver_pool import DriverPool
from ridebook.services.selection import FirstDriverSelector


class InMemoryDurableStore:
    """
    Durable store double. Every call yields to the event loop first, like a
    network round trip, so concurrent callers really interleave. The status
    check and the write happen with no await in between (compare-and-swap).
    """

    def __init__(self):
        self.rows: dict[str, BookingRecord] = {}
        self.fail_writes = False
        self.writes = 0

    async def _round_trip(self, write: bool = False) -> None:
        await asyncio.sleep(0)
        if write and self.fail_writes:
            raise StoreUnavailableError("durable store offline")

    async def insert(self, record: BookingRecord) -> BookingRecord:
        await self._round_trip(write=True)
        self.rows[record.id] = record
        self.writes += 1
        return record

    async def get(self, booking_id: str) -> BookingRecord | None:
        await self._round_trip()
        return self.rows.get(booking_id)

    async def update_status_and_driver(
        self,
        booking_id: str,
        expected_status: BookingStatusEnum,
        new_status: BookingStatusEnum,
        driver: DriverInfo | None = None,
    ) -> BookingRecord:
        await self._round_trip(write=True)
        row = self.rows.get(booking_id)
        if row is None:
            raise NotFoundError(booking_id)
        if row.status != expected_status:
            raise InvalidTransitionError(booking_id, row.status.value, new_status.value)
        changes = {"status": new_status}
        if driver is not None:
            changes["driver"] = driver
        updated = BookingRecord(**{**row.model_dump(), **changes})
        self.rows[booking_id] = updated
        self.writes += 1
        return updated

    async def query_by_rider(self, rider_id: str) -> Sequence[BookingRecord]:
        await self._round_trip()
        # Reverse insertion order so nobody relies on it
        return [r for r in reversed(list(self.rows.values())) if r.rider_id == rider_id]

    async def query_by_status(self, status: BookingStatusEnum) -> Sequence[BookingRecord]:
        await self._round_trip()
        return [r for r in self.rows.values() if r.status == status]


MICHAEL = DriverInfo(
    id="drv-michael",
    name="Michael Smith",
    phone="+1 (555) 123-4567",
    rating=4.8,
    vehicle=Vehicle(make="Toyota", model="Camry", color="Silver", license_plate="ABC 1234"),
)
SARAH = DriverInfo(
    id="drv-sarah",
    name="Sarah Johnson",
    phone="+1 (555) 987-6543",
    rating=4.9,
    vehicle=Vehicle(make="Honda", model="Accord", color="Black", license_plate="XYZ 7890"),
)


@pytest.fixture
def durable():
    return InMemoryDurableStore()


@pytest.fixture
def pool():
    return DriverPool([MICHAEL, SARAH])


@pytest_asyncio.fixture
async def runtime(durable, pool):
    # Long window: timers never fire on their own unless a test shortens it
    rt = build_runtime(durable, pool, selector=FirstDriverSelector(), window_seconds=3600)
    yield rt
    await rt.scheduler.shutdown()


@pytest.fixture
def store(runtime):
    return runtime.store


@pytest.fixture
def engine(runtime):
    return runtime.engine


@pytest.fixture
def scheduler(runtime):
    return runtime.scheduler
