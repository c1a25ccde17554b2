from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class BookingStatusEnum(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    completed = "completed"
    cancelled = "cancelled"


class StatusClassEnum(str, Enum):
    active = "active"
    historical = "historical"


STATUS_CLASSES: dict[StatusClassEnum, frozenset[BookingStatusEnum]] = {
    StatusClassEnum.active: frozenset({BookingStatusEnum.pending, BookingStatusEnum.confirmed}),
    StatusClassEnum.historical: frozenset({BookingStatusEnum.completed, BookingStatusEnum.cancelled}),
}

# Statuses in which a booking carries a driver snapshot
DRIVER_STATUSES = frozenset({BookingStatusEnum.confirmed, BookingStatusEnum.completed})


# ---------------------------------------------------------------------------
# Driver values
# ---------------------------------------------------------------------------

class Vehicle(BaseModel):
    model_config = ConfigDict(frozen=True)

    make: str
    model: str
    color: str
    license_plate: str


class DriverInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    phone: str
    rating: float = Field(..., ge=0, le=5)
    vehicle: Vehicle


# ---------------------------------------------------------------------------
# Booking values
# ---------------------------------------------------------------------------

class BookingRecord(BaseModel):
    """Immutable snapshot of a booking as held by the store projection."""

    model_config = ConfigDict(frozen=True)

    id: str
    rider_id: str
    pickup: str
    dropoff: str
    date: str
    time: str
    status: BookingStatusEnum
    driver: Optional[DriverInfo] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _driver_matches_status(self) -> "BookingRecord":
        has_driver = self.driver is not None
        if has_driver != (self.status in DRIVER_STATUSES):
            raise ValueError(f"driver must be present iff status is confirmed or completed (status={self.status.value})")
        return self


class BookingEvent(BaseModel):
    """Emitted to store observers on creation and on every status/driver change."""

    model_config = ConfigDict(frozen=True)

    booking: BookingRecord
    previous_status: Optional[BookingStatusEnum] = None


# ---------------------------------------------------------------------------
# Booking API schemas
# ---------------------------------------------------------------------------

# Column widths of the bookings table
FIELD_MAX_LENGTHS: dict[str, int] = {"pickup": 512, "dropoff": 512, "date": 32, "time": 16}


class BookingCreateRequest(BaseModel):
    pickup: str = Field(..., min_length=1, max_length=FIELD_MAX_LENGTHS["pickup"])
    dropoff: str = Field(..., min_length=1, max_length=FIELD_MAX_LENGTHS["dropoff"])
    date: str = Field(..., min_length=1, max_length=FIELD_MAX_LENGTHS["date"], examples=["2025-01-01"])
    time: str = Field(..., min_length=1, max_length=FIELD_MAX_LENGTHS["time"], examples=["09:00"])


class BookingResponse(BaseModel):
    id: str
    rider_id: str
    pickup: str
    dropoff: str
    date: str
    time: str
    status: BookingStatusEnum
    driver: Optional[DriverInfo] = None
    created_at: datetime

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Driver API schemas
# ---------------------------------------------------------------------------

class DriverCreateRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    phone: str = Field(..., min_length=7, max_length=30)
    rating: float = Field(5.0, ge=0, le=5)
    vehicle: Vehicle


class DriverResponse(BaseModel):
    id: str
    name: str
    phone: str
    rating: float
    vehicle: Vehicle
