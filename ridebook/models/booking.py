import uuid
from datetime import datetime
from sqlalchemy import String, Float, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column
from ridebook.database import Base


class Booking(Base):
    __tablename__ = "bookings"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    rider_id: Mapped[str] = mapped_column(String, nullable=False, index=True)

    pickup: Mapped[str] = mapped_column(String(512), nullable=False)
    dropoff: Mapped[str] = mapped_column(String(512), nullable=False)
    date: Mapped[str] = mapped_column(String(32), nullable=False)
    time: Mapped[str] = mapped_column(String(16), nullable=False)

    # pending | confirmed | completed | cancelled
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending", index=True)

    # Driver snapshot, copied from the pool on assignment
    driver_id: Mapped[str | None] = mapped_column(String, nullable=True)
    driver_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    driver_phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    driver_rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    vehicle_make: Mapped[str | None] = mapped_column(String(64), nullable=True)
    vehicle_model: Mapped[str | None] = mapped_column(String(64), nullable=True)
    vehicle_color: Mapped[str | None] = mapped_column(String(32), nullable=True)
    license_plate: Mapped[str | None] = mapped_column(String(20), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
