"""
Drivers router — POST /v1/drivers (register into the pool), GET /v1/drivers
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ridebook.database import get_db
from ridebook.models.driver import Driver
from ridebook.runtime import Runtime, get_runtime
from ridebook.schemas.schemas import DriverCreateRequest, DriverInfo, DriverResponse
from ridebook.services.driver_pool import driver_to_info

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/v1/drivers", tags=["Drivers"])


def _response(driver: DriverInfo) -> DriverResponse:
    return DriverResponse(**driver.model_dump())


@router.post("", status_code=status.HTTP_201_CREATED, response_model=DriverResponse)
async def create_driver(
    payload: DriverCreateRequest,
    db: AsyncSession = Depends(get_db),
    runtime: Runtime = Depends(get_runtime),
):
    """Register a new driver. No auth required for onboarding."""
    driver = Driver(
        name=payload.name,
        phone=payload.phone,
        rating=payload.rating,
        vehicle_make=payload.vehicle.make,
        vehicle_model=payload.vehicle.model,
        vehicle_color=payload.vehicle.color,
        license_plate=payload.vehicle.license_plate,
    )
    db.add(driver)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Phone already registered")
    await db.refresh(driver)

    # Immediate in this process; other processes pick it up on their periodic refresh
    await runtime.pool.refresh()
    logger.info("Registered driver=%s", driver.id)
    return _response(driver_to_info(driver))


@router.get("", response_model=list[DriverResponse])
async def list_drivers(runtime: Runtime = Depends(get_runtime)):
    return [_response(d) for d in runtime.pool.snapshot()]
