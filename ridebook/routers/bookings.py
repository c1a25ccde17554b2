"""
Bookings router — POST /v1/bookings, GET /v1/bookings, GET /v1/bookings/{id},
                  POST /v1/bookings/{id}/assign|cancel|complete
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request, status

from ridebook.errors import InvalidTransitionError, NotFoundError, UnauthenticatedError
from ridebook.middleware.auth import get_current_operator, get_current_rider_id
from ridebook.middleware.idempotency import check_idempotency, store_idempotency_result
from ridebook.runtime import Runtime, get_runtime
from ridebook.schemas.schemas import (
    BookingCreateRequest, BookingRecord, BookingResponse, BookingStatusEnum, StatusClassEnum,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/v1/bookings", tags=["Bookings"])


def _response(booking: BookingRecord) -> BookingResponse:
    return BookingResponse.model_validate(booking, from_attributes=True)


async def _owned(runtime: Runtime, booking_id: str, rider_id: Optional[str]) -> BookingRecord:
    if not rider_id:
        raise UnauthenticatedError("A rider must be signed in to view bookings")
    booking = await runtime.store.get(booking_id)
    # Other riders' bookings are reported as missing
    if booking.rider_id != rider_id:
        raise NotFoundError(booking_id)
    return booking


@router.post("", status_code=status.HTTP_201_CREATED, response_model=BookingResponse)
async def create_booking(
    payload: BookingCreateRequest,
    request: Request,
    runtime: Runtime = Depends(get_runtime),
    rider_id: Optional[str] = Depends(get_current_rider_id),
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
):
    # 1. Idempotency check
    if idempotency_key:
        cached = await check_idempotency(request, rider_id)
        if cached:
            return cached

    # 2. Create (arms the dispatch timer through the store observer)
    booking = await runtime.store.create(
        rider_id, payload.pickup, payload.dropoff, payload.date, payload.time
    )
    resp = _response(booking)

    # 3. Store idempotency result
    if idempotency_key:
        await store_idempotency_result(
            idempotency_key, rider_id, status.HTTP_201_CREATED, resp.model_dump(mode="json")
        )
    return resp


@router.get("", response_model=list[BookingResponse])
async def list_bookings(
    status_class: StatusClassEnum = StatusClassEnum.active,
    runtime: Runtime = Depends(get_runtime),
    rider_id: Optional[str] = Depends(get_current_rider_id),
):
    bookings = await runtime.store.list_by_rider(rider_id, status_class)
    return [_response(b) for b in bookings]


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str,
    runtime: Runtime = Depends(get_runtime),
    rider_id: Optional[str] = Depends(get_current_rider_id),
):
    return _response(await _owned(runtime, booking_id, rider_id))


@router.post("/{booking_id}/assign", response_model=BookingResponse)
async def assign_driver(
    booking_id: str,
    runtime: Runtime = Depends(get_runtime),
    _operator: dict = Depends(get_current_operator),
):
    """
    Manual "assign now" trigger, bypassing the dispatch timer.
    If another trigger already confirmed the booking, that is reported as success.
    """
    try:
        booking = await runtime.engine.request_assignment(booking_id)
    except InvalidTransitionError:
        booking = await runtime.store.get(booking_id)
        if booking.status != BookingStatusEnum.confirmed:
            raise
        logger.info("Manual assign for booking=%s lost the race; already confirmed", booking_id)
    return _response(booking)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: str,
    runtime: Runtime = Depends(get_runtime),
    rider_id: Optional[str] = Depends(get_current_rider_id),
):
    await _owned(runtime, booking_id, rider_id)
    return _response(await runtime.engine.cancel(booking_id))


@router.post("/{booking_id}/complete", response_model=BookingResponse)
async def complete_booking(
    booking_id: str,
    runtime: Runtime = Depends(get_runtime),
    _operator: dict = Depends(get_current_operator),
):
    return _response(await runtime.engine.complete(booking_id))
