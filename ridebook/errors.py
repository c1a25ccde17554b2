"""Booking lifecycle exceptions."""


class BookingError(Exception):
    """Base class for every error raised by the booking core."""


class ValidationError(BookingError):
    """Raised when a booking request is missing a required field."""


class UnauthenticatedError(BookingError):
    """Raised when no rider identity is bound to the call."""


class NotFoundError(BookingError):
    """Raised when a booking id is unknown."""

    def __init__(self, booking_id: str):
        super().__init__(f"Booking {booking_id} not found")
        self.booking_id = booking_id


class InvalidTransitionError(BookingError):
    """
    Raised when an operation is attempted outside its legal source state.

    This is also the outcome for the caller that loses an assignment or
    cancellation race.
    """

    def __init__(self, booking_id: str, current: str, target: str):
        super().__init__(f"Booking {booking_id} cannot move from {current} to {target}")
        self.booking_id = booking_id
        self.current = current
        self.target = target


class NoDriverAvailableError(BookingError):
    """Raised when the driver pool is empty at selection time."""


class StoreUnavailableError(BookingError):
    """Raised when the durable store cannot complete a read or write."""
