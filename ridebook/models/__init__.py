from ridebook.models.driver import Driver
from ridebook.models.booking import Booking

__all__ = ["Driver", "Booking"]
