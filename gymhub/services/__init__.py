"""Services package."""

from gymhub.services.accounts import AccountService
from gymhub.services.booking import BookingError, BookingResult, BookingService, CancelResult
from gymhub.services.schedule import ScheduleService
from gymhub.services.security import AuthProvider, Principal

__all__ = [
    "AccountService",
    "AuthProvider",
    "BookingError",
    "BookingResult",
    "BookingService",
    "CancelResult",
    "Principal",
    "ScheduleService",
]
