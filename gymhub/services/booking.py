"""Class booking engine.

Booking and cancelling each run as one short transaction. The slot counter
on the class row is changed with conditional updates, so two requests racing
for the last slot are serialized by the database and only one of them wins.
The unique constraint on (class_id, user_id) backs up the duplicate check.

Domain outcomes are returned as ``BookingResult`` / ``CancelResult`` values.
Storage faults are logged and reported as ``STORAGE_UNAVAILABLE``; nothing is
retried here.
"""

import logging
import uuid
from dataclasses import dataclass
from enum import Enum

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gymhub.database.models import ClassBooking
from gymhub.database.repository import BookingRepository, ClassRepository, UserRepository

logger = logging.getLogger(__name__)

# Substrings identifying the (class_id, user_id) unique constraint in driver
# messages: PostgreSQL reports the constraint name, SQLite the column list.
DUPLICATE_BOOKING_MARKERS = (
    "uq_class_bookings_class_user",
    "class_bookings.class_id, class_bookings.user_id",
)


class BookingError(str, Enum):
    """Reasons a booking or cancellation did not go through."""

    USER_NOT_FOUND = "user_not_found"
    ACCOUNT_NOT_ACTIVE = "account_not_active"
    CLASS_NOT_FOUND = "class_not_found"
    CLASS_FULL = "class_full"
    ALREADY_BOOKED = "already_booked"
    BOOKING_NOT_FOUND = "booking_not_found"
    UNAUTHORIZED = "unauthorized"
    STORAGE_UNAVAILABLE = "storage_unavailable"

    @property
    def message(self) -> str:
        """Human-readable description."""
        return ERROR_MESSAGES[self]


ERROR_MESSAGES = {
    BookingError.USER_NOT_FOUND: "User not found.",
    BookingError.ACCOUNT_NOT_ACTIVE: "Your account is not active. Please contact admin.",
    BookingError.CLASS_NOT_FOUND: "Class not found.",
    BookingError.CLASS_FULL: "Class is already full.",
    BookingError.ALREADY_BOOKED: "You have already booked this class.",
    BookingError.BOOKING_NOT_FOUND: "Booking not found.",
    BookingError.UNAUTHORIZED: "You are not authorized to cancel this booking.",
    BookingError.STORAGE_UNAVAILABLE: "The booking service is temporarily unavailable.",
}


@dataclass(frozen=True)
class BookingResult:
    """Outcome of ``book_class``."""

    booking: ClassBooking | None = None
    error: BookingError | None = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class CancelResult:
    """Outcome of ``cancel_class``."""

    error: BookingError | None = None

    @property
    def success(self) -> bool:
        return self.error is None


class _Rejected(Exception):
    """Aborts the open transaction with a domain error."""

    def __init__(self, error: BookingError):
        super().__init__(error.value)
        self.error = error


def _as_uuid(value) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def is_duplicate_booking(error: IntegrityError) -> bool:
    """Check whether an integrity error comes from the one-booking-per-class rule."""
    text = str(error.orig) if error.orig is not None else str(error)
    return any(marker in text for marker in DUPLICATE_BOOKING_MARKERS)


class BookingService:
    """Books and cancels class slots."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    async def book_class(self, class_id: int, user_id: uuid.UUID | str) -> BookingResult:
        """Book one slot of a class for a user."""
        try:
            async with self.session_maker() as session:
                async with session.begin():
                    booking = await self._book(session, class_id, _as_uuid(user_id))
        except _Rejected as e:
            logger.info(f"Booking class {class_id} for user {user_id} rejected: {e.error.value}")
            return BookingResult(error=e.error)
        except IntegrityError as e:
            if is_duplicate_booking(e):
                logger.info(f"Concurrent duplicate booking of class {class_id} by user {user_id}")
                return BookingResult(error=BookingError.ALREADY_BOOKED)
            logger.exception(f"Integrity error booking class {class_id} for user {user_id}")
            return BookingResult(error=BookingError.STORAGE_UNAVAILABLE)
        except (SQLAlchemyError, OSError):
            logger.exception(f"Storage failure booking class {class_id} for user {user_id}")
            return BookingResult(error=BookingError.STORAGE_UNAVAILABLE)

        logger.info(f"User {user_id} booked class {class_id} (booking {booking.id})")
        return BookingResult(booking=booking)

    async def _book(
        self, session: AsyncSession, class_id: int, user_id: uuid.UUID | None
    ) -> ClassBooking:
        user = await UserRepository(session).get_by_id(user_id) if user_id else None
        if not user:
            raise _Rejected(BookingError.USER_NOT_FOUND)
        if not user.can_book:
            raise _Rejected(BookingError.ACCOUNT_NOT_ACTIVE)

        class_repo = ClassRepository(session)
        booking_repo = BookingRepository(session)

        gym_class = await class_repo.get_by_id(class_id, for_update=True)
        if not gym_class:
            raise _Rejected(BookingError.CLASS_NOT_FOUND)
        if gym_class.available_slots <= 0:
            raise _Rejected(BookingError.CLASS_FULL)

        if await booking_repo.get_user_booking_for_class(user_id, class_id):
            raise _Rejected(BookingError.ALREADY_BOOKED)

        # Guarded decrement: loses to any writer that took the last slot first
        if not await class_repo.decrement_available_slots(class_id):
            raise _Rejected(BookingError.CLASS_FULL)

        return await booking_repo.create(class_id, user_id)

    async def cancel_class(self, booking_id: int, user_id: uuid.UUID | str) -> CancelResult:
        """Cancel a user's own booking and release its slot."""
        try:
            async with self.session_maker() as session:
                async with session.begin():
                    await self._cancel(session, booking_id, _as_uuid(user_id))
        except _Rejected as e:
            logger.info(f"Cancelling booking {booking_id} for user {user_id} rejected: {e.error.value}")
            return CancelResult(error=e.error)
        except (SQLAlchemyError, OSError):
            logger.exception(f"Storage failure cancelling booking {booking_id} for user {user_id}")
            return CancelResult(error=BookingError.STORAGE_UNAVAILABLE)

        logger.info(f"User {user_id} cancelled booking {booking_id}")
        return CancelResult()

    async def _cancel(
        self, session: AsyncSession, booking_id: int, user_id: uuid.UUID | None
    ) -> None:
        booking_repo = BookingRepository(session)

        booking = await booking_repo.get_by_id(booking_id, for_update=True)
        if not booking:
            raise _Rejected(BookingError.BOOKING_NOT_FOUND)
        if booking.user_id != user_id:
            raise _Rejected(BookingError.UNAUTHORIZED)

        if not await booking_repo.delete(booking_id):
            raise _Rejected(BookingError.BOOKING_NOT_FOUND)

        if not await ClassRepository(session).increment_available_slots(booking.class_id):
            logger.error(
                f"Slot counter of class {booking.class_id} already at capacity "
                f"while cancelling booking {booking_id}; leaving it at capacity"
            )
