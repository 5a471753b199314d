"""Database package."""

from gymhub.database.models import (
    AdminRole,
    Base,
    ClassBooking,
    GymClass,
    Trainer,
    User,
    UserStatus,
)
from gymhub.database.session import create_session_maker, get_session_maker, init_db

__all__ = [
    "Base",
    "Trainer",
    "User",
    "GymClass",
    "ClassBooking",
    "AdminRole",
    "UserStatus",
    "create_session_maker",
    "get_session_maker",
    "init_db",
]
