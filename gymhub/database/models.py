"""Database models for the gym."""

import uuid
from datetime import date, datetime, time
from enum import Enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator, CHAR

USER_ROLE = "user"


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class GUID(TypeDecorator):
    """Platform-independent GUID type.

    Uses PostgreSQL's UUID type, otherwise uses CHAR(36), storing as stringified hex values.
    """
    impl = CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'postgresql':
            return dialect.type_descriptor(PG_UUID())
        else:
            return dialect.type_descriptor(CHAR(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if not isinstance(value, uuid.UUID):
            value = uuid.UUID(str(value))
        return str(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if not isinstance(value, uuid.UUID):
            return uuid.UUID(str(value))
        return value


class UserStatus(str, Enum):
    """Approval status of a client account."""

    PENDING = "pending"
    ACTIVE = "active"


class AdminRole(str, Enum):
    """Roles available to staff accounts."""

    TRAINER = "trainer"
    ADMIN = "admin"
    IT_ADMIN = "it_admin"


ADMIN_ROLES = (AdminRole.ADMIN.value, AdminRole.IT_ADMIN.value)


class Trainer(Base):
    """Staff account: trainers, admins and IT admins."""

    __tablename__ = "trainers"

    id: Mapped[uuid.UUID] = mapped_column(GUID, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), default=AdminRole.TRAINER.value)
    specialization: Mapped[str] = mapped_column(String(255), nullable=False)
    experience: Mapped[int] = mapped_column(Integer, default=0)
    schedule: Mapped[str] = mapped_column(String(255), default="")
    phone_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    classes: Mapped[list["GymClass"]] = relationship("GymClass", back_populates="trainer")

    def __repr__(self) -> str:
        return f"<Trainer(id={self.id}, name={self.name}, role={self.role})>"


class User(Base):
    """Client account that books classes."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(GUID, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    phone_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    role: Mapped[str] = mapped_column(String(20), default=USER_ROLE)
    status: Mapped[str] = mapped_column(String(20), default=UserStatus.PENDING.value)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    bookings: Mapped[list["ClassBooking"]] = relationship("ClassBooking", back_populates="user")

    @property
    def can_book(self) -> bool:
        """Only approved accounts may create bookings."""
        return self.status == UserStatus.ACTIVE.value

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, status={self.status})>"


class GymClass(Base):
    """Scheduled group class."""

    __tablename__ = "classes"
    __table_args__ = (
        CheckConstraint("capacity > 0", name="ck_classes_capacity_positive"),
        CheckConstraint("available_slots >= 0", name="ck_classes_slots_non_negative"),
        CheckConstraint("available_slots <= capacity", name="ck_classes_slots_within_capacity"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    class_date: Mapped[date] = mapped_column("date", Date, nullable=False, index=True)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    available_slots: Mapped[int] = mapped_column(Integer, nullable=False)
    trainer_id: Mapped[uuid.UUID] = mapped_column(
        GUID, ForeignKey("trainers.id"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    trainer: Mapped["Trainer"] = relationship("Trainer", back_populates="classes")
    bookings: Mapped[list["ClassBooking"]] = relationship("ClassBooking", back_populates="gym_class")

    @property
    def trainer_name(self) -> str | None:
        """Name of the trainer running the class."""
        return self.trainer.name if self.trainer else None

    @property
    def is_full(self) -> bool:
        """Check if the class has no free slots."""
        return self.available_slots <= 0

    def __repr__(self) -> str:
        return (
            f"<GymClass(id={self.id}, name={self.name}, "
            f"slots={self.available_slots}/{self.capacity})>"
        )


class ClassBooking(Base):
    """Booking linking a user to one class."""

    __tablename__ = "class_bookings"
    __table_args__ = (
        UniqueConstraint("class_id", "user_id", name="uq_class_bookings_class_user"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    class_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("classes.id"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        GUID, ForeignKey("users.id"), nullable=False, index=True
    )
    booking_date: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="bookings")
    gym_class: Mapped["GymClass"] = relationship("GymClass", back_populates="bookings")

    def __repr__(self) -> str:
        return f"<ClassBooking(id={self.id}, user_id={self.user_id}, class_id={self.class_id})>"
