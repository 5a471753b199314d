"""Repository pattern for database operations."""

import uuid
from datetime import date, time

from sqlalchemy import and_, delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from gymhub.database.models import (
    AdminRole,
    ClassBooking,
    GymClass,
    Trainer,
    User,
    UserStatus,
)


class UserRepository:
    """Repository for User operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: uuid.UUID) -> User | None:
        """Get user by ID."""
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> User | None:
        """Get user by email."""
        result = await self.session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def create(
        self,
        name: str,
        email: str,
        password: str,
        phone_number: str | None = None,
        status: UserStatus = UserStatus.PENDING,
    ) -> User:
        """Create a new client account."""
        user = User(
            name=name,
            email=email,
            password=password,
            phone_number=phone_number or None,
            status=UserStatus(status).value,
        )
        self.session.add(user)
        await self.session.flush()
        return user

    async def update_status(self, user_id: uuid.UUID, status: UserStatus) -> User | None:
        """Update user's approval status."""
        user = await self.get_by_id(user_id)
        if user:
            user.status = UserStatus(status).value
            await self.session.flush()
        return user

    async def get_all(self, include_inactive: bool = False) -> list[User]:
        """Get users, pending accounts first."""
        query = select(User).order_by(User.status.desc(), User.name)
        if not include_inactive:
            query = query.where(User.is_active == True)  # noqa: E712
        result = await self.session.execute(query)
        return list(result.scalars().all())


class TrainerRepository:
    """Repository for Trainer operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, trainer_id: uuid.UUID) -> Trainer | None:
        """Get trainer by ID."""
        result = await self.session.execute(select(Trainer).where(Trainer.id == trainer_id))
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Trainer | None:
        """Get trainer by email."""
        result = await self.session.execute(select(Trainer).where(Trainer.email == email))
        return result.scalar_one_or_none()

    async def create(
        self,
        name: str,
        email: str,
        password: str,
        role: AdminRole,
        specialization: str,
        experience: int = 0,
        schedule: str = "",
        phone_number: str | None = None,
        bio: str | None = None,
    ) -> Trainer:
        """Create a new staff account."""
        trainer = Trainer(
            name=name,
            email=email,
            password=password,
            role=AdminRole(role).value,
            specialization=specialization,
            experience=experience,
            schedule=schedule,
            phone_number=phone_number or None,
            bio=bio or None,
        )
        self.session.add(trainer)
        await self.session.flush()
        return trainer

    async def update(self, trainer: Trainer, **changes) -> Trainer:
        """Apply field changes to a trainer."""
        for field, value in changes.items():
            setattr(trainer, field, value)
        await self.session.flush()
        return trainer

    async def deactivate(self, trainer_id: uuid.UUID) -> Trainer | None:
        """Soft-delete a trainer."""
        trainer = await self.get_by_id(trainer_id)
        if trainer:
            trainer.is_active = False
            await self.session.flush()
        return trainer

    async def get_active(self) -> list[Trainer]:
        """Get active trainers, admins first."""
        result = await self.session.execute(
            select(Trainer)
            .where(Trainer.is_active == True)  # noqa: E712
            .order_by(Trainer.role, Trainer.name)
        )
        return list(result.scalars().all())


class ClassRepository:
    """Repository for GymClass operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, class_id: int, for_update: bool = False) -> GymClass | None:
        """Get class by ID, optionally locking the row."""
        query = select(GymClass).where(GymClass.id == class_id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        else:
            query = query.options(selectinload(GymClass.trainer))
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def create(
        self,
        name: str,
        category: str,
        class_date: date,
        start_time: time,
        end_time: time,
        capacity: int,
        trainer_id: uuid.UUID,
        description: str | None = None,
    ) -> GymClass:
        """Create a new class with every slot free."""
        gym_class = GymClass(
            name=name,
            category=category,
            description=description or None,
            class_date=class_date,
            start_time=start_time,
            end_time=end_time,
            capacity=capacity,
            available_slots=capacity,
            trainer_id=trainer_id,
        )
        self.session.add(gym_class)
        await self.session.flush()
        return gym_class

    async def get_all(self) -> list[GymClass]:
        """Get all classes by date and start time."""
        result = await self.session.execute(
            select(GymClass)
            .options(selectinload(GymClass.trainer))
            .order_by(GymClass.class_date, GymClass.start_time)
        )
        return list(result.scalars().all())

    async def decrement_available_slots(self, class_id: int) -> bool:
        """Take one slot. Returns False if no slot was free."""
        result = await self.session.execute(
            update(GymClass)
            .where(and_(GymClass.id == class_id, GymClass.available_slots > 0))
            .values(available_slots=GymClass.available_slots - 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def increment_available_slots(self, class_id: int) -> bool:
        """Release one slot. Returns False if the class is already at capacity."""
        result = await self.session.execute(
            update(GymClass)
            .where(
                and_(
                    GymClass.id == class_id,
                    GymClass.available_slots < GymClass.capacity,
                )
            )
            .values(available_slots=GymClass.available_slots + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


class BookingRepository:
    """Repository for ClassBooking operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, booking_id: int, for_update: bool = False) -> ClassBooking | None:
        """Get booking by ID, optionally locking the row."""
        query = select(ClassBooking).where(ClassBooking.id == booking_id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_user_booking_for_class(
        self, user_id: uuid.UUID, class_id: int
    ) -> ClassBooking | None:
        """Get user's booking for a specific class."""
        result = await self.session.execute(
            select(ClassBooking).where(
                and_(
                    ClassBooking.user_id == user_id,
                    ClassBooking.class_id == class_id,
                )
            )
        )
        return result.scalar_one_or_none()

    async def create(self, class_id: int, user_id: uuid.UUID) -> ClassBooking:
        """Create a new booking."""
        booking = ClassBooking(class_id=class_id, user_id=user_id)
        self.session.add(booking)
        await self.session.flush()
        return booking

    async def delete(self, booking_id: int) -> bool:
        """Delete a booking. Returns False if it was already gone."""
        result = await self.session.execute(
            delete(ClassBooking)
            .where(ClassBooking.id == booking_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def get_user_bookings(self, user_id: uuid.UUID) -> list[ClassBooking]:
        """Get user's bookings, newest first."""
        result = await self.session.execute(
            select(ClassBooking)
            .options(
                selectinload(ClassBooking.gym_class).selectinload(GymClass.trainer)
            )
            .where(ClassBooking.user_id == user_id)
            .order_by(ClassBooking.booking_date.desc(), ClassBooking.id.desc())
        )
        return list(result.scalars().all())
