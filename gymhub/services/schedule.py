"""Class schedule: listings and class creation."""

import logging
import uuid
from datetime import date, time

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gymhub.database.models import ClassBooking, GymClass
from gymhub.database.repository import BookingRepository, ClassRepository, TrainerRepository

logger = logging.getLogger(__name__)


class ScheduleError(ValueError):
    """Invalid class definition."""


class ScheduleService:
    """Read paths over classes and bookings, plus class creation for admins."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    async def list_classes(self) -> list[GymClass]:
        """All classes ordered by date then start time, with trainers loaded."""
        async with self.session_maker() as session:
            return await ClassRepository(session).get_all()

    async def get_class(self, class_id: int) -> GymClass | None:
        async with self.session_maker() as session:
            return await ClassRepository(session).get_by_id(class_id)

    async def list_user_bookings(self, user_id: uuid.UUID) -> list[ClassBooking]:
        """A user's bookings, newest first, each with its class loaded."""
        async with self.session_maker() as session:
            return await BookingRepository(session).get_user_bookings(user_id)

    async def create_class(
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
        """Create a class with all slots available.

        Raises:
            ScheduleError: if capacity or times are invalid, or the trainer
                does not exist or is inactive.
        """
        if not isinstance(name, str) or not isinstance(category, str):
            raise ScheduleError("Name and category must be text.")
        if description is not None and not isinstance(description, str):
            raise ScheduleError("Description must be text.")
        if not name or not category:
            raise ScheduleError("Name and category are required.")
        if capacity <= 0:
            raise ScheduleError("Capacity must be a positive number.")
        if end_time <= start_time:
            raise ScheduleError("End time must be after start time.")

        async with self.session_maker() as session:
            trainer = await TrainerRepository(session).get_by_id(trainer_id)
            if not trainer or not trainer.is_active:
                raise ScheduleError("Trainer not found.")

            gym_class = await ClassRepository(session).create(
                name=name,
                category=category,
                class_date=class_date,
                start_time=start_time,
                end_time=end_time,
                capacity=capacity,
                trainer_id=trainer.id,
                description=description,
            )
            await session.commit()
            await session.refresh(gym_class, attribute_names=["trainer"])

        logger.info(f"Class {gym_class.id} '{name}' created on {class_date} for trainer {trainer.name}")
        return gym_class
