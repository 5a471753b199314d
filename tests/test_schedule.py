"""Tests for the class schedule."""

import uuid
from datetime import date, time, timedelta

import pytest

from gymhub.database.models import AdminRole
from gymhub.database.repository import TrainerRepository
from gymhub.services.booking import BookingService
from gymhub.services.schedule import ScheduleError, ScheduleService

TOMORROW = date.today() + timedelta(days=1)


@pytest.fixture
def schedule(session_maker) -> ScheduleService:
    return ScheduleService(session_maker)


async def create(schedule, trainer, **overrides):
    fields = dict(
        name="Morning Yoga",
        category="Yoga",
        class_date=TOMORROW,
        start_time=time(9, 0),
        end_time=time(10, 0),
        capacity=15,
        trainer_id=trainer.id,
    )
    fields.update(overrides)
    return await schedule.create_class(**fields)


class TestCreateClass:
    """Tests for create_class."""

    async def test_starts_with_every_slot_free(self, schedule, trainer):
        gym_class = await create(schedule, trainer, description="Energizing flow")

        assert gym_class.id is not None
        assert gym_class.capacity == 15
        assert gym_class.available_slots == 15
        assert gym_class.description == "Energizing flow"
        assert gym_class.trainer_name == "Alice Johnson"

    @pytest.mark.parametrize("capacity", [0, -3])
    async def test_rejects_non_positive_capacity(self, schedule, trainer, capacity):
        with pytest.raises(ScheduleError, match="Capacity"):
            await create(schedule, trainer, capacity=capacity)

    async def test_rejects_end_before_start(self, schedule, trainer):
        with pytest.raises(ScheduleError, match="End time"):
            await create(schedule, trainer, start_time=time(10, 0), end_time=time(9, 30))

    async def test_requires_name(self, schedule, trainer):
        with pytest.raises(ScheduleError):
            await create(schedule, trainer, name="")

    async def test_unknown_trainer(self, schedule, trainer):
        with pytest.raises(ScheduleError, match="Trainer not found"):
            await create(schedule, trainer, trainer_id=uuid.uuid4())

    async def test_inactive_trainer(self, schedule, session_maker, trainer):
        async with session_maker() as session:
            await TrainerRepository(session).deactivate(trainer.id)
            await session.commit()

        with pytest.raises(ScheduleError, match="Trainer not found"):
            await create(schedule, trainer)

    async def test_same_name_same_time_allowed(self, schedule, session_maker, trainer):
        """Two trainers may run same-named sessions side by side."""
        async with session_maker() as session:
            second_trainer = await TrainerRepository(session).create(
                name="Bob Smith",
                email="bob@fitnesshub.com",
                password="x",
                role=AdminRole.TRAINER,
                specialization="Yoga",
            )
            await session.commit()

        first = await create(schedule, trainer)
        second = await create(schedule, second_trainer)

        assert first.id != second.id
        assert second.trainer_name == "Bob Smith"

    @pytest.mark.parametrize("overrides", [{"name": 42}, {"category": ["Yoga"]}, {"description": 7}])
    async def test_rejects_non_text_fields(self, schedule, trainer, overrides):
        with pytest.raises(ScheduleError, match="text"):
            await create(schedule, trainer, **overrides)


class TestListings:
    """Tests for read paths."""

    async def test_classes_ordered_by_date_and_time(self, schedule, trainer):
        await create(schedule, trainer, name="Late", start_time=time(18, 0), end_time=time(19, 0))
        await create(schedule, trainer, name="Early", start_time=time(7, 0), end_time=time(8, 0))
        await create(schedule, trainer, name="Today", class_date=date.today())

        classes = await schedule.list_classes()

        assert [c.name for c in classes] == ["Today", "Early", "Late"]
        assert all(c.trainer_name == "Alice Johnson" for c in classes)

    async def test_get_class(self, schedule, trainer):
        gym_class = await create(schedule, trainer)

        found = await schedule.get_class(gym_class.id)

        assert found.name == "Morning Yoga"
        assert found.trainer_name == "Alice Johnson"
        assert await schedule.get_class(9999) is None

    async def test_user_bookings_newest_first(self, schedule, session_maker, trainer, make_user):
        user = await make_user()
        first = await create(schedule, trainer, name="First")
        second = await create(schedule, trainer, name="Second")
        booking = BookingService(session_maker)
        await booking.book_class(first.id, user.id)
        await booking.book_class(second.id, user.id)

        bookings = await schedule.list_user_bookings(user.id)

        assert [b.gym_class.name for b in bookings] == ["Second", "First"]
        assert bookings[0].gym_class.trainer_name == "Alice Johnson"

    async def test_no_bookings(self, schedule, make_user):
        user = await make_user()
        assert await schedule.list_user_bookings(user.id) == []


class TestStaff:
    """Staff used by the schedule."""

    async def test_admin_can_run_classes(self, schedule, session_maker):
        async with session_maker() as session:
            admin = await TrainerRepository(session).create(
                name="Gym Admin",
                email="admin@fitnesshub.com",
                password="x",
                role=AdminRole.ADMIN,
                specialization="Administration",
            )
            await session.commit()

        gym_class = await create(schedule, admin)

        assert gym_class.trainer_name == "Gym Admin"
