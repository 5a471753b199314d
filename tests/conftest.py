"""Shared fixtures: a fresh on-disk SQLite database per test."""

import uuid
from datetime import date, time, timedelta

import pytest
from sqlalchemy import func, select

from gymhub.config import Settings
from gymhub.database.models import AdminRole, ClassBooking, GymClass, UserStatus
from gymhub.database.repository import ClassRepository, TrainerRepository, UserRepository
from gymhub.database.session import create_session_maker, init_db


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'gym.db'}",
        secret_key="test-secret",
        bcrypt_rounds=4,
    )


@pytest.fixture
async def session_maker(settings):
    maker = create_session_maker(settings.db_url)
    await init_db(maker)
    yield maker
    await maker.kw["bind"].dispose()


@pytest.fixture
async def trainer(session_maker):
    async with session_maker() as session:
        trainer = await TrainerRepository(session).create(
            name="Alice Johnson",
            email="alice@fitnesshub.com",
            password="not-a-real-hash",
            role=AdminRole.TRAINER,
            specialization="Yoga",
        )
        await session.commit()
    return trainer


@pytest.fixture
def make_user(session_maker):
    """Factory creating client accounts directly through the repository."""

    async def _make(status: UserStatus = UserStatus.ACTIVE, name: str = "Client"):
        async with session_maker() as session:
            user = await UserRepository(session).create(
                name=name,
                email=f"{uuid.uuid4().hex}@example.com",
                password="not-a-real-hash",
                status=status,
            )
            await session.commit()
        return user

    return _make


@pytest.fixture
def make_class(session_maker, trainer):
    """Factory creating classes with every slot free."""
    counter = {"n": 0}

    async def _make(capacity: int = 5, days_ahead: int = 1, start: time = time(9, 0)):
        counter["n"] += 1
        async with session_maker() as session:
            gym_class = await ClassRepository(session).create(
                name=f"Class {counter['n']}",
                category="Yoga",
                class_date=date.today() + timedelta(days=days_ahead),
                start_time=start,
                end_time=time(start.hour + 1, start.minute),
                capacity=capacity,
                trainer_id=trainer.id,
            )
            await session.commit()
        return gym_class

    return _make


@pytest.fixture
def class_state(session_maker):
    """Return (available_slots, booking_count, capacity) for a class as stored."""

    async def _state(class_id: int) -> tuple[int, int, int]:
        async with session_maker() as session:
            gym_class = await session.get(GymClass, class_id)
            count = await session.scalar(
                select(func.count()).select_from(ClassBooking).where(ClassBooking.class_id == class_id)
            )
            return gym_class.available_slots, count, gym_class.capacity

    return _state
