"""Seed the database with demo staff, clients and classes."""

import asyncio
import sys
from datetime import date, time, timedelta
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from gymhub.config import get_settings  # noqa: E402
from gymhub.database.models import AdminRole, UserStatus  # noqa: E402
from gymhub.database.repository import TrainerRepository, UserRepository  # noqa: E402
from gymhub.database.session import get_session_maker, init_db  # noqa: E402
from gymhub.services.accounts import AccountService, EmailAlreadyRegistered  # noqa: E402
from gymhub.services.booking import BookingService  # noqa: E402
from gymhub.services.schedule import ScheduleError, ScheduleService  # noqa: E402

STAFF = [
    {
        "name": "Gym Admin",
        "email": "admin@fitnesshub.com",
        "password": "adminpass",
        "role": AdminRole.ADMIN,
        "specialization": "Site Administration",
        "experience": 5,
        "schedule": "Always available",
        "bio": "Oversees site operations and user management.",
    },
    {
        "name": "Alice Johnson",
        "email": "trainer1@fitnesshub.com",
        "password": "trainerpass1",
        "role": AdminRole.TRAINER,
        "specialization": "Yoga & Flexibility",
        "experience": 5,
        "schedule": "Mon, Wed, Fri 8am-12pm",
        "bio": "Certified Yoga instructor focused on balance and mindful movement.",
    },
    {
        "name": "Bob Smith",
        "email": "trainer2@fitnesshub.com",
        "password": "trainerpass2",
        "role": AdminRole.TRAINER,
        "specialization": "Strength Training",
        "experience": 8,
        "schedule": "Tue, Thu 1pm-5pm, Sat 9am-1pm",
        "bio": "Strength coach for powerlifting and bodybuilding goals.",
    },
    {
        "name": "Charlie Brown",
        "email": "trainer3@fitnesshub.com",
        "password": "trainerpass3",
        "role": AdminRole.TRAINER,
        "specialization": "Cardio & Endurance",
        "experience": 3,
        "schedule": "Mon-Fri 5pm-9pm",
        "bio": "HIIT and endurance running programs.",
    },
]

CLIENTS = [
    ("Active User", "user1@example.com", "userpass1", "111-222-3333", UserStatus.ACTIVE),
    ("Pending User", "user2@example.com", "userpass2", "444-555-6666", UserStatus.PENDING),
]

# (name, category, description, start, end, capacity, trainer email)
CLASSES = [
    ("Morning Yoga", "Yoga", "Start your day with energizing yoga flow.",
     time(9, 0), time(10, 0), 15, "trainer1@fitnesshub.com"),
    ("Strength Fundamentals", "Strength Training", "Learn the basics of weightlifting.",
     time(11, 0), time(12, 0), 10, "trainer2@fitnesshub.com"),
    ("Advanced Strength", "Strength Training", "For experienced lifters.",
     time(14, 0), time(15, 30), 8, "trainer2@fitnesshub.com"),
    ("HIIT Cardio Blast", "Cardio", "High-Intensity Interval Training for maximum calorie burn.",
     time(17, 0), time(17, 45), 20, "trainer3@fitnesshub.com"),
    ("Evening Flow Yoga", "Yoga", "Wind down with a gentle yoga flow.",
     time(18, 0), time(19, 0), 15, "trainer1@fitnesshub.com"),
]


async def seed() -> None:
    """Create demo data; existing rows are left untouched."""
    settings = get_settings()
    session_maker = get_session_maker()
    await init_db(session_maker)

    accounts = AccountService(session_maker, bcrypt_rounds=settings.bcrypt_rounds)
    schedule = ScheduleService(session_maker)
    booking = BookingService(session_maker)

    for staff in STAFF:
        try:
            trainer = await accounts.create_trainer(**staff)
            print(f"Created {trainer.role} {trainer.name} ({trainer.id})")
        except EmailAlreadyRegistered:
            print(f"Skipped existing staff account {staff['email']}")

    for name, email, password, phone, status in CLIENTS:
        try:
            user = await accounts.create_user(name, email, password, phone, status=status)
            print(f"Created {user.status} user {user.name} ({user.id})")
        except EmailAlreadyRegistered:
            print(f"Skipped existing user {email}")

    async with session_maker() as session:
        trainer_repo = TrainerRepository(session)
        trainers = {staff["email"]: await trainer_repo.get_by_email(staff["email"]) for staff in STAFF}
        active_user = await UserRepository(session).get_by_email(CLIENTS[0][1])

    tomorrow = date.today() + timedelta(days=1)
    print(f"Seeding classes for: {tomorrow.isoformat()}")
    existing = {(c.name, c.class_date, c.start_time): c for c in await schedule.list_classes()}
    first_class = None
    for name, category, description, start, end, capacity, trainer_email in CLASSES:
        if (name, tomorrow, start) in existing:
            print(f"Skipped existing class {name}")
            first_class = first_class or existing[(name, tomorrow, start)]
            continue
        try:
            gym_class = await schedule.create_class(
                name=name,
                category=category,
                class_date=tomorrow,
                start_time=start,
                end_time=end,
                capacity=capacity,
                trainer_id=trainers[trainer_email].id,
                description=description,
            )
            print(f"Created class {gym_class.name} ({gym_class.id})")
            first_class = first_class or gym_class
        except ScheduleError as e:
            print(f"Skipped class {name}: {e}")

    if first_class and active_user:
        result = await booking.book_class(first_class.id, active_user.id)
        if result.success:
            print(f"Booked {active_user.name} into {first_class.name}")
        else:
            print(f"Could not book {active_user.name}: {result.error.message}")


if __name__ == "__main__":
    print("🌱 Seeding database...")
    asyncio.run(seed())
    print("✅ Done!")
