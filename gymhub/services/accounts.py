"""Client and staff account management."""

import asyncio
import logging
import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gymhub.database.models import USER_ROLE, AdminRole, Trainer, User, UserStatus
from gymhub.database.repository import TrainerRepository, UserRepository
from gymhub.services.security import Principal, hash_password, verify_password

logger = logging.getLogger(__name__)

TRAINER_FIELDS = frozenset({
    "name", "email", "password", "role", "specialization",
    "experience", "schedule", "phone_number", "bio",
})


class AccountError(Exception):
    """Base class for account errors."""


class EmailAlreadyRegistered(AccountError):
    """Email is taken by a client or staff account."""


class InvalidCredentials(AccountError):
    """Email/password pair does not match an active account."""


class AccountNotFound(AccountError):
    """Referenced account does not exist."""


class InvalidRole(AccountError):
    """Role is not one of the staff roles."""


def parse_role(value) -> AdminRole:
    try:
        return AdminRole(value)
    except ValueError:
        raise InvalidRole(
            f"Invalid role {value!r}. Must be one of: "
            + ", ".join(role.value for role in AdminRole)
        ) from None


def parse_status(value) -> UserStatus:
    try:
        return UserStatus(value)
    except ValueError:
        raise AccountError(f"Invalid user status {value!r}.") from None


def check_text(**fields) -> None:
    """Reject non-string values for free-text account fields."""
    for field, value in fields.items():
        if value is not None and not isinstance(value, str):
            raise AccountError(f"{field.replace('_', ' ').capitalize()} must be text.")


class AccountService:
    """Signup, login and administration of users and trainers."""

    def __init__(
        self, session_maker: async_sessionmaker[AsyncSession], bcrypt_rounds: int = 10
    ):
        self.session_maker = session_maker
        self.bcrypt_rounds = bcrypt_rounds

    async def _hash(self, password: str) -> str:
        return await asyncio.to_thread(hash_password, password, self.bcrypt_rounds)

    async def _ensure_email_free(
        self, session: AsyncSession, email: str, trainer_id: uuid.UUID | None = None
    ) -> None:
        if await UserRepository(session).get_by_email(email):
            raise EmailAlreadyRegistered("User with this email already exists.")
        trainer = await TrainerRepository(session).get_by_email(email)
        if trainer and trainer.id != trainer_id:
            raise EmailAlreadyRegistered(
                "An account with this email already exists (Trainer/Admin)."
            )

    # Users

    async def signup(
        self, name: str, email: str, password: str, phone_number: str | None = None
    ) -> User:
        """Register a client; new accounts wait for admin approval."""
        return await self.create_user(name, email, password, phone_number)

    async def create_user(
        self,
        name: str,
        email: str,
        password: str,
        phone_number: str | None = None,
        status: UserStatus = UserStatus.PENDING,
    ) -> User:
        """Create a client account with the given status."""
        check_text(name=name, email=email, password=password, phone_number=phone_number)
        if not name or not email or not password:
            raise AccountError("Name, email and password are required.")
        status = parse_status(status)
        password_hash = await self._hash(password)

        try:
            async with self.session_maker() as session:
                await self._ensure_email_free(session, email)
                user = await UserRepository(session).create(
                    name=name,
                    email=email,
                    password=password_hash,
                    phone_number=phone_number,
                    status=status,
                )
                await session.commit()
        except IntegrityError:
            raise EmailAlreadyRegistered("User with this email already exists.") from None

        logger.info(f"User {user.id} registered with status {user.status}")
        return user

    async def login(self, email: str, password: str) -> Principal:
        """Authenticate a client or staff account."""
        check_text(email=email, password=password)
        async with self.session_maker() as session:
            user = await UserRepository(session).get_by_email(email)
            trainer = None if user else await TrainerRepository(session).get_by_email(email)

        account = user or trainer
        if account and account.is_active:
            if await asyncio.to_thread(verify_password, password, account.password):
                if user:
                    return Principal(id=str(user.id), role=USER_ROLE, status=user.status)
                return Principal(id=str(trainer.id), role=trainer.role)

        logger.info(f"Failed login for {email}")
        raise InvalidCredentials("Invalid credentials")

    async def update_user_status(self, user_id: uuid.UUID, status: UserStatus) -> User:
        """Approve or suspend a client account."""
        status = parse_status(status)
        async with self.session_maker() as session:
            user = await UserRepository(session).update_status(user_id, status)
            if not user:
                raise AccountNotFound("User not found.")
            await session.commit()

        logger.info(f"User {user_id} status set to {status.value}")
        return user

    async def list_users(self, include_inactive: bool = False) -> list[User]:
        async with self.session_maker() as session:
            return await UserRepository(session).get_all(include_inactive=include_inactive)

    # Trainers

    async def list_trainers(self) -> list[Trainer]:
        async with self.session_maker() as session:
            return await TrainerRepository(session).get_active()

    async def create_trainer(
        self,
        name: str,
        email: str,
        password: str,
        role: AdminRole | str,
        specialization: str,
        experience: int = 0,
        schedule: str = "",
        phone_number: str | None = None,
        bio: str | None = None,
    ) -> Trainer:
        """Create a trainer or admin account."""
        check_text(
            name=name, email=email, password=password, specialization=specialization,
            schedule=schedule, phone_number=phone_number, bio=bio,
        )
        if not password:
            raise AccountError("Password is required to create a trainer/admin.")
        if not name or not email or not specialization:
            raise AccountError("Name, email and specialization are required.")
        if not isinstance(experience, int) or isinstance(experience, bool):
            raise AccountError("Experience must be a number.")
        role = parse_role(role)
        password_hash = await self._hash(password)

        try:
            async with self.session_maker() as session:
                await self._ensure_email_free(session, email)
                trainer = await TrainerRepository(session).create(
                    name=name,
                    email=email,
                    password=password_hash,
                    role=role,
                    specialization=specialization,
                    experience=experience,
                    schedule=schedule,
                    phone_number=phone_number,
                    bio=bio,
                )
                await session.commit()
        except IntegrityError:
            raise EmailAlreadyRegistered("This email is already registered.") from None

        logger.info(f"{role.value} account {trainer.id} created for {name}")
        return trainer

    async def update_trainer(self, trainer_id: uuid.UUID, **changes) -> Trainer:
        """Update trainer fields; an empty password leaves the old one."""
        unknown = set(changes) - TRAINER_FIELDS
        if unknown:
            raise AccountError(f"Unknown trainer fields: {', '.join(sorted(unknown))}")
        check_text(**{f: v for f, v in changes.items() if f not in ("experience", "role")})
        if "experience" in changes and (
            not isinstance(changes["experience"], int) or isinstance(changes["experience"], bool)
        ):
            raise AccountError("Experience must be a number.")
        blank = [f for f in ("name", "email", "specialization") if f in changes and not changes[f]]
        if blank:
            raise AccountError(f"Fields cannot be empty: {', '.join(blank)}")

        if changes.get("password"):
            changes["password"] = await self._hash(changes["password"])
        else:
            changes.pop("password", None)
        if "role" in changes:
            changes["role"] = parse_role(changes["role"]).value

        try:
            async with self.session_maker() as session:
                repo = TrainerRepository(session)
                trainer = await repo.get_by_id(trainer_id)
                if not trainer:
                    raise AccountNotFound("Trainer/Admin not found.")
                if changes.get("email"):
                    await self._ensure_email_free(session, changes["email"], trainer_id=trainer.id)
                trainer = await repo.update(trainer, **changes)
                await session.commit()
        except IntegrityError:
            raise EmailAlreadyRegistered("This email is already registered.") from None

        return trainer

    async def deactivate_trainer(self, trainer_id: uuid.UUID) -> Trainer:
        """Soft-delete a trainer; their classes stay in place."""
        async with self.session_maker() as session:
            trainer = await TrainerRepository(session).deactivate(trainer_id)
            if not trainer:
                raise AccountNotFound("Trainer/Admin not found.")
            await session.commit()

        logger.info(f"Trainer {trainer_id} deactivated")
        return trainer

    async def get_trainer(self, trainer_id: uuid.UUID) -> Trainer | None:
        async with self.session_maker() as session:
            return await TrainerRepository(session).get_by_id(trainer_id)

    async def current_principal(self, principal: Principal) -> Principal | None:
        """Re-read the account behind a token.

        Returns the principal with its current role and status, or None when
        the account no longer exists or has been deactivated.
        """
        try:
            account_id = uuid.UUID(principal.id)
        except ValueError:
            return None

        async with self.session_maker() as session:
            if principal.role == USER_ROLE:
                user = await UserRepository(session).get_by_id(account_id)
                if user and user.is_active:
                    return Principal(id=str(user.id), role=USER_ROLE, status=user.status)
                return None

            trainer = await TrainerRepository(session).get_by_id(account_id)
            if trainer and trainer.is_active:
                return Principal(id=str(trainer.id), role=trainer.role)
            return None
