"""
User directory operations: registration, lookup, subscription flag and
listing. Balance credits happen inside the submission transaction in
`assignment_service`.
"""

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import atomic
from app.db_handlers import UserDBHandler
from app.exceptions import Conflict, NotFound, ValidationError
from app.models import User
from app.utils.logger import setup_logger

logger = setup_logger("user_service")

user_db_handler = UserDBHandler()


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def require_contact(
    name: str | None, email: str | None, phone: str | None
) -> tuple[str, str, str]:
    """Return stripped (name, email, phone) or raise when any is missing."""
    name = (name or "").strip()
    email = normalize_email(email)
    phone = (phone or "").strip()
    if not name or not email or not phone:
        raise ValidationError("Name, email, and phone are required")
    if "@" not in email:
        raise ValidationError("A valid email address is required")
    return name, email, phone


async def get_user(db: AsyncSession, email: str | None, *, for_update: bool = False) -> User:
    email = normalize_email(email)
    if not email:
        raise ValidationError("Email is required")
    user = await user_db_handler.get_user_by_email(email, db=db, for_update=for_update)
    if user is None:
        raise NotFound("User not found")
    return user


async def register_user(
    db: AsyncSession, name: str | None, email: str | None, phone: str | None
) -> User:
    name, email, phone = require_contact(name, email, phone)

    if await user_db_handler.get_user_by_email(email, db=db):
        raise Conflict("Email already registered")

    try:
        async with atomic(db):
            user = await user_db_handler.create(
                {
                    "name": name,
                    "email": email,
                    "phone": phone,
                    "subscribed": False,
                    "balance": 0,
                },
                db=db,
            )
    except IntegrityError as e:
        # Lost the race against a concurrent registration of the same email.
        raise Conflict("Email already registered") from e

    logger.info(f"Registered user {user.id} ({email})")
    return user


async def get_or_create_user(
    db: AsyncSession, name: str, email: str, phone: str
) -> User:
    """Find a user by email or create one. The caller commits."""
    user = await user_db_handler.get_user_by_email(email, db=db)
    if user is not None:
        return user

    user = await user_db_handler.create(
        {"name": name, "email": email, "phone": phone, "subscribed": False, "balance": 0},
        db=db,
    )
    logger.info(f"Created user {user.id} ({email}) on first login")
    return user


async def set_subscription(db: AsyncSession, email: str | None, subscribed: bool) -> User:
    async with atomic(db):
        user = await get_user(db, email)
        user = await user_db_handler.update(user, {"subscribed": subscribed}, db=db)
    logger.info(f"Set subscribed={subscribed} for user {user.id}")
    return user


async def list_users(db: AsyncSession, subscribed: bool | None = None) -> list[User]:
    return await user_db_handler.list_users(subscribed, db=db)
