"""
Magic-link login.

A login request creates (or finds) the user, stores a random single-use
token that expires after LOGIN_TOKEN_TTL_MINUTES, and emails a verification
link. Verifying the token consumes it and returns a JWT for the user.
"""

from datetime import timedelta
from urllib.parse import urlencode

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.db import atomic
from app.db_handlers import LoginSessionDBHandler
from app.exceptions import InvalidToken, NotFound
from app.models import User
from app.models.base import utcnow
from app.schemas import ensure_utc
from app.services.notification_service import NotificationDispatcher, login_link_email
from app.services.user_service import get_or_create_user, require_contact
from app.utils.auth import create_user_token, generate_login_token
from app.utils.logger import setup_logger

logger = setup_logger("auth_service")

session_db_handler = LoginSessionDBHandler()


def build_verify_url(token: str) -> str:
    return f"{settings.frontend_origin.rstrip('/')}/verify.html?{urlencode({'token': token})}"


async def request_login(
    db: AsyncSession,
    name: str | None,
    email: str | None,
    phone: str | None,
    notifier: NotificationDispatcher | None = None,
) -> str:
    """Issue a login token for the user and queue the magic-link email."""
    name, email, phone = require_contact(name, email, phone)

    token = generate_login_token()
    async with atomic(db):
        user = await get_or_create_user(db, name, email, phone)
        await session_db_handler.create(
            {
                "user_id": user.id,
                "token": token,
                "expires_at": utcnow()
                + timedelta(minutes=settings.login_token_ttl_minutes),
            },
            db=db,
        )

    logger.info(f"Issued login token for user {user.id}")
    if notifier is not None:
        notifier.enqueue(
            login_link_email(
                user.name, user.email, build_verify_url(token), settings.login_token_ttl_minutes
            )
        )
    return token


async def verify_login(db: AsyncSession, token: str) -> tuple[User, str]:
    """Consume a login token and return the user with a fresh access token."""
    async with atomic(db):
        session = await session_db_handler.get_by_token(token, db=db)
        now = utcnow()
        if (
            session is None
            or session.consumed_at is not None
            or ensure_utc(session.expires_at) < now
        ):
            raise InvalidToken()

        user = session.user
        if user is None:
            raise NotFound("User not found")

        await session_db_handler.update(session, {"consumed_at": now}, db=db)

    logger.info(f"User {user.id} verified login token")
    return user, create_user_token(user.email)
