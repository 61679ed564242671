from __future__ import annotations

import uuid
from decimal import Decimal

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db_handlers.base import BaseDBHandler, check_local_db
from app.models.user import User
from app.utils.logger import setup_logger

logger = setup_logger("db_handlers.user")


class UserDBHandler(BaseDBHandler[User]):
    def __init__(self):
        super().__init__(User)

    @check_local_db
    async def get_user_by_email(
        self, email: str, *, db: AsyncSession = None, for_update: bool = False
    ) -> User | None:
        """Get a user by email, optionally locking the row for the transaction."""
        try:
            stmt = select(User).filter(User.email == email)
            if for_update:
                stmt = stmt.with_for_update()
            result = await db.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving user by email '{email}': {e}")
            raise

    @check_local_db
    async def list_users(
        self, subscribed: bool | None = None, *, db: AsyncSession = None
    ) -> list[User]:
        stmt = select(User).order_by(User.created_at)
        if subscribed is not None:
            stmt = stmt.where(User.subscribed.is_(subscribed))
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @check_local_db
    async def credit_balance(
        self, user_id: uuid.UUID, amount: Decimal, *, db: AsyncSession = None
    ) -> Decimal:
        """Atomically add amount to the user's balance and return the new balance."""
        await db.execute(
            update(User)
            .where(User.id == user_id)
            .values(balance=User.balance + amount)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(select(User.balance).where(User.id == user_id))
        return result.scalar_one()

    @check_local_db
    async def delete_subscribed(
        self, emails: list[str] | None = None, *, db: AsyncSession = None
    ) -> int:
        """Delete subscribed users, optionally only those with the given emails."""
        stmt = delete(User).where(User.subscribed.is_(True))
        if emails is not None:
            stmt = stmt.where(User.email.in_(emails))
        result = await db.execute(stmt.execution_options(synchronize_session=False))
        return result.rowcount or 0
