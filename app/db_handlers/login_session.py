from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.db_handlers.base import BaseDBHandler, check_local_db
from app.models.login_session import LoginSession


class LoginSessionDBHandler(BaseDBHandler[LoginSession]):
    def __init__(self):
        super().__init__(LoginSession)

    @check_local_db
    async def get_by_token(
        self, token: str, *, db: AsyncSession = None
    ) -> LoginSession | None:
        return await self.get_by_attributes(
            db=db, token=token, options=[selectinload(LoginSession.user)]
        )
