from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.db_handlers.base import BaseDBHandler, check_local_db
from app.models.assignment import Assignment
from app.utils.logger import setup_logger

logger = setup_logger("db_handlers.assignment")


class AssignmentDBHandler(BaseDBHandler[Assignment]):
    def __init__(self):
        super().__init__(Assignment)

    @check_local_db
    async def get_blocking_assignments(
        self,
        user_id: uuid.UUID,
        since: datetime | None,
        *,
        db: AsyncSession = None,
    ) -> list[Assignment]:
        """
        Assignments that stop the user from taking a new task.

        With ``since`` set, a pending assignment always blocks and a completed
        one blocks only when it was created at or after ``since``. Without it,
        every pending or completed assignment blocks.
        """
        stmt = select(Assignment).where(Assignment.user_id == user_id)
        if since is None:
            stmt = stmt.where(Assignment.status.in_(("pending", "completed")))
        else:
            stmt = stmt.where(
                or_(
                    Assignment.status == "pending",
                    and_(
                        Assignment.status == "completed",
                        Assignment.created_at >= since,
                    ),
                )
            )
        stmt = stmt.order_by(Assignment.created_at.desc())
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @check_local_db
    async def get_assigned_task_ids(
        self, user_id: uuid.UUID, *, db: AsyncSession = None
    ) -> set[uuid.UUID]:
        result = await db.execute(
            select(Assignment.task_id).where(Assignment.user_id == user_id)
        )
        return set(result.scalars().all())

    @check_local_db
    async def get_user_assignments_with_tasks(
        self, user_id: uuid.UUID, *, db: AsyncSession = None
    ) -> list[Assignment]:
        return await self.get_multi_by_attributes(
            db=db,
            user_id=user_id,
            options=[selectinload(Assignment.task)],
            order_by=Assignment.created_at.desc(),
        )
