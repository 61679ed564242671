from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db_handlers.base import BaseDBHandler, check_local_db
from app.models.task import Task
from app.utils.logger import setup_logger

logger = setup_logger("task_db_handler")


class TaskDBHandler(BaseDBHandler[Task]):
    def __init__(self):
        super().__init__(Task)

    @check_local_db
    async def list_tasks(
        self,
        exclude_ids: set[uuid.UUID] | None = None,
        *,
        db: AsyncSession = None,
    ) -> list[Task]:
        """List tasks oldest first, leaving out any id in exclude_ids."""
        stmt = select(Task).order_by(Task.created_at)
        if exclude_ids:
            stmt = stmt.where(Task.id.not_in(exclude_ids))
        result = await db.execute(stmt)
        return list(result.scalars().all())
