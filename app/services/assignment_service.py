"""
Assignment lifecycle policy.

Decides whether a user may take a task (cooldown), creates assignments,
completes them on submission and credits the user's balance in the same
transaction, and answers which tasks a user can still see.

Lifecycle:
    take_task:   (no blocking assignment) → pending, deadline = now + 6h
    submit_task: pending → completed, balance += task.price
"""

import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from fastapi import UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, settings
from app.db import atomic
from app.db_handlers import AssignmentDBHandler, TaskDBHandler, UserDBHandler
from app.exceptions import (
    AlreadySubmitted,
    CooldownViolation,
    Forbidden,
    NotFound,
    ValidationError,
)
from app.models import Assignment, Task, User
from app.models.base import utcnow
from app.schemas import ensure_utc
from app.services.notification_service import (
    NotificationDispatcher,
    submission_received_email,
    task_assigned_email,
)
from app.services.storage import SUBMISSION_FILES, UploadStorage
from app.services.user_service import get_user, normalize_email
from app.utils.logger import setup_logger

logger = setup_logger("assignment_service")


@dataclass
class SubmissionResult:
    assignment: Assignment
    task: Task
    user: User
    new_balance: Decimal


class AssignmentService:
    def __init__(
        self,
        config: Settings = settings,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.config = config
        self.clock = clock
        self.users = UserDBHandler()
        self.tasks = TaskDBHandler()
        self.assignments = AssignmentDBHandler()

    @property
    def cooldown(self) -> timedelta:
        return timedelta(days=self.config.cooldown_days)

    @property
    def deadline_offset(self) -> timedelta:
        return timedelta(hours=self.config.assignment_deadline_hours)

    def cooldown_cutoff(self, now: datetime) -> datetime | None:
        """Earliest creation time of a completed assignment that still blocks."""
        if self.config.cooldown_mode == "lifetime":
            return None
        return now - self.cooldown

    def _cooldown_message(self, blocking: list[Assignment]) -> str:
        if any(a.status == "pending" for a in blocking):
            return "⚠ Finish your pending task before taking a new task."
        if self.config.cooldown_mode == "lifetime":
            return f"⚠ Wait {self.config.cooldown_days} days before taking a new task."
        latest = max(ensure_utc(a.created_at) for a in blocking)
        eligible_at = latest + self.cooldown
        return (
            f"⚠ Wait {self.config.cooldown_days} days before taking a new task. "
            f"You can take a new task after {eligible_at.strftime('%Y-%m-%d %H:%M')} UTC."
        )

    async def take_task(
        self,
        db: AsyncSession,
        email: str | None,
        task_id: uuid.UUID | None,
        notifier: NotificationDispatcher | None = None,
    ) -> Assignment:
        if not normalize_email(email) or not task_id:
            raise ValidationError("Email and task ID are required")

        async with atomic(db):
            # Row lock serializes concurrent take_task calls for one user.
            user = await get_user(db, email, for_update=True)

            now = self.clock()
            blocking = await self.assignments.get_blocking_assignments(
                user.id, self.cooldown_cutoff(now), db=db
            )
            if blocking:
                logger.info(
                    f"Cooldown: user {user.id} blocked by {len(blocking)} assignment(s)"
                )
                raise CooldownViolation(self._cooldown_message(blocking))

            task = await self.tasks.get(task_id, db=db)
            if task is None:
                raise NotFound("Task not found")

            assignment = await self.assignments.create(
                {
                    "user_id": user.id,
                    "task_id": task.id,
                    "status": "pending",
                    "created_at": now,
                    "deadline": now + self.deadline_offset,
                },
                db=db,
            )

        logger.info(
            f"Assigned task {task.id} to user {user.id} as assignment {assignment.id}"
        )
        if notifier is not None:
            notifier.enqueue(
                task_assigned_email(user.name, user.email, task.title, task.description)
            )
        return assignment

    async def submit_task(
        self,
        db: AsyncSession,
        email: str | None,
        assignment_id: uuid.UUID | None,
        upload: UploadFile | None,
        storage: UploadStorage,
        notifier: NotificationDispatcher | None = None,
    ) -> SubmissionResult:
        if not normalize_email(email) or not assignment_id or upload is None or not upload.filename:
            raise ValidationError("Missing data or file")

        stored_name = None
        try:
            async with atomic(db):
                user = await get_user(db, email)

                assignment = await self.assignments.get(
                    assignment_id, db=db, for_update=True
                )
                if assignment is None:
                    raise NotFound("Assignment not found")
                if assignment.user_id != user.id:
                    logger.warning(
                        f"User {user.id} tried to submit assignment {assignment.id} owned by {assignment.user_id}"
                    )
                    raise Forbidden("Assignment does not belong to this user")
                if assignment.status == "completed":
                    raise AlreadySubmitted()

                task = await self.tasks.get(assignment.task_id, db=db)
                if task is None:
                    raise NotFound("Task not found")

                stored_name = await storage.save(upload, SUBMISSION_FILES)

                assignment = await self.assignments.update(
                    assignment,
                    {
                        "status": "completed",
                        "file_path": stored_name,
                        "submitted_at": self.clock(),
                    },
                    db=db,
                )
                new_balance = await self.users.credit_balance(
                    user.id, task.price, db=db
                )
        except Exception:
            if stored_name is not None:
                storage.delete(SUBMISSION_FILES, stored_name)
            raise

        logger.info(
            f"Assignment {assignment.id} completed by user {user.id}; credited {task.price}, balance now {new_balance}"
        )
        if notifier is not None:
            notifier.enqueue(
                submission_received_email(
                    user.name, user.email, task.title, task.price, new_balance
                )
            )
        return SubmissionResult(
            assignment=assignment, task=task, user=user, new_balance=new_balance
        )

    async def list_available_tasks(self, db: AsyncSession, email: str | None) -> list[Task]:
        """Tasks the user has never been assigned, in any status."""
        user = await get_user(db, email)
        assigned_ids = await self.assignments.get_assigned_task_ids(user.id, db=db)
        return await self.tasks.list_tasks(exclude_ids=assigned_ids, db=db)

    async def list_assignments(self, db: AsyncSession, email: str | None) -> list[Assignment]:
        user = await get_user(db, email)
        return await self.assignments.get_user_assignments_with_tasks(user.id, db=db)
