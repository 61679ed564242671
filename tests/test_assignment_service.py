"""
Assignment policy tests run directly against the service layer with an
injected clock, so cooldown windows can be crossed without waiting.
"""

import io
import uuid
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from fastapi import UploadFile
from sqlalchemy.exc import OperationalError

from app.config import settings
from app.db_handlers import TaskDBHandler
from app.exceptions import (
    AlreadySubmitted,
    CooldownViolation,
    Forbidden,
    NotFound,
    ValidationError,
)
from app.schemas import ensure_utc
from app.services import user_service
from app.services.assignment_service import AssignmentService
from app.services.storage import SUBMISSION_FILES

T0 = datetime(2026, 1, 5, 9, 0, tzinfo=UTC)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def make_upload(content: bytes = b"My essay.", filename: str = "essay.docx") -> UploadFile:
    return UploadFile(file=io.BytesIO(content), filename=filename)


async def seed(db, email="writer@example.com", titles=("First", "Second")):
    """Create a user and tasks; return the email and task ids.

    Plain values are returned because a rolled-back transaction expires the
    ORM instances, and expired attributes cannot be lazily reloaded under
    asyncio.
    """
    user = await user_service.register_user(db, "Writer", email, "+254700000000")
    tasks = []
    for title in titles:
        tasks.append(
            await TaskDBHandler().create(
                {"title": title, "description": f"{title} brief", "price": Decimal("12.50")},
                db=db,
            )
        )
    await db.commit()
    return user.email, [task.id for task in tasks]



@pytest.mark.asyncio
async def test_take_task_sets_pending_with_deadline(db_session):
    email, (task_id, _) = await seed(db_session)
    service = AssignmentService(settings, clock=FakeClock(T0))

    assignment = await service.take_task(db_session, email, task_id)

    assert assignment.status == "pending"
    assert assignment.task_id == task_id
    assert ensure_utc(assignment.deadline) == T0 + timedelta(hours=6)


@pytest.mark.asyncio
async def test_pending_assignment_blocks_new_take(db_session):
    email, (first_id, second_id) = await seed(db_session)
    clock = FakeClock(T0)
    service = AssignmentService(settings, clock=clock)

    await service.take_task(db_session, email, first_id)
    clock.advance(days=30)

    with pytest.raises(CooldownViolation) as exc_info:
        await service.take_task(db_session, email, second_id)
    assert "pending" in exc_info.value.message


@pytest.mark.asyncio
async def test_rolling_cooldown_expires_after_window(db_session, storage):
    email, (first_id, second_id) = await seed(db_session)
    clock = FakeClock(T0)
    service = AssignmentService(settings, clock=clock)

    assignment = await service.take_task(db_session, email, first_id)
    clock.advance(hours=1)
    await service.submit_task(db_session, email, assignment.id, make_upload(), storage)

    clock.advance(days=1)
    with pytest.raises(CooldownViolation) as exc_info:
        await service.take_task(db_session, email, second_id)
    assert "2026-01-08 09:00" in exc_info.value.message

    clock.now = T0 + timedelta(days=3, minutes=1)
    taken = await service.take_task(db_session, email, second_id)
    assert taken.task_id == second_id


@pytest.mark.asyncio
async def test_lifetime_cooldown_never_expires(db_session, storage):
    email, (first_id, second_id) = await seed(db_session)
    clock = FakeClock(T0)
    lifetime = settings.model_copy(update={"cooldown_mode": "lifetime"})
    service = AssignmentService(lifetime, clock=clock)

    assignment = await service.take_task(db_session, email, first_id)
    await service.submit_task(db_session, email, assignment.id, make_upload(), storage)

    clock.advance(days=365)
    with pytest.raises(CooldownViolation):
        await service.take_task(db_session, email, second_id)


@pytest.mark.asyncio
async def test_take_task_validates_input(db_session):
    _email, (task_id, _) = await seed(db_session)
    service = AssignmentService(settings)

    with pytest.raises(ValidationError):
        await service.take_task(db_session, "", None)
    with pytest.raises(NotFound):
        await service.take_task(db_session, "nobody@example.com", task_id)


@pytest.mark.asyncio
async def test_take_unknown_task_is_not_found(db_session):
    email, _ = await seed(db_session)
    service = AssignmentService(settings)

    with pytest.raises(NotFound) as exc_info:
        await service.take_task(db_session, email, uuid.uuid4())
    assert exc_info.value.message == "Task not found"


@pytest.mark.asyncio
async def test_submit_credits_balance_once(db_session, storage):
    email, (task_id, _) = await seed(db_session)
    service = AssignmentService(settings, clock=FakeClock(T0))
    assignment = await service.take_task(db_session, email, task_id)
    assignment_id = assignment.id

    result = await service.submit_task(
        db_session, email, assignment_id, make_upload(), storage
    )

    assert result.assignment.status == "completed"
    assert result.assignment.file_path.endswith("_essay.docx")
    assert float(result.new_balance) == 12.5
    assert storage.path_for(SUBMISSION_FILES, result.assignment.file_path).exists()

    with pytest.raises(AlreadySubmitted):
        await service.submit_task(
            db_session, email, assignment_id, make_upload(), storage
        )

    user = await user_service.get_user(db_session, email)
    await db_session.refresh(user)
    assert float(user.balance) == 12.5
    assert len(list(storage.category_dir(SUBMISSION_FILES).iterdir())) == 1


@pytest.mark.asyncio
async def test_submit_rejects_assignment_of_another_user(db_session, storage):
    email, (task_id, _) = await seed(db_session)
    await user_service.register_user(
        db_session, "Other", "other@example.com", "+254711111111"
    )
    service = AssignmentService(settings, clock=FakeClock(T0))
    assignment = await service.take_task(db_session, email, task_id)

    with pytest.raises(Forbidden):
        await service.submit_task(
            db_session, "other@example.com", assignment.id, make_upload(), storage
        )


@pytest.mark.asyncio
async def test_failed_upload_leaves_assignment_pending(db_session, storage):
    email, (task_id, _) = await seed(db_session)
    service = AssignmentService(settings, clock=FakeClock(T0))
    assignment = await service.take_task(db_session, email, task_id)
    assignment_id = assignment.id

    too_big = make_upload(b"x" * (storage.max_bytes + 1))
    with pytest.raises(ValidationError):
        await service.submit_task(db_session, email, assignment_id, too_big, storage)

    stored = await service.assignments.get(assignment_id, db=db_session)
    await db_session.refresh(stored)
    assert stored.status == "pending"
    assert stored.file_path is None

    user = await user_service.get_user(db_session, email)
    await db_session.refresh(user)
    assert float(user.balance) == 0
    assert list(storage.category_dir(SUBMISSION_FILES).iterdir()) == []


@pytest.mark.asyncio
async def test_available_tasks_exclude_every_assigned_task(db_session, storage):
    email, (first_id, second_id, third_id) = await seed(
        db_session, titles=("First", "Second", "Third")
    )
    service = AssignmentService(settings, clock=FakeClock(T0))

    assignment = await service.take_task(db_session, email, first_id)
    await service.submit_task(db_session, email, assignment.id, make_upload(), storage)

    available = await service.list_available_tasks(db_session, email)
    assert {t.id for t in available} == {second_id, third_id}

    assignments = await service.list_assignments(db_session, email)
    assert [a.task.id for a in assignments] == [first_id]
    assert assignments[0].status == "completed"


@pytest.mark.asyncio
async def test_failed_credit_rolls_back_completion(db_session, storage, monkeypatch):
    email, (task_id, _) = await seed(db_session)
    service = AssignmentService(settings, clock=FakeClock(T0))
    assignment = await service.take_task(db_session, email, task_id)
    assignment_id = assignment.id

    async def failing_credit(*args, **kwargs):
        raise OperationalError("UPDATE users", {}, Exception("database is locked"))

    monkeypatch.setattr(service.users, "credit_balance", failing_credit)

    with pytest.raises(OperationalError):
        await service.submit_task(
            db_session, email, assignment_id, make_upload(), storage
        )

    stored = await service.assignments.get(assignment_id, db=db_session)
    await db_session.refresh(stored)
    assert stored.status == "pending"
    assert stored.file_path is None
    assert stored.submitted_at is None

    user = await user_service.get_user(db_session, email)
    await db_session.refresh(user)
    assert float(user.balance) == 0
    assert list(storage.category_dir(SUBMISSION_FILES).iterdir()) == []


@pytest.mark.asyncio
async def test_submission_email_reports_exact_amounts(db_session, storage, fake_notifier):
    email, (task_id, _) = await seed(db_session)
    service = AssignmentService(settings, clock=FakeClock(T0))
    assignment = await service.take_task(db_session, email, task_id, fake_notifier)

    await service.submit_task(
        db_session, email, assignment.id, make_upload(), storage, fake_notifier
    )

    subjects = [m.subject for m in fake_notifier.sent]
    assert subjects == ["New Task Assigned: First", "Task Submission Received"]
    assert "$12.50 added to balance. New balance: $12.50." in fake_notifier.sent[-1].html
