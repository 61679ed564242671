"""
HTTP API Routes - task catalog and the assignment lifecycle.

Taking and submitting tasks are the two state-changing operations; both
accept an optional user bearer token which, when present, must belong to the
email in the request. The token is only mandatory when REQUIRE_USER_TOKEN is
set; otherwise the request email alone identifies the user.
"""

import uuid

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import get_app_db
from app.dependencies import get_assignment_service, get_notifier, get_storage
from app.dependencies.auth import ensure_caller_matches, get_current_user_email_optional
from app.schemas import (
    AssignmentResponse,
    AssignmentWithTaskResponse,
    SubmitTaskResponse,
    SubmittedAssignmentResponse,
    TakeTaskRequest,
    TakeTaskResponse,
    TaskResponse,
)
from app.services import task_service
from app.services.assignment_service import AssignmentService
from app.services.notification_service import NotificationDispatcher
from app.services.storage import UploadStorage
from app.utils.logger import setup_logger

logger = setup_logger("api")

router = APIRouter()


@router.get("/")
async def read_root():
    """API health check endpoint."""
    return {"message": "WritersInn backend is running"}


@router.get("/tasks", response_model=list[TaskResponse])
async def get_tasks(db: AsyncSession = Depends(get_app_db)):
    tasks = await task_service.list_tasks(db)
    return [TaskResponse.model_validate(task) for task in tasks]


@router.get("/available-tasks/{email}", response_model=list[TaskResponse])
async def get_available_tasks(
    email: str,
    db: AsyncSession = Depends(get_app_db),
    service: AssignmentService = Depends(get_assignment_service),
):
    """Tasks the user has never been assigned."""
    tasks = await service.list_available_tasks(db, email)
    return [TaskResponse.model_validate(task) for task in tasks]


@router.post("/take-task", response_model=TakeTaskResponse)
async def take_task(
    body: TakeTaskRequest,
    db: AsyncSession = Depends(get_app_db),
    service: AssignmentService = Depends(get_assignment_service),
    notifier: NotificationDispatcher = Depends(get_notifier),
    caller_email: str | None = Depends(get_current_user_email_optional),
):
    ensure_caller_matches(body.email, caller_email)
    assignment = await service.take_task(db, body.email, body.task_id, notifier)
    return TakeTaskResponse(
        message="✅ Task assigned and instructions sent to your email",
        assignment=AssignmentResponse.model_validate(assignment),
    )


@router.post("/submit-task", response_model=SubmitTaskResponse)
async def submit_task(
    email: str | None = Form(None),
    assignment_id: uuid.UUID | None = Form(None),
    file: UploadFile | None = File(None),
    db: AsyncSession = Depends(get_app_db),
    service: AssignmentService = Depends(get_assignment_service),
    storage: UploadStorage = Depends(get_storage),
    notifier: NotificationDispatcher = Depends(get_notifier),
    caller_email: str | None = Depends(get_current_user_email_optional),
):
    ensure_caller_matches(email, caller_email)
    result = await service.submit_task(
        db, email, assignment_id, file, storage, notifier
    )
    assignment = SubmittedAssignmentResponse.model_validate(
        {**result.assignment.to_dict(), "task_price": float(result.task.price)}
    )
    return SubmitTaskResponse(
        message="✅ Task submitted successfully", assignment=assignment
    )


@router.get("/assignments/{email}", response_model=list[AssignmentWithTaskResponse])
async def get_assignments(
    email: str,
    db: AsyncSession = Depends(get_app_db),
    service: AssignmentService = Depends(get_assignment_service),
):
    assignments = await service.list_assignments(db, email)
    return [AssignmentWithTaskResponse.model_validate(a) for a in assignments]
