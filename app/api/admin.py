"""
Admin routes - task creation, subscriber management and user listing.

Every route requires an admin credential with the matching scope; see
`app.dependencies.auth.require_admin`.
"""

from fastapi import APIRouter, Depends, File, Form, Header, UploadFile
from fastapi.responses import JSONResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import ADMIN_SCOPES, settings
from app.db import get_app_db
from app.dependencies import get_storage
from app.dependencies.auth import require_admin
from app.exceptions import Unauthorized
from app.schemas import (
    AddTaskResponse,
    AdminTokenRequest,
    AdminTokenResponse,
    MarkSubscribedRequest,
    MarkSubscribedResponse,
    PurgeResponse,
    PurgeSubscribedRequest,
    TaskResponse,
    UserResponse,
)
from app.services import export_service, task_service, user_service
from app.services.storage import UploadStorage
from app.utils.auth import create_admin_token, secrets_match
from app.utils.logger import setup_logger

logger = setup_logger("api.admin")

router = APIRouter(tags=["Admin"])


@router.post("/admin/token", response_model=AdminTokenResponse)
async def issue_admin_token(
    body: AdminTokenRequest | None = None,
    x_admin_secret: str | None = Header(None, alias="x-admin-secret"),
):
    """Trade the admin secret for a short-lived token limited to the requested scopes."""
    if not secrets_match(x_admin_secret, settings.admin_secret):
        logger.warning("Admin token request with invalid secret")
        raise Unauthorized()

    scopes = list(body.scopes) if body and body.scopes else list(ADMIN_SCOPES)
    logger.info(f"Issued admin token with scopes {scopes}")
    return AdminTokenResponse(
        access_token=create_admin_token(scopes),
        scopes=scopes,
        expires_in=settings.admin_token_expire_minutes * 60,
    )


@router.post(
    "/admin/add-task",
    response_model=AddTaskResponse,
    dependencies=[Depends(require_admin("tasks:write"))],
)
async def add_task(
    title: str | None = Form(None),
    description: str | None = Form(None),
    price: str | None = Form(None),
    file: UploadFile | None = File(None),
    db: AsyncSession = Depends(get_app_db),
    storage: UploadStorage = Depends(get_storage),
):
    task = await task_service.create_task(db, title, description, price, file, storage)
    return AddTaskResponse(
        message="✅ Task added successfully", task=TaskResponse.model_validate(task)
    )


@router.post(
    "/admin/mark-subscribed",
    response_model=MarkSubscribedResponse,
    dependencies=[Depends(require_admin("users:write"))],
)
async def mark_subscribed(
    body: MarkSubscribedRequest, db: AsyncSession = Depends(get_app_db)
):
    user = await user_service.set_subscription(db, body.email, body.subscribed)
    return MarkSubscribedResponse(
        message="✅ Subscription updated", user=UserResponse.model_validate(user)
    )


@router.get(
    "/admin/export-subscribed",
    dependencies=[Depends(require_admin("subscribers:export"))],
)
async def export_subscribed(db: AsyncSession = Depends(get_app_db)):
    """Download subscribed users as CSV. Nothing is deleted."""
    csv_data, count = await export_service.export_subscribed_csv(db)
    if count == 0:
        return JSONResponse({"message": "No subscribed users found"})
    return Response(
        content=csv_data,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="subscribed_users.csv"'},
    )


@router.post(
    "/admin/purge-subscribed",
    response_model=PurgeResponse,
    dependencies=[Depends(require_admin("subscribers:purge"))],
)
async def purge_subscribed(
    body: PurgeSubscribedRequest, db: AsyncSession = Depends(get_app_db)
):
    """Permanently delete subscribed users. Requires confirm=true."""
    deleted = await export_service.purge_subscribed(db, body.confirm, body.emails)
    return PurgeResponse(message=f"Deleted {deleted} subscribed users", deleted=deleted)


@router.get(
    "/users",
    response_model=list[UserResponse],
    dependencies=[Depends(require_admin("users:read"))],
)
async def list_users(
    subscribed: bool | None = None, db: AsyncSession = Depends(get_app_db)
):
    users = await user_service.list_users(db, subscribed)
    return [UserResponse.model_validate(u) for u in users]
