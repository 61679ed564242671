# Magic-link authentication routes

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import get_app_db
from app.dependencies import get_notifier
from app.schemas import MessageResponse, UserContactRequest, UserResponse, VerifyResponse
from app.services import auth_service
from app.services.notification_service import NotificationDispatcher

router = APIRouter(tags=["Authentication"])


@router.post("/login", response_model=MessageResponse)
async def login(
    body: UserContactRequest,
    db: AsyncSession = Depends(get_app_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    """Create the user if needed and email a magic login link."""
    await auth_service.request_login(db, body.name, body.email, body.phone, notifier)
    return MessageResponse(message="✅ Verification email sent")


@router.get("/verify/{token}", response_model=VerifyResponse)
async def verify(token: str, db: AsyncSession = Depends(get_app_db)):
    """Exchange a magic-link token for the user profile and an access token."""
    user, access_token = await auth_service.verify_login(db, token)
    return VerifyResponse(
        message="✅ Login successful",
        user=UserResponse.model_validate(user),
        access_token=access_token,
    )
