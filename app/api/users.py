"""
User directory routes: registration and profile lookup.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import get_app_db
from app.schemas import AddUserResponse, UserContactRequest, UserResponse
from app.services import user_service

router = APIRouter(tags=["Users"])


@router.post("/add-user", response_model=AddUserResponse)
async def add_user(body: UserContactRequest, db: AsyncSession = Depends(get_app_db)):
    user = await user_service.register_user(db, body.name, body.email, body.phone)
    return AddUserResponse(
        message="✅ User added successfully", user=UserResponse.model_validate(user)
    )


@router.get("/user/{email}", response_model=UserResponse)
async def get_user(email: str, db: AsyncSession = Depends(get_app_db)):
    user = await user_service.get_user(db, email)
    return UserResponse.model_validate(user)
