from datetime import UTC, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from app.config import ADMIN_SCOPES


def ensure_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes (SQLite) as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


# ===== Requests =====


class UserContactRequest(BaseModel):
    """Body of /add-user and /login. Presence is checked by the service layer."""

    name: str | None = Field(None, description="Display name")
    email: str | None = Field(None, description="Email address")
    phone: str | None = Field(None, description="Phone number")


class TakeTaskRequest(BaseModel):
    email: str | None = Field(None, description="Email of the user taking the task")
    task_id: UUID | None = Field(None, description="Task to take")


class MarkSubscribedRequest(BaseModel):
    email: str | None = Field(None, description="Email of the user to update")
    subscribed: bool = Field(..., description="New subscription flag")


class PurgeSubscribedRequest(BaseModel):
    confirm: bool = Field(
        False, description="Must be true to delete subscribed users"
    )
    emails: list[str] | None = Field(
        None,
        description="Restrict the purge to these subscribed users, e.g. the ones just exported",
    )


class AdminTokenRequest(BaseModel):
    scopes: list[str] | None = Field(
        None, description="Requested scopes; defaults to every admin scope"
    )

    @field_validator("scopes")
    @classmethod
    def check_scopes(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return v
        unknown = sorted(set(v) - set(ADMIN_SCOPES))
        if unknown:
            raise ValueError(f"Unknown scopes: {unknown}")
        return v


# ===== Responses =====


class MessageResponse(BaseModel):
    message: str = Field(..., description="Response message")


class UserResponse(BaseModel):
    id: UUID
    name: str
    email: str
    phone: str
    subscribed: bool
    balance: float
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("created_at")
    @classmethod
    def normalize_timezone(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v)


class TaskResponse(BaseModel):
    id: UUID
    title: str
    description: str
    price: float
    file_path: str | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("created_at")
    @classmethod
    def normalize_timezone(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v)

    @computed_field
    @property
    def file_url(self) -> str | None:
        if not self.file_path:
            return None
        return f"/files/tasks/{self.file_path}"


class AssignmentResponse(BaseModel):
    id: UUID
    user_id: UUID
    task_id: UUID
    status: str
    deadline: datetime
    file_path: str | None = None
    submitted_at: datetime | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("deadline", "submitted_at", "created_at")
    @classmethod
    def normalize_timezone(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v)

    @computed_field
    @property
    def is_overdue(self) -> bool:
        return self.status == "pending" and self.deadline < datetime.now(UTC)


class AssignmentWithTaskResponse(AssignmentResponse):
    task: TaskResponse | None = None


class SubmittedAssignmentResponse(AssignmentResponse):
    task_price: float


class AddUserResponse(BaseModel):
    message: str
    user: UserResponse


class TakeTaskResponse(BaseModel):
    message: str
    assignment: AssignmentResponse


class SubmitTaskResponse(BaseModel):
    message: str
    assignment: SubmittedAssignmentResponse


class AddTaskResponse(BaseModel):
    success: bool = True
    message: str
    task: TaskResponse


class MarkSubscribedResponse(BaseModel):
    message: str
    user: UserResponse


class VerifyResponse(BaseModel):
    message: str
    user: UserResponse
    access_token: str = Field(..., description="JWT access token for the user")
    token_type: str = Field(default="bearer", description="Token type")


class AdminTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    scopes: list[str]
    expires_in: int = Field(..., description="Lifetime in seconds")


class PurgeResponse(BaseModel):
    message: str
    deleted: int
