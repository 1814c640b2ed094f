"""Request/response schemas for user management endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserResponse(BaseModel):
    """User as returned by the management endpoints (no password hash)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    full_name: str | None = None
    role: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class UpdateUserRequest(BaseModel):
    """Profile fields an administrator may change. Omitted fields stay as they are."""

    email: EmailStr | None = Field(default=None, max_length=255)
    full_name: str | None = Field(default=None, max_length=255)


class ChangePasswordRequest(BaseModel):
    """Current password must match before the new one is stored."""

    current_password: str = Field(..., min_length=1, max_length=128)
    new_password: str = Field(..., min_length=8, max_length=128)
