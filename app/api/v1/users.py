"""User management endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.v1.auth import get_current_claims, require_permissions
from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.schemas.auth import AccessTokenClaims, MessageResponse
from app.schemas.users import ChangePasswordRequest, UpdateUserRequest, UserResponse
from app.services.users import UserService

router = APIRouter()


def get_user_service(
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> UserService:
    return UserService(db, settings)


@router.get("", response_model=list[UserResponse])
def list_users(
    _claims: Annotated[AccessTokenClaims, Depends(require_permissions(["users:read"]))],
    service: Annotated[UserService, Depends(get_user_service)],
) -> list[UserResponse]:
    return service.list_users()


@router.get("/me", response_model=UserResponse)
def get_me(
    claims: Annotated[AccessTokenClaims, Depends(get_current_claims)],
    service: Annotated[UserService, Depends(get_user_service)],
) -> UserResponse:
    """The caller's own record; any authenticated user."""
    return service.get_user(claims.subject_id)


@router.post("/me/password", response_model=MessageResponse)
def change_password(
    body: ChangePasswordRequest,
    claims: Annotated[AccessTokenClaims, Depends(get_current_claims)],
    service: Annotated[UserService, Depends(get_user_service)],
) -> MessageResponse:
    """Change the caller's password. 400 if the current password is wrong."""
    service.change_password(claims.subject_id, body)
    return MessageResponse(message="Password changed successfully")


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int,
    _claims: Annotated[AccessTokenClaims, Depends(require_permissions(["users:read"]))],
    service: Annotated[UserService, Depends(get_user_service)],
) -> UserResponse:
    return service.get_user(user_id)


@router.patch("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    body: UpdateUserRequest,
    _claims: Annotated[AccessTokenClaims, Depends(require_permissions(["users:update"]))],
    service: Annotated[UserService, Depends(get_user_service)],
) -> UserResponse:
    """Update email and/or full name. 404 unknown user, 409 email taken."""
    return service.update_user(user_id, body)


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: int,
    _claims: Annotated[AccessTokenClaims, Depends(require_permissions(["users:delete"]))],
    service: Annotated[UserService, Depends(get_user_service)],
) -> MessageResponse:
    """Delete a user and all of its sessions."""
    service.delete_user(user_id)
    return MessageResponse(message="User deleted successfully")
