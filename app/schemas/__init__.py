"""Pydantic request/response schemas."""

from app.schemas.auth import (
    AccessTokenClaims,
    AuthResponse,
    LoginRequest,
    MessageResponse,
    RefreshTokenRequest,
    RegisterRequest,
    SessionMetadata,
    TokenPair,
    TokenSubject,
    UserSummary,
)
from app.schemas.health import HealthResponse
from app.schemas.rbac import (
    PermissionCreate,
    PermissionRead,
    RoleCreate,
    RolePermissionsResponse,
    RoleRead,
)
from app.schemas.users import ChangePasswordRequest, UpdateUserRequest, UserResponse

__all__ = [
    "AccessTokenClaims",
    "AuthResponse",
    "ChangePasswordRequest",
    "HealthResponse",
    "LoginRequest",
    "MessageResponse",
    "PermissionCreate",
    "PermissionRead",
    "RefreshTokenRequest",
    "RegisterRequest",
    "RoleCreate",
    "RolePermissionsResponse",
    "RoleRead",
    "SessionMetadata",
    "TokenPair",
    "TokenSubject",
    "UpdateUserRequest",
    "UserResponse",
    "UserSummary",
]
