"""Request/response schemas for RBAC management endpoints."""

from pydantic import BaseModel, Field

# resource:action, lowercase, e.g. quotes:approve
PERMISSION_NAME_PATTERN = r"^[a-z][a-z0-9_-]*:[a-z][a-z0-9_-]*$"
ROLE_NAME_PATTERN = r"^[A-Z][A-Z0-9_]*$"


class RoleCreate(BaseModel):
    """Body for creating a role."""

    name: str = Field(
        ...,
        min_length=1,
        max_length=64,
        pattern=ROLE_NAME_PATTERN,
        description="Role name in upper case (e.g. MANAGER).",
    )
    description: str | None = Field(default=None, max_length=1024)


class PermissionCreate(BaseModel):
    """Body for creating a permission."""

    name: str = Field(
        ...,
        min_length=3,
        max_length=128,
        pattern=PERMISSION_NAME_PATTERN,
        description="Permission name in resource:action form (e.g. quotes:approve).",
    )
    description: str | None = Field(default=None, max_length=1024)


class RoleRead(BaseModel):
    """Role with its permission names and how many users hold it."""

    id: int
    name: str
    description: str | None = None
    permissions: list[str] = Field(default_factory=list)
    user_count: int = Field(default=0, ge=0)


class PermissionRead(BaseModel):
    """Permission with how many roles grant it."""

    id: int
    name: str
    description: str | None = None
    role_count: int = Field(default=0, ge=0)


class RolePermissionsResponse(BaseModel):
    """Permission names of one role (empty for an unknown role)."""

    role_name: str
    permissions: list[str]
