"""RBAC management endpoints: roles, permissions, grants, and role assignment."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.v1.auth import require_permissions
from app.core.database import get_db
from app.schemas.auth import AccessTokenClaims, MessageResponse
from app.schemas.rbac import (
    PermissionCreate,
    PermissionRead,
    RoleCreate,
    RolePermissionsResponse,
    RoleRead,
)
from app.services.permissions import PermissionResolver

router = APIRouter()


def get_resolver(db: Annotated[Session, Depends(get_db)]) -> PermissionResolver:
    return PermissionResolver(db)


@router.get("/roles", response_model=list[RoleRead])
def list_roles(
    _claims: Annotated[AccessTokenClaims, Depends(require_permissions(["roles:read"]))],
    resolver: Annotated[PermissionResolver, Depends(get_resolver)],
) -> list[RoleRead]:
    """All roles with their permissions and user counts."""
    return resolver.list_roles()


@router.get("/permissions", response_model=list[PermissionRead])
def list_permissions(
    _claims: Annotated[AccessTokenClaims, Depends(require_permissions(["roles:read"]))],
    resolver: Annotated[PermissionResolver, Depends(get_resolver)],
) -> list[PermissionRead]:
    return resolver.list_permissions()


@router.post("/roles", response_model=RoleRead, status_code=status.HTTP_201_CREATED)
def create_role(
    body: RoleCreate,
    _claims: Annotated[AccessTokenClaims, Depends(require_permissions(["roles:create"]))],
    resolver: Annotated[PermissionResolver, Depends(get_resolver)],
) -> RoleRead:
    """Create an empty role. 409 if the name is taken."""
    role = resolver.create_role(body.name, body.description)
    return RoleRead(id=role.id, name=role.name, description=role.description)


@router.post(
    "/permissions",
    response_model=PermissionRead,
    status_code=status.HTTP_201_CREATED,
)
def create_permission(
    body: PermissionCreate,
    _claims: Annotated[AccessTokenClaims, Depends(require_permissions(["roles:create"]))],
    resolver: Annotated[PermissionResolver, Depends(get_resolver)],
) -> PermissionRead:
    """Create a permission. 409 if the name is taken."""
    permission = resolver.create_permission(body.name, body.description)
    return PermissionRead(
        id=permission.id,
        name=permission.name,
        description=permission.description,
    )


@router.post("/users/{user_id}/role/{role_id}", response_model=MessageResponse)
def assign_role(
    user_id: int,
    role_id: int,
    _claims: Annotated[AccessTokenClaims, Depends(require_permissions(["roles:update"]))],
    resolver: Annotated[PermissionResolver, Depends(get_resolver)],
) -> MessageResponse:
    """
    Assign a role to a user. 404 if the user or role does not exist.
    Tokens the user already holds keep their old role claim until they expire.
    """
    resolver.assign_role_to_user(user_id, role_id)
    return MessageResponse(message="Role assigned successfully")


@router.get("/roles/{role_name}/permissions", response_model=RolePermissionsResponse)
def get_role_permissions(
    role_name: str,
    _claims: Annotated[AccessTokenClaims, Depends(require_permissions(["roles:read"]))],
    resolver: Annotated[PermissionResolver, Depends(get_resolver)],
) -> RolePermissionsResponse:
    """Permission names of a role; an unknown role yields an empty list."""
    return RolePermissionsResponse(
        role_name=role_name,
        permissions=sorted(resolver.get_role_permissions(role_name)),
    )


@router.post(
    "/roles/{role_name}/permissions/{permission_name}",
    response_model=MessageResponse,
)
def grant_permission(
    role_name: str,
    permission_name: str,
    _claims: Annotated[AccessTokenClaims, Depends(require_permissions(["roles:update"]))],
    resolver: Annotated[PermissionResolver, Depends(get_resolver)],
) -> MessageResponse:
    """Grant a permission to a role. Granting twice is a no-op."""
    created = resolver.grant_permission_to_role(role_name, permission_name)
    return MessageResponse(
        message="Permission granted" if created else "Permission already granted"
    )
