"""Seed the permission catalog and the default roles. Idempotent: safe to run on every deploy."""

import logging

from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.models import Permission, Role, RolePermission

logger = logging.getLogger(__name__)

# name -> description. Resource names mirror the business modules that call into this service.
PERMISSION_CATALOG: dict[str, str] = {
    "users:create": "Create new users",
    "users:read": "View user information",
    "users:update": "Update user information",
    "users:delete": "Delete users",
    "roles:create": "Create new roles",
    "roles:read": "View roles",
    "roles:update": "Update roles",
    "roles:delete": "Delete roles",
    "materials:create": "Create new materials",
    "materials:read": "View materials",
    "materials:update": "Update materials",
    "materials:delete": "Delete materials",
    "categories:create": "Create new categories",
    "categories:read": "View categories",
    "categories:update": "Update categories",
    "categories:delete": "Delete categories",
    "products:create": "Create new products",
    "products:read": "View products",
    "products:update": "Update products",
    "products:delete": "Delete products",
    "quotes:create": "Create new quotes",
    "quotes:read": "View quotes",
    "quotes:update": "Update quotes",
    "quotes:delete": "Delete quotes",
    "quotes:approve": "Approve/reject quotes",
    "system:audit": "View audit logs",
    "system:manage": "System administration",
    "system:backup": "Database backup operations",
    "analytics:read": "View analytics and reports",
    "settings:update": "Update system settings",
}


class RoleSpec(BaseModel):
    name: str
    description: str
    permissions: tuple[str, ...]


DEFAULT_ROLES: tuple[RoleSpec, ...] = (
    RoleSpec(
        name="ADMIN",
        description="Full system access - Administrator",
        permissions=tuple(PERMISSION_CATALOG),
    ),
    RoleSpec(
        name="MANAGER",
        description="Management access - Can manage products, quotes, and view analytics",
        permissions=(
            "users:read",
            "materials:create",
            "materials:read",
            "materials:update",
            "categories:create",
            "categories:read",
            "categories:update",
            "products:create",
            "products:read",
            "products:update",
            "quotes:create",
            "quotes:read",
            "quotes:update",
            "quotes:approve",
            "analytics:read",
        ),
    ),
    RoleSpec(
        name="DESIGNER",
        description="Product design and material management",
        permissions=(
            "materials:create",
            "materials:read",
            "materials:update",
            "categories:read",
            "products:create",
            "products:read",
            "products:update",
            "quotes:create",
            "quotes:read",
            "quotes:update",
        ),
    ),
    RoleSpec(
        name="SALES",
        description="Sales team - Quote and customer management",
        permissions=(
            "materials:read",
            "categories:read",
            "products:read",
            "quotes:create",
            "quotes:read",
            "quotes:update",
        ),
    ),
    RoleSpec(
        name="VIEWER",
        description="Read-only access",
        permissions=(
            "materials:read",
            "categories:read",
            "products:read",
            "quotes:read",
        ),
    ),
)


class SeedResult(BaseModel):
    permissions_created: int = 0
    roles_created: int = 0
    grants_created: int = 0


def seed_rbac(
    db: Session,
    catalog: dict[str, str] | None = None,
    roles: tuple[RoleSpec, ...] = DEFAULT_ROLES,
) -> SeedResult:
    """
    Upsert permissions and roles, then grant each role its permission set.

    Existing rows are kept; role descriptions are refreshed. Grants naming a permission
    outside the catalog are skipped with a warning. Commits once at the end.
    """
    catalog = PERMISSION_CATALOG if catalog is None else catalog
    result = SeedResult()

    permissions_by_name = {p.name: p for p in db.query(Permission).all()}
    for name, description in catalog.items():
        if name not in permissions_by_name:
            permission = Permission(name=name, description=description)
            db.add(permission)
            permissions_by_name[name] = permission
            result.permissions_created += 1
    db.flush()

    for role_spec in roles:
        role = db.query(Role).filter(Role.name == role_spec.name).first()
        if role is None:
            role = Role(name=role_spec.name, description=role_spec.description)
            db.add(role)
            db.flush()
            result.roles_created += 1
        else:
            role.description = role_spec.description

        granted = {
            permission_id
            for (permission_id,) in db.query(RolePermission.permission_id)
            .filter(RolePermission.role_id == role.id)
            .all()
        }
        for permission_name in role_spec.permissions:
            permission = permissions_by_name.get(permission_name)
            if permission is None:
                logger.warning(
                    "Skipping unknown permission %s for role %s", permission_name, role_spec.name
                )
                continue
            if permission.id in granted:
                continue
            db.add(RolePermission(role_id=role.id, permission_id=permission.id))
            granted.add(permission.id)
            result.grants_created += 1

    db.commit()
    logger.info(
        "RBAC seed: permissions_created=%s roles_created=%s grants_created=%s",
        result.permissions_created,
        result.roles_created,
        result.grants_created,
    )
    return result
