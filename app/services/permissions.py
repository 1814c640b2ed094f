"""Permission resolver: role -> permission set lookups and RBAC administration."""

import logging
from collections.abc import Iterable

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from app.core.errors import ConflictError, NotFoundError
from app.models import Permission, Role, RolePermission, User
from app.schemas.rbac import PermissionRead, RoleRead

logger = logging.getLogger(__name__)


class PermissionResolver:
    """
    Answers "does this user's role grant permission X (or any/all of a set)?".

    get_user_permissions runs one joined query (user -> role_permissions -> permissions),
    so it is cheap enough to call on every authorized request.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    # --- queries -------------------------------------------------------------

    def get_user_permissions(self, user_id: int) -> frozenset[str]:
        """Permission names granted by the user's role. Unknown user or no role -> empty set."""
        rows = (
            self.db.query(Permission.name)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .join(User, User.role_id == RolePermission.role_id)
            .filter(User.id == user_id)
            .all()
        )
        return frozenset(name for (name,) in rows)

    def has_permission(self, user_id: int, permission: str) -> bool:
        return permission in self.get_user_permissions(user_id)

    def has_any_permission(self, user_id: int, permissions: Iterable[str]) -> bool:
        """True iff the user holds at least one of permissions. Nothing requested -> True."""
        requested = set(permissions)
        if not requested:
            return True
        return not requested.isdisjoint(self.get_user_permissions(user_id))

    def has_all_permissions(self, user_id: int, permissions: Iterable[str]) -> bool:
        """True iff the user holds every one of permissions. Nothing requested -> True."""
        requested = set(permissions)
        if not requested:
            return True
        return requested.issubset(self.get_user_permissions(user_id))

    def get_token_permissions(self, user_id: int, role_name: str) -> frozenset[str]:
        """
        Permission names of the role snapshotted in an access token, provided the user still exists.

        The role comes from the token, so a reassignment applies to tokens issued afterwards;
        the role's grants are read live, so a permission removed from a role applies at once.
        """
        user_exists = self.db.query(User.id).filter(User.id == user_id).exists()
        rows = (
            self.db.query(Permission.name)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .join(Role, Role.id == RolePermission.role_id)
            .filter(Role.name == role_name, user_exists)
            .all()
        )
        return frozenset(name for (name,) in rows)

    def get_role_permissions(self, role_name: str) -> frozenset[str]:
        """Permission names of role_name; unknown role -> empty set."""
        rows = (
            self.db.query(Permission.name)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .join(Role, Role.id == RolePermission.role_id)
            .filter(Role.name == role_name)
            .all()
        )
        return frozenset(name for (name,) in rows)

    def list_roles(self) -> list[RoleRead]:
        """All roles with their permission names and the number of users holding each."""
        roles = (
            self.db.query(Role)
            .options(selectinload(Role.role_permissions).selectinload(RolePermission.permission))
            .order_by(Role.id)
            .all()
        )
        user_counts = dict(
            self.db.query(User.role_id, func.count(User.id))
            .filter(User.role_id.is_not(None))
            .group_by(User.role_id)
            .all()
        )
        return [
            RoleRead(
                id=role.id,
                name=role.name,
                description=role.description,
                permissions=sorted(rp.permission.name for rp in role.role_permissions),
                user_count=user_counts.get(role.id, 0),
            )
            for role in roles
        ]

    def list_permissions(self) -> list[PermissionRead]:
        """All permissions with the number of roles granting each."""
        role_counts = dict(
            self.db.query(RolePermission.permission_id, func.count(RolePermission.role_id))
            .group_by(RolePermission.permission_id)
            .all()
        )
        return [
            PermissionRead(
                id=p.id,
                name=p.name,
                description=p.description,
                role_count=role_counts.get(p.id, 0),
            )
            for p in self.db.query(Permission).order_by(Permission.name).all()
        ]

    # --- administration ------------------------------------------------------

    def create_role(self, name: str, description: str | None = None) -> Role:
        """Create a role. Raises ConflictError when the name is taken."""
        if self.db.query(Role.id).filter(Role.name == name).first() is not None:
            raise ConflictError(f"Role {name} already exists")
        role = Role(name=name, description=description)
        self.db.add(role)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError(f"Role {name} already exists") from e
        self.db.refresh(role)
        logger.info("Role created: %s", name)
        return role

    def create_permission(self, name: str, description: str | None = None) -> Permission:
        """Create a permission. Raises ConflictError when the name is taken."""
        if self.db.query(Permission.id).filter(Permission.name == name).first() is not None:
            raise ConflictError(f"Permission {name} already exists")
        permission = Permission(name=name, description=description)
        self.db.add(permission)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError(f"Permission {name} already exists") from e
        self.db.refresh(permission)
        logger.info("Permission created: %s", name)
        return permission

    def grant_permission_to_role(self, role_name: str, permission_name: str) -> bool:
        """
        Add permission_name to role_name. Returns False if the role already had it.
        Raises NotFoundError when either side does not exist.
        """
        role = self.db.query(Role).filter(Role.name == role_name).first()
        if role is None:
            raise NotFoundError(f"Role {role_name} not found")
        permission = self.db.query(Permission).filter(Permission.name == permission_name).first()
        if permission is None:
            raise NotFoundError(f"Permission {permission_name} not found")
        if self.db.get(RolePermission, (role.id, permission.id)) is not None:
            return False
        self.db.add(RolePermission(role_id=role.id, permission_id=permission.id))
        try:
            self.db.commit()
        except IntegrityError:
            # Granted concurrently; the composite key already holds the pair.
            self.db.rollback()
            return False
        logger.info("Permission %s granted to role %s", permission_name, role_name)
        return True

    def assign_role_to_user(self, user_id: int, role_id: int) -> None:
        """
        Point user_id at role_id. Takes effect for tokens issued afterwards; tokens already
        issued keep the role claim they were signed with until they expire.

        Raises NotFoundError when the role or the user does not exist.
        """
        role = self.db.get(Role, role_id)
        if role is None:
            raise NotFoundError(f"Role with ID {role_id} not found")
        updated = (
            self.db.query(User)
            .filter(User.id == user_id)
            .update({User.role_id: role.id}, synchronize_session=False)
        )
        if updated == 0:
            self.db.rollback()
            raise NotFoundError(f"User with ID {user_id} not found")
        self.db.commit()
        logger.info("Role %s assigned to user_id=%s", role.name, user_id)
