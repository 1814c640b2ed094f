"""SQLAlchemy ORM models."""

from app.models.base import Base
from app.models.rbac import Permission, Role, RolePermission
from app.models.session import AuthSession
from app.models.user import User

__all__ = ["AuthSession", "Base", "Permission", "Role", "RolePermission", "User"]
