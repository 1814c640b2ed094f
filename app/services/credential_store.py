"""Credential store: user identity, password hash, and role assignment persisted through the ORM.

Lookups are by exact key and return None for absence; callers decide whether absence is an error.
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from app.core.errors import ConflictError
from app.models import AuthSession, Role, User

logger = logging.getLogger(__name__)

DUPLICATE_EMAIL_MESSAGE = "User with this email already exists"


def normalize_email(email: str) -> str:
    """Emails are unique case-insensitively; store and look up the lowercased form."""
    return email.strip().lower()


def build_full_name(
    full_name: str | None,
    fname: str | None = None,
    lname: str | None = None,
) -> str | None:
    """full_name if given, else "fname lname", else whichever part exists."""
    if full_name and full_name.strip():
        return full_name.strip()
    parts = [p.strip() for p in (fname, lname) if p and p.strip()]
    return " ".join(parts) if parts else None


class CredentialStore:
    """Repository for User rows. All queries go through the SQLAlchemy session passed in."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def find_user_by_email(self, email: str) -> User | None:
        return (
            self.db.query(User)
            .options(joinedload(User.role))
            .filter(User.email == normalize_email(email))
            .first()
        )

    def find_user_by_id(self, user_id: int) -> User | None:
        """Return the user with its role loaded, or None."""
        return (
            self.db.query(User)
            .options(joinedload(User.role))
            .filter(User.id == user_id)
            .first()
        )

    def list_users(self) -> list[User]:
        """All users, newest first."""
        return (
            self.db.query(User)
            .options(joinedload(User.role))
            .order_by(User.created_at.desc(), User.id.desc())
            .all()
        )

    def _find_role(self, name: str) -> Role | None:
        return self.db.query(Role).filter(Role.name == name).first()

    def get_or_create_role(self, name: str, description: str | None = None) -> Role:
        """
        Return the role called name, inserting it if missing. When a concurrent caller
        inserts it first, the unique index rejects our insert and we use theirs.
        """
        role = self._find_role(name)
        if role is not None:
            return role
        role = Role(name=name, description=description)
        self.db.add(role)
        try:
            self.db.flush()
        except IntegrityError:
            self.db.rollback()
            role = self._find_role(name)
            if role is None:
                raise
            return role
        logger.info("Created missing role %s", name)
        return role

    def create_user(
        self,
        email: str,
        password_hash: str,
        role: Role,
        full_name: str | None = None,
    ) -> User:
        """
        Insert a user. Raises ConflictError when the email is taken
        (including a concurrent registration that wins the unique index).
        """
        user = User(
            email=normalize_email(email),
            password_hash=password_hash,
            full_name=full_name,
            role=role,
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError(DUPLICATE_EMAIL_MESSAGE) from e
        self.db.refresh(user)
        return user

    def update_user_password(self, user_id: int, password_hash: str) -> bool:
        """Replace the stored hash. Returns False when the user does not exist."""
        updated = (
            self.db.query(User)
            .filter(User.id == user_id)
            .update({User.password_hash: password_hash}, synchronize_session=False)
        )
        self.db.commit()
        return updated > 0

    def update_user_profile(
        self,
        user: User,
        email: str | None = None,
        full_name: str | None = None,
    ) -> User:
        """Apply profile changes. Raises ConflictError when the new email belongs to someone else."""
        if email is not None:
            new_email = normalize_email(email)
            if new_email != user.email:
                if self.find_user_by_email(new_email) is not None:
                    raise ConflictError("Email already exists")
                user.email = new_email
        if full_name is not None:
            user.full_name = full_name
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("Email already exists") from e
        self.db.refresh(user)
        return user

    def delete_user(self, user_id: int) -> bool:
        """
        Delete a user and its sessions in one transaction, sessions first,
        so no session row ever references a missing user.
        """
        try:
            sessions_deleted = (
                self.db.query(AuthSession)
                .filter(AuthSession.user_id == user_id)
                .delete(synchronize_session=False)
            )
            users_deleted = (
                self.db.query(User)
                .filter(User.id == user_id)
                .delete(synchronize_session=False)
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        if users_deleted:
            logger.info(
                "Deleted user_id=%s (sessions_deleted=%s)", user_id, sessions_deleted
            )
        return users_deleted > 0
