"""User management on top of the credential store: list, read, update, change password, delete."""

import logging
from typing import TYPE_CHECKING

from app.core.errors import BadRequestError, NotFoundError
from app.core.security import hash_password, verify_password
from app.models import User
from app.schemas.users import ChangePasswordRequest, UpdateUserRequest, UserResponse
from app.services.credential_store import CredentialStore

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from app.core.config import Settings

logger = logging.getLogger(__name__)

USER_NOT_FOUND_MESSAGE = "User not found"


def user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        role=user.role_name,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


class UserService:
    def __init__(self, db: "Session", settings: "Settings") -> None:
        self.settings = settings
        self.credentials = CredentialStore(db)

    def _get(self, user_id: int) -> User:
        user = self.credentials.find_user_by_id(user_id)
        if user is None:
            raise NotFoundError(USER_NOT_FOUND_MESSAGE)
        return user

    def list_users(self) -> list[UserResponse]:
        return [user_response(u) for u in self.credentials.list_users()]

    def get_user(self, user_id: int) -> UserResponse:
        return user_response(self._get(user_id))

    def update_user(self, user_id: int, body: UpdateUserRequest) -> UserResponse:
        """Raises NotFoundError for an unknown user, ConflictError for a taken email."""
        user = self._get(user_id)
        updated = self.credentials.update_user_profile(
            user, email=body.email, full_name=body.full_name
        )
        return user_response(updated)

    def change_password(self, user_id: int, body: ChangePasswordRequest) -> None:
        """Replace the password after checking the current one (BadRequestError on mismatch)."""
        user = self._get(user_id)
        if not verify_password(body.current_password, user.password_hash):
            raise BadRequestError("Current password is incorrect")
        self.credentials.update_user_password(
            user.id,
            hash_password(body.new_password, rounds=self.settings.BCRYPT_ROUNDS),
        )
        logger.info("Password changed: user_id=%s", user.id)

    def delete_user(self, user_id: int) -> None:
        """Remove the user's sessions, then the user. Unknown user -> NotFoundError."""
        if not self.credentials.delete_user(user_id):
            raise NotFoundError(USER_NOT_FOUND_MESSAGE)
