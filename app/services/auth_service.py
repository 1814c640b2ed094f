"""Auth service: registration, login, refresh, logout, and profile for the HTTP layer."""

import logging
from typing import TYPE_CHECKING

from app.core.errors import (
    ConflictError,
    InvalidCredentialsError,
    UnauthenticatedError,
)
from app.core.security import TokenSigner, hash_password, verify_password_or_dummy
from app.models import User
from app.schemas.auth import (
    AuthResponse,
    LoginRequest,
    RegisterRequest,
    SessionMetadata,
    TokenPair,
    UserSummary,
)
from app.services.credential_store import (
    DUPLICATE_EMAIL_MESSAGE,
    CredentialStore,
    build_full_name,
)
from app.services.session_manager import SessionManager

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from app.core.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_ROLE_DESCRIPTION = "Default viewer role"


def user_summary(user: User) -> UserSummary:
    return UserSummary(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        role=user.role_name,
        created_at=user.created_at,
    )


class AuthService:
    """Composes the credential store and session manager behind the auth endpoints."""

    def __init__(self, db: "Session", signer: TokenSigner, settings: "Settings") -> None:
        self.settings = settings
        self.credentials = CredentialStore(db)
        self.sessions = SessionManager(db, signer, settings)

    def register(
        self,
        body: RegisterRequest,
        metadata: SessionMetadata | None = None,
    ) -> AuthResponse:
        """Create a user with the default role and open a session. Duplicate email -> ConflictError."""
        if self.credentials.find_user_by_email(body.email) is not None:
            raise ConflictError(DUPLICATE_EMAIL_MESSAGE)

        role = self.credentials.get_or_create_role(
            self.settings.DEFAULT_ROLE, DEFAULT_ROLE_DESCRIPTION
        )
        user = self.credentials.create_user(
            email=body.email,
            password_hash=hash_password(body.password, rounds=self.settings.BCRYPT_ROUNDS),
            role=role,
            full_name=build_full_name(body.full_name, body.fname, body.lname),
        )
        logger.info("User registered: user_id=%s role=%s", user.id, role.name)

        tokens = self.sessions.create_session(user.id, metadata)
        return AuthResponse(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            user=user_summary(user),
        )

    def login(
        self,
        body: LoginRequest,
        metadata: SessionMetadata | None = None,
    ) -> AuthResponse:
        """
        Check email + password and open a session.

        Unknown email and wrong password raise the same InvalidCredentialsError, and both
        run one bcrypt verification so response time does not reveal which one failed.
        """
        user = self.credentials.find_user_by_email(body.email)
        password_hash = user.password_hash if user is not None else None
        if not verify_password_or_dummy(body.password, password_hash):
            logger.warning("Login failed")
            raise InvalidCredentialsError()

        tokens = self.sessions.create_session(user.id, metadata)
        return AuthResponse(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            user=user_summary(user),
        )

    def refresh(
        self,
        refresh_token: str,
        metadata: SessionMetadata | None = None,
    ) -> TokenPair:
        """Rotate a refresh token. Any failure is reported as InvalidCredentialsError."""
        try:
            return self.sessions.refresh_tokens(refresh_token, metadata)
        except UnauthenticatedError as e:
            raise InvalidCredentialsError() from e

    def logout(self, refresh_token: str) -> None:
        self.sessions.revoke_session(refresh_token)

    def logout_all(self, user_id: int) -> None:
        self.sessions.revoke_all_user_sessions(user_id)

    def profile(self, user_id: int) -> UserSummary:
        """Public profile of the token subject. A deleted user -> UnauthenticatedError."""
        user = self.credentials.find_user_by_id(user_id)
        if user is None:
            raise UnauthenticatedError("User not found")
        return user_summary(user)
