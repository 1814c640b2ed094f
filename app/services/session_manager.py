"""Session manager: refresh-token issuance, rotation, revocation, and expiry sweep.

Refresh tokens are opaque and checked against the sessions table, so they can be revoked.
Access tokens are self-contained JWTs and are never looked up; revoking a session stops
future refreshes but an access token already issued stays valid until its own expiry.

Rotation is a single conditional UPDATE keyed on (session id, current refresh token).
When two requests present the same token concurrently, only one UPDATE matches; the
other sees zero affected rows and fails as if the token were unknown.
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session, joinedload

from app.core.errors import INVALID_REFRESH_TOKEN_MESSAGE, UnauthenticatedError
from app.core.security import TokenSigner, generate_refresh_token
from app.models import AuthSession, User
from app.schemas.auth import SessionMetadata, TokenPair, TokenSubject

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

# Defaults; Settings can override both.
ACCESS_TOKEN_TTL = timedelta(minutes=15)
REFRESH_TOKEN_TTL = timedelta(days=30)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; every stored timestamp is UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class SessionManager:
    """
    Owns the sessions table and bridges to the TokenSigner for access tokens.

    Example:
        manager = SessionManager(db, get_token_signer(), get_settings())
        pair = manager.create_session(user.id, SessionMetadata(ip="10.0.0.1"))
        pair = manager.refresh_tokens(pair.refresh_token, SessionMetadata())
    """

    def __init__(
        self,
        db: Session,
        signer: TokenSigner,
        settings: "Settings | None" = None,
    ) -> None:
        self.db = db
        self.signer = signer
        if settings is not None:
            self.access_token_ttl = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
            self.refresh_token_ttl = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
        else:
            self.access_token_ttl = ACCESS_TOKEN_TTL
            self.refresh_token_ttl = REFRESH_TOKEN_TTL

    def _sign_access_token(self, user: User) -> str:
        subject = TokenSubject(
            subject_id=user.id,
            email=user.email,
            role=user.role_name or "",
        )
        return self.signer.sign(subject, self.access_token_ttl)

    def create_session(
        self,
        user_id: int,
        metadata: SessionMetadata | None = None,
    ) -> TokenPair:
        """
        Persist a new session for user_id and return a fresh token pair.

        Raises UnauthenticatedError if the user does not exist. Database errors propagate.
        """
        user = (
            self.db.query(User)
            .options(joinedload(User.role))
            .filter(User.id == user_id)
            .first()
        )
        if user is None:
            raise UnauthenticatedError("User not found")

        meta = metadata or SessionMetadata()
        refresh_token = generate_refresh_token()
        now = _utcnow()
        session_row = AuthSession(
            user_id=user.id,
            refresh_token=refresh_token,
            user_agent=meta.user_agent,
            ip=meta.ip,
            expires_at=now + self.refresh_token_ttl,
            created_at=now,
        )
        self.db.add(session_row)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info("Session created: user_id=%s session_id=%s", user.id, session_row.id)

        return TokenPair(
            access_token=self._sign_access_token(user),
            refresh_token=refresh_token,
        )

    def refresh_tokens(
        self,
        refresh_token: str,
        metadata: SessionMetadata | None = None,
    ) -> TokenPair:
        """
        Exchange a refresh token for a new pair, rotating the session row in place.

        Raises UnauthenticatedError when the token is unknown, expired (the row is deleted),
        or was rotated by a concurrent request first. All three use the same message.
        """
        if not refresh_token:
            raise UnauthenticatedError(INVALID_REFRESH_TOKEN_MESSAGE)

        session_row = (
            self.db.query(AuthSession)
            .options(joinedload(AuthSession.user).joinedload(User.role))
            .filter(AuthSession.refresh_token == refresh_token)
            .first()
        )
        if session_row is None:
            raise UnauthenticatedError(INVALID_REFRESH_TOKEN_MESSAGE)

        now = _utcnow()
        session_id = session_row.id
        if _as_utc(session_row.expires_at) < now:
            try:
                self.db.query(AuthSession).filter(
                    AuthSession.id == session_id,
                    AuthSession.refresh_token == refresh_token,
                ).delete(synchronize_session=False)
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise
            logger.info("Expired session removed on refresh: session_id=%s", session_id)
            raise UnauthenticatedError(INVALID_REFRESH_TOKEN_MESSAGE)

        user = session_row.user
        meta = metadata or SessionMetadata()
        new_refresh_token = generate_refresh_token()
        try:
            rotated = (
                self.db.query(AuthSession)
                .filter(
                    AuthSession.id == session_id,
                    AuthSession.refresh_token == refresh_token,
                )
                .update(
                    {
                        AuthSession.refresh_token: new_refresh_token,
                        AuthSession.expires_at: now + self.refresh_token_ttl,
                        AuthSession.user_agent: meta.user_agent,
                        AuthSession.ip: meta.ip,
                    },
                    synchronize_session=False,
                )
            )
            if rotated != 1:
                self.db.rollback()
                logger.warning("Refresh lost rotation race: session_id=%s", session_id)
                raise UnauthenticatedError(INVALID_REFRESH_TOKEN_MESSAGE)
            self.db.commit()
        except UnauthenticatedError:
            raise
        except Exception:
            self.db.rollback()
            raise

        logger.info("Session rotated: user_id=%s session_id=%s", user.id, session_id)
        return TokenPair(
            access_token=self._sign_access_token(user),
            refresh_token=new_refresh_token,
        )

    def revoke_session(self, refresh_token: str) -> int:
        """Delete the session holding refresh_token. Idempotent; returns rows deleted."""
        deleted = (
            self.db.query(AuthSession)
            .filter(AuthSession.refresh_token == refresh_token)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        if deleted:
            logger.info("Session revoked")
        return deleted

    def revoke_all_user_sessions(self, user_id: int) -> int:
        """Delete every session of user_id (logout everywhere). Idempotent; returns rows deleted."""
        deleted = (
            self.db.query(AuthSession)
            .filter(AuthSession.user_id == user_id)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        logger.info("All sessions revoked: user_id=%s count=%s", user_id, deleted)
        return deleted

    def clean_expired_sessions(self) -> int:
        """Delete all sessions past expiry. Idempotent and safe to run alongside requests."""
        cutoff = _utcnow()
        deleted = (
            self.db.query(AuthSession)
            .filter(AuthSession.expires_at < cutoff)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        if deleted > 0:
            logger.info(
                "Expired sessions swept: cutoff=%s, sessions_deleted=%s",
                cutoff.isoformat(),
                deleted,
            )
        return deleted
