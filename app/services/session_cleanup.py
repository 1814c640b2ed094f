"""Expired session sweep: delete sessions whose refresh token has passed its expiry."""

import logging
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from app.core.security import get_token_signer
from app.services.session_manager import SessionManager

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)


def run_session_cleanup(session: Session, settings: "Settings") -> int:
    """
    Delete expired sessions. Returns the number of rows deleted.

    Idempotent: safe to run repeatedly, and concurrently with login/refresh traffic.
    """
    if not settings.SESSION_CLEANUP_ENABLED:
        logger.info("Session cleanup is disabled (SESSION_CLEANUP_ENABLED=false); skipping.")
        return 0

    manager = SessionManager(session, get_token_signer(), settings)
    return manager.clean_expired_sessions()
