"""ORM model for refresh-token sessions."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship

from app.models.base import Base


class AuthSession(Base):
    """
    One issued refresh token. Rotation rewrites refresh_token and expires_at on the same row.

    refresh_token is unique: at any moment a token value maps to at most one session.
    """

    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    refresh_token = Column(String(256), nullable=False, unique=True, index=True)
    user_agent = Column(String(512), nullable=True)
    ip = Column(String(64), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    user = relationship("User", back_populates="sessions")
