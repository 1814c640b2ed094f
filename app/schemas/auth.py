"""Request/response schemas for auth endpoints, plus the access-token claim shapes."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class TokenSubject(BaseModel):
    """Identity and role embedded in an access token at issuance."""

    subject_id: int
    email: str
    role: str


class AccessTokenClaims(TokenSubject):
    """Verified access-token claims. Role is a snapshot taken when the token was signed."""

    model_config = ConfigDict(frozen=True)

    issued_at: datetime
    expires_at: datetime


class SessionMetadata(BaseModel):
    """Optional client details recorded on a session row."""

    user_agent: str | None = Field(default=None, max_length=512)
    ip: str | None = Field(default=None, max_length=64)


class RegisterRequest(BaseModel):
    """Self-registration payload. Name is full_name, or built from fname/lname."""

    email: EmailStr = Field(..., max_length=255, description="Email (unique)")
    password: str = Field(..., min_length=8, max_length=128, description="Password")
    full_name: str | None = Field(default=None, max_length=255)
    fname: str | None = Field(default=None, max_length=127)
    lname: str | None = Field(default=None, max_length=127)


class LoginRequest(BaseModel):
    """Credentials for login."""

    email: EmailStr = Field(..., max_length=255, description="Email")
    password: str = Field(..., min_length=1, max_length=128, description="Password")


class RefreshTokenRequest(BaseModel):
    """Body for refresh and logout."""

    refresh_token: str = Field(..., description="Opaque refresh token")


class TokenPair(BaseModel):
    """Access token (JWT, short-lived) and refresh token (opaque, long-lived)."""

    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="Opaque refresh token")
    token_type: str = Field(default="bearer", description="Token type")


class UserSummary(BaseModel):
    """Public profile of a user."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    full_name: str | None = None
    role: str | None = None
    created_at: datetime | None = None


class AuthResponse(TokenPair):
    """Token pair plus the authenticated user's summary (register and login)."""

    user: UserSummary


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    message: str
