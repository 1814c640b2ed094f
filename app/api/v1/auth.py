"""Auth endpoints (register, login, refresh, logout) and auth dependencies (get_current_claims, require_permissions)."""

from typing import Annotated, Callable

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.core.errors import UnauthenticatedError
from app.core.security import TokenSigner, get_token_signer
from app.schemas.auth import (
    AccessTokenClaims,
    AuthResponse,
    LoginRequest,
    MessageResponse,
    RefreshTokenRequest,
    RegisterRequest,
    SessionMetadata,
    TokenPair,
    UserSummary,
)
from app.services.auth_service import AuthService
from app.services.authorization import DeclaredRequirement, as_requirement, authorize
from app.services.permissions import PermissionResolver

router = APIRouter()
security = HTTPBearer(auto_error=False)

USER_AGENT_MAX_LEN = 512


def _session_metadata(request: Request) -> SessionMetadata:
    """Client details recorded on the session row."""
    user_agent = request.headers.get("user-agent") or None
    return SessionMetadata(
        user_agent=user_agent[:USER_AGENT_MAX_LEN] if user_agent else None,
        ip=request.client.host if request.client else None,
    )


def _no_store(response: Response) -> None:
    # Token responses must not be cached by browsers or proxies.
    response.headers["Cache-Control"] = "no-store"


def get_auth_service(
    db: Annotated[Session, Depends(get_db)],
    signer: Annotated[TokenSigner, Depends(get_token_signer)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AuthService:
    return AuthService(db, signer, settings)


def get_current_claims(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    signer: Annotated[TokenSigner, Depends(get_token_signer)],
) -> AccessTokenClaims:
    """Dependency: require a valid Bearer access token and return its claims. No database access."""
    if credentials is None:
        raise UnauthenticatedError()
    return signer.verify(credentials.credentials)


def require_permissions(declared: DeclaredRequirement) -> Callable[..., AccessTokenClaims]:
    """
    Build a dependency that authenticates the caller and enforces declared.

    declared: a flat list (any one suffices), {"any": [...]}, {"all": [...]}, or None.
    """
    requirement = as_requirement(declared)

    def dependency(
        claims: Annotated[AccessTokenClaims, Depends(get_current_claims)],
        db: Annotated[Session, Depends(get_db)],
    ) -> AccessTokenClaims:
        return authorize(claims, requirement, PermissionResolver(db))

    return dependency


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    request: Request,
    response: Response,
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> AuthResponse:
    """Register a new user with the default role; returns a token pair and the user summary."""
    _no_store(response)
    return service.register(body, _session_metadata(request))


@router.post("/login", response_model=AuthResponse)
def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> AuthResponse:
    """
    Authenticate with email and password; returns a token pair.
    Include the access token in the Authorization header as: Bearer <access_token>
    """
    _no_store(response)
    return service.login(body, _session_metadata(request))


@router.post("/refresh", response_model=TokenPair)
def refresh(
    body: RefreshTokenRequest,
    request: Request,
    response: Response,
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> TokenPair:
    """Exchange a refresh token for a new pair. The presented refresh token stops working."""
    _no_store(response)
    return service.refresh(body.refresh_token, _session_metadata(request))


@router.post("/logout", response_model=MessageResponse)
def logout(
    body: RefreshTokenRequest,
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> MessageResponse:
    """Revoke one session. Succeeds whether or not the token was still active."""
    service.logout(body.refresh_token)
    return MessageResponse(message="Logged out")


@router.post("/logout-all", response_model=MessageResponse)
def logout_all(
    claims: Annotated[AccessTokenClaims, Depends(get_current_claims)],
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> MessageResponse:
    """Revoke every session of the caller. Access tokens already issued expire on their own."""
    service.logout_all(claims.subject_id)
    return MessageResponse(message="Logged out from all devices")


@router.get("/profile", response_model=UserSummary)
def profile(
    claims: Annotated[AccessTokenClaims, Depends(get_current_claims)],
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> UserSummary:
    """Public profile of the caller."""
    return service.profile(claims.subject_id)
