"""Error taxonomy shared by the services and mapped to HTTP responses in app.main.

Messages are safe to show to clients. Credential and token errors use fixed
messages so a caller cannot tell an unknown email from a wrong password, or a
malformed token from an expired one.
"""

INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"
INVALID_TOKEN_MESSAGE = "Invalid or expired token"
NOT_AUTHENTICATED_MESSAGE = "Not authenticated"
INVALID_REFRESH_TOKEN_MESSAGE = "Invalid refresh token"


class AuthError(Exception):
    """Base class for terminal, user-visible auth and RBAC outcomes."""

    status_code: int = 400

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidCredentialsError(AuthError):
    """Bad login (email or password wrong) or an unusable refresh token."""

    status_code = 401

    def __init__(self, message: str = INVALID_CREDENTIALS_MESSAGE) -> None:
        super().__init__(message)


class UnauthenticatedError(AuthError):
    """No token, an invalid access token, or an unknown/expired/superseded refresh token."""

    status_code = 401

    def __init__(self, message: str = NOT_AUTHENTICATED_MESSAGE) -> None:
        super().__init__(message)


class InvalidTokenError(UnauthenticatedError):
    """Access token failed verification (signature, structure, or expiry)."""

    def __init__(self, message: str = INVALID_TOKEN_MESSAGE) -> None:
        super().__init__(message)


class ForbiddenError(AuthError):
    """Authenticated but lacking the permissions an operation requires."""

    status_code = 403


class NotFoundError(AuthError):
    """A referenced entity (user, role, permission) does not exist."""

    status_code = 404


class ConflictError(AuthError):
    """A unique key (email, role name, permission name) is already taken."""

    status_code = 409


class BadRequestError(AuthError):
    """Request is well-formed but cannot be applied (e.g. wrong current password)."""

    status_code = 400
