"""Authorization gate: decide allow/deny for verified claims against a declared permission requirement.

Each protected operation declares its requirement as a value:

    ["quotes:read", "quotes:update"]          any one suffices (flat list)
    {"any": ["quotes:read", "quotes:update"]} same, explicit
    {"all": ["roles:read", "users:read"]}     every one is needed
    None                                      authenticated callers only, no lookup

The gate fails closed: a resolver error is logged and treated as a denial.
"""

import logging
from collections.abc import Mapping, Sequence
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict

from app.core.errors import ForbiddenError
from app.schemas.auth import AccessTokenClaims
from app.services.permissions import PermissionResolver

logger = logging.getLogger(__name__)

INSUFFICIENT_PERMISSIONS_MESSAGE = "Insufficient permissions"


class PermissionRequirement(BaseModel):
    """Permissions an operation needs, combined with OR (mode="any") or AND (mode="all")."""

    model_config = ConfigDict(frozen=True)

    mode: Literal["any", "all"]
    permissions: tuple[str, ...]

    def describe(self) -> str:
        joiner = " OR " if self.mode == "any" else " AND "
        return joiner.join(self.permissions)


DeclaredRequirement = Union[
    PermissionRequirement,
    Sequence[str],
    Mapping[str, Sequence[str]],
    None,
]


def require_any(*permissions: str) -> PermissionRequirement:
    return PermissionRequirement(mode="any", permissions=tuple(permissions))


def require_all(*permissions: str) -> PermissionRequirement:
    return PermissionRequirement(mode="all", permissions=tuple(permissions))


def as_requirement(declared: DeclaredRequirement) -> PermissionRequirement | None:
    """
    Normalize a declared requirement. Raises ValueError for a malformed declaration,
    which surfaces when the route is defined rather than when it is called.
    """
    if declared is None or isinstance(declared, PermissionRequirement):
        return declared
    if isinstance(declared, str):
        return require_any(declared)
    if isinstance(declared, Mapping):
        if set(declared.keys()) == {"any"}:
            return require_any(*declared["any"])
        if set(declared.keys()) == {"all"}:
            return require_all(*declared["all"])
        raise ValueError(
            f"Permission requirement mapping must have exactly one key, 'any' or 'all'; got {sorted(declared)}"
        )
    if isinstance(declared, Sequence):
        return require_any(*declared)
    raise ValueError(f"Unsupported permission requirement: {declared!r}")


def is_satisfied(requirement: PermissionRequirement, granted: frozenset[str]) -> bool:
    """any: at least one requested name granted; all: every one. Nothing requested -> True."""
    requested = set(requirement.permissions)
    if not requested:
        return True
    if requirement.mode == "all":
        return requested.issubset(granted)
    return not requested.isdisjoint(granted)


def authorize(
    claims: AccessTokenClaims,
    requirement: PermissionRequirement | None,
    resolver: PermissionResolver,
) -> AccessTokenClaims:
    """
    Return claims when the subject satisfies requirement; raise ForbiddenError otherwise.

    requirement=None means authentication alone is enough and the resolver is not called.
    Permissions are those of the role named in the token (claims are a snapshot taken at
    issuance); a subject whose user row is gone holds none.
    """
    if requirement is None:
        return claims

    try:
        granted = resolver.get_token_permissions(claims.subject_id, claims.role)
        allowed = is_satisfied(requirement, granted)
    except Exception:
        logger.exception(
            "Permission check failed for user_id=%s; denying", claims.subject_id
        )
        raise ForbiddenError(INSUFFICIENT_PERMISSIONS_MESSAGE) from None

    if allowed is not True:
        logger.info(
            "Forbidden: user_id=%s role=%s required=%s",
            claims.subject_id,
            claims.role,
            requirement.describe(),
        )
        raise ForbiddenError(
            f"{INSUFFICIENT_PERMISSIONS_MESSAGE}. Required: {requirement.describe()}"
        )
    return claims
