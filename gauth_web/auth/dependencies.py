"""
GAuth Web - Security Dependencies

FastAPI dependencies for authentication and authorization.
Implements hybrid JWT + session validation with role/permission checks.

Usage:
    @router.get("/protected")
    def protected_route(user: AuthenticatedUser = Depends(get_current_user)):
        ...

    @router.get("/audit")
    def audit_route(user: AuthenticatedUser = Depends(require_permission(Permission.AUDIT_READ))):
        ...

Security:
- Every protected request validates both the JWT AND the live session
- Every authentication failure returns the same 401 body
- Role and permission checks are deny-by-default
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Generator, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session as DBSession

from gauth_web.auth import sessions
from gauth_web.auth.models import Session, User
from gauth_web.auth.tokens import InvalidTokenError, TokenType


logger = logging.getLogger(__name__)

# HTTP Bearer scheme for JWT extraction
security = HTTPBearer(auto_error=False)

INVALID_TOKEN_DETAIL = "Invalid or expired token"


class Permission(str, Enum):
    """
    Granular permissions stored on roles.

    Permissions follow resource:action pattern.
    """
    # User management
    USER_CREATE = "user:create"
    USER_READ = "user:read"
    USER_UPDATE = "user:update"
    USER_DELETE = "user:delete"

    # Role management
    ROLE_CREATE = "role:create"
    ROLE_READ = "role:read"
    ROLE_UPDATE = "role:update"
    ROLE_DELETE = "role:delete"

    # Policy management
    POLICY_CREATE = "policy:create"
    POLICY_READ = "policy:read"
    POLICY_UPDATE = "policy:update"
    POLICY_DELETE = "policy:delete"

    # Audit
    AUDIT_READ = "audit:read"

    # Own profile
    PROFILE_READ = "profile:read"
    PROFILE_UPDATE = "profile:update"


class SystemRole(str, Enum):
    """Roles seeded on first startup."""
    ADMIN = "admin"
    USER = "user"


@dataclass(frozen=True)
class AuthenticatedUser:
    """
    Identity resolved by the request authenticator.

    Handlers receive it as an explicit parameter via Depends(get_current_user).
    """

    user: User
    session: Session
    roles: FrozenSet[str]
    permissions: FrozenSet[str]

    @property
    def user_id(self) -> UUID:
        return self.user.id

    @property
    def session_id(self) -> UUID:
        return self.session.id

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def has_permission(self, permission: Permission) -> bool:
        return permission.value in self.permissions


def get_db(request: Request) -> Generator[DBSession, None, None]:
    """
    One database session per request.

    FastAPI caches the dependency within a request, so the authenticator
    and the handler share this session.
    """
    db = request.app.state.db_session_factory()
    try:
        yield db
    finally:
        db.close()


def _unauthorized(detail: str = INVALID_TOKEN_DETAIL) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def resolve_identity(db: DBSession, token: str) -> AuthenticatedUser:
    """
    Resolve an access token to an identity.

    Steps:
    1. Verify signature (configured HMAC only), expiry and claims
    2. Require an access-type token
    3. Load the active, unexpired session by token + user id
    4. Require the owning user to be active and not deleted

    Raises:
        HTTPException 401: on any failure, with a single generic message
    """
    try:
        session = sessions.resolve_token(db, token, TokenType.ACCESS)
    except (InvalidTokenError, sessions.InvalidSessionError) as e:
        logger.info("Authentication rejected: %s", e)
        raise _unauthorized()

    user = session.user
    return AuthenticatedUser(
        user=user,
        session=session,
        roles=frozenset(user.role_names()),
        permissions=frozenset(user.permission_set()),
    )


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: DBSession = Depends(get_db),
) -> AuthenticatedUser:
    """
    Validate request authentication and return the current identity.

    The resolved user id is also recorded on request.state for the audit
    middleware, which runs outside the dependency graph.

    Raises:
        HTTPException 401: Missing, malformed or invalid bearer token
    """
    if credentials is None or not credentials.credentials:
        raise _unauthorized()

    identity = resolve_identity(db, credentials.credentials)
    request.state.user_id = identity.user_id

    return identity


# =============================================================================
# Authorization gate
# =============================================================================

def check_role(identity: Optional[AuthenticatedUser], role: str) -> None:
    """
    Require the identity to hold a role by name.

    Raises:
        HTTPException 401: No identity (fail closed)
        HTTPException 403: Role missing
    """
    if identity is None:
        raise _unauthorized("Authentication required")

    if not identity.has_role(role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Role '{role}' is required",
        )


def check_permission(identity: Optional[AuthenticatedUser], permission: Permission) -> None:
    """
    Require a permission in the union of the identity's role permissions.

    Raises:
        HTTPException 401: No identity (fail closed)
        HTTPException 403: Permission missing
    """
    if identity is None:
        raise _unauthorized("Authentication required")

    if not identity.has_permission(permission):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Permission '{permission.value}' is required",
        )


def require_role(role: SystemRole):
    """
    Dependency factory requiring a specific role.

    Usage:
        @router.get("/admin", dependencies=[Depends(require_role(SystemRole.ADMIN))])
    """
    role_name = role.value if isinstance(role, SystemRole) else str(role)

    def dependency(user: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
        check_role(user, role_name)
        return user

    return dependency


def require_permission(permission: Permission):
    """Dependency factory requiring a single permission."""

    def dependency(user: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
        check_permission(user, permission)
        return user

    return dependency


def require_any_permission(*permissions: Permission):
    """Dependency factory requiring at least one of the given permissions."""

    def dependency(user: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
        if not any(user.has_permission(p) for p in permissions):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires one of: {[p.value for p in permissions]}",
            )
        return user

    return dependency
