"""
GAuth Web - Authentication Package

Authentication and authorization with:
- Hybrid JWT + server-side sessions
- bcrypt password hashing
- Role and permission checks with deny-by-default
- Default roles and admin account seeding
"""

from gauth_web.auth.models import Policy, Role, Session, User
from gauth_web.auth.dependencies import (
    AuthenticatedUser,
    Permission,
    SystemRole,
    get_current_user,
    require_permission,
    require_role,
)
from gauth_web.auth.tokens import create_access_token, create_refresh_token, verify_token

__all__ = [
    "User",
    "Session",
    "Role",
    "Policy",
    "AuthenticatedUser",
    "Permission",
    "SystemRole",
    "get_current_user",
    "require_permission",
    "require_role",
    "create_access_token",
    "create_refresh_token",
    "verify_token",
]
