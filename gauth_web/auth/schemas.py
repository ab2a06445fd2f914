"""
GAuth Web - Authentication Request/Response Schemas

Pydantic models for API request validation and response serialization.
Separates API contracts from database models; no response model carries
a password or password hash field.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from gauth_web.auth.models import Role, Session, User


class LoginRequest(BaseModel):
    """Request body for POST /auth/login. username accepts a username or an email."""
    username: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)


class RefreshRequest(BaseModel):
    """Request body for POST /auth/refresh."""
    refresh_token: str = Field(..., min_length=1)


class LogoutRequest(BaseModel):
    """Request body for POST /auth/logout (optional)."""
    all_sessions: bool = Field(
        default=False,
        description="Invalidate all sessions (logout everywhere)"
    )


class LogoutResponse(BaseModel):
    message: str = Field(default="Logged out successfully")
    sessions_invalidated: int = Field(default=1)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)


class MessageResponse(BaseModel):
    message: str


class RoleResponse(BaseModel):
    """Public view of a role; the permission list is not exposed."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_role(cls, role: Role) -> "RoleResponse":
        return cls.model_validate(role)


class UserResponse(BaseModel):
    """User as returned by the API. Never includes the password hash."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    email: str
    first_name: str
    last_name: str
    avatar: str
    is_active: bool
    is_verified: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    roles: List[RoleResponse] = Field(default_factory=list)

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            avatar=user.avatar,
            is_active=user.is_active,
            is_verified=user.is_verified,
            last_login_at=user.last_login_at,
            created_at=user.created_at,
            updated_at=user.updated_at,
            roles=[RoleResponse.from_role(r) for r in user.roles],
        )


class LoginResponse(BaseModel):
    """Response body for login and refresh."""
    user: UserResponse
    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")
    expires_in: int = Field(..., description="Seconds until the access token expires")


class SessionInfo(BaseModel):
    """Session information for user display."""
    id: UUID
    created_at: datetime
    expires_at: datetime
    ip_address: Optional[str]
    user_agent: Optional[str]
    is_current: bool = False

    @classmethod
    def from_session(cls, session: Session, current_id: UUID) -> "SessionInfo":
        return cls(
            id=session.id,
            created_at=session.created_at,
            expires_at=session.expires_at,
            ip_address=session.ip_address,
            user_agent=session.user_agent,
            is_current=session.id == current_id,
        )


class ActiveSessionsResponse(BaseModel):
    """Response body for GET /auth/sessions."""
    sessions: List[SessionInfo]
    total: int


class ErrorResponse(BaseModel):
    """Standard error envelope."""
    error: str
