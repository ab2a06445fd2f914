"""
GAuth Web - Credential Store Models

SQLModel-based models for users, roles, policies and sessions.
Uses PostgreSQL for production, SQLite for local development and tests.

Security:
- Passwords stored as bcrypt hashes only
- Sessions are server-controlled for immediate revocation
- All timestamps in UTC
"""

import json
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, Boolean, Column, DateTime, String, Text
from sqlmodel import Field, Relationship, SQLModel


class UserRoleLink(SQLModel, table=True):
    """Association table for the User <-> Role many-to-many."""
    __tablename__ = "user_roles"

    user_id: UUID = Field(foreign_key="users.id", primary_key=True)
    role_id: UUID = Field(foreign_key="roles.id", primary_key=True)


class User(SQLModel, table=True):
    """
    User account for authentication.

    Attributes:
        id: Unique identifier (UUIDv4)
        username: Login identifier (unique)
        email: Alternate login identifier (unique)
        password_hash: bcrypt hash (never store plaintext, never serialize)
        is_active: Inactive users cannot login or authenticate
        is_verified: Email verification flag
        last_login_at: Updated on every successful login
        deleted_at: Soft-delete marker; deleted users are invisible to queries
    """
    __tablename__ = "users"

    id: UUID = Field(
        default_factory=uuid4,
        primary_key=True,
        description="Unique user identifier"
    )
    username: str = Field(
        sa_column=Column(String(50), unique=True, index=True, nullable=False),
        description="Username (login identifier)"
    )
    email: str = Field(
        sa_column=Column(String(255), unique=True, index=True, nullable=False),
        description="User email address (login identifier)"
    )
    password_hash: str = Field(
        sa_column=Column(String(255), nullable=False),
        description="bcrypt password hash"
    )
    first_name: str = Field(default="", max_length=100)
    last_name: str = Field(default="", max_length=100)
    avatar: str = Field(default="", max_length=512)
    is_active: bool = Field(
        default=True,
        sa_column=Column(Boolean, nullable=False, default=True),
        description="Whether user can authenticate"
    )
    is_verified: bool = Field(
        default=False,
        sa_column=Column(Boolean, nullable=False, default=False),
    )
    last_login_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime, nullable=True),
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False, default=datetime.utcnow),
    )
    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow),
    )
    deleted_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime, nullable=True, index=True),
    )

    # Relationships
    roles: List["Role"] = Relationship(back_populates="users", link_model=UserRoleLink)
    sessions: List["Session"] = Relationship(back_populates="user")

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def role_names(self) -> List[str]:
        return [role.name for role in self.roles if role.is_active]

    def permission_set(self) -> set:
        """Union of permission strings across all active roles."""
        granted = set()
        for role in self.roles:
            if role.is_active:
                granted.update(role.get_permissions())
        return granted


class Role(SQLModel, table=True):
    """
    Named role carrying a serialized list of permission strings.

    The permissions column always holds a JSON array; an empty role is
    stored as "[]", never NULL.
    """
    __tablename__ = "roles"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str = Field(
        sa_column=Column(String(100), unique=True, index=True, nullable=False),
    )
    description: str = Field(default="")
    permissions: str = Field(
        default="[]",
        sa_column=Column(Text, nullable=False, default="[]"),
        description="JSON-encoded list of permission strings"
    )
    is_active: bool = Field(
        default=True,
        sa_column=Column(Boolean, nullable=False, default=True),
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False, default=datetime.utcnow),
    )
    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow),
    )

    users: List[User] = Relationship(back_populates="roles", link_model=UserRoleLink)

    def get_permissions(self) -> List[str]:
        """Decode the permission list; malformed data reads as no permissions."""
        if not self.permissions:
            return []
        try:
            decoded = json.loads(self.permissions)
        except (ValueError, TypeError):
            return []
        if not isinstance(decoded, list):
            return []
        return [p for p in decoded if isinstance(p, str)]

    def set_permissions(self, permissions: Optional[List[str]]) -> None:
        self.permissions = json.dumps(list(permissions or []))


class Policy(SQLModel, table=True):
    """
    Authorization policy record (resource/action/effect with conditions).

    Persisted for administration tooling; not evaluated per request.
    """
    __tablename__ = "policies"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str = Field(
        sa_column=Column(String(100), unique=True, index=True, nullable=False),
    )
    description: str = Field(default="")
    resource: str = Field(sa_column=Column(String(255), nullable=False))
    action: str = Field(sa_column=Column(String(100), nullable=False))
    effect: str = Field(
        default="allow",
        sa_column=Column(String(10), nullable=False, default="allow"),
    )
    conditions: Dict[str, str] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False, default=dict),
    )
    is_active: bool = Field(
        default=True,
        sa_column=Column(Boolean, nullable=False, default=True),
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False, default=datetime.utcnow),
    )
    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow),
    )


class Session(SQLModel, table=True):
    """
    Server-side session backing every issued token.

    JWT tokens carry the opaque session token and are validated against
    the live row. Deactivating a session immediately invalidates all
    associated access and refresh tokens.

    Attributes:
        token: Opaque bearer reference embedded in token claims (unique)
        expires_at: Equal to issue time + refresh token lifetime
        is_active: False after logout or revocation
        ip_address: Client IP for audit
        user_agent: Client user-agent for audit
    """
    __tablename__ = "sessions"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(
        foreign_key="users.id",
        nullable=False,
        index=True,
        description="Reference to user"
    )
    token: str = Field(
        sa_column=Column(String(64), unique=True, index=True, nullable=False),
        description="Opaque session token"
    )
    expires_at: datetime = Field(
        sa_column=Column(DateTime, nullable=False),
        description="Session expiration timestamp"
    )
    ip_address: Optional[str] = Field(
        default=None,
        sa_column=Column(String(45), nullable=True),
    )
    user_agent: Optional[str] = Field(
        default=None,
        sa_column=Column(String(512), nullable=True),
    )
    is_active: bool = Field(
        default=True,
        sa_column=Column(Boolean, nullable=False, default=True),
        description="Whether session is active"
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False, default=datetime.utcnow),
    )
    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow),
    )

    # Relationships
    user: Optional[User] = Relationship(back_populates="sessions")

    def is_expired(self) -> bool:
        return datetime.utcnow() > self.expires_at
