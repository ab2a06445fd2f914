"""
GAuth Web - User Management API Routes

Admin-only CRUD over user accounts:
- GET    /users        - Paginated, searchable list
- POST   /users        - Create user (optionally with roles)
- GET    /users/{id}   - Fetch user
- PUT    /users/{id}   - Partial update, role replacement
- DELETE /users/{id}   - Soft delete and session revocation

All routes require the admin role.
"""

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_
from sqlmodel import Session as DBSession, col, select

from gauth_web.auth import sessions as session_service
from gauth_web.auth.dependencies import (
    AuthenticatedUser,
    SystemRole,
    get_db,
    require_role,
)
from gauth_web.auth.models import Role, User
from gauth_web.auth.password import hash_password
from gauth_web.auth.schemas import MessageResponse, UserResponse
from gauth_web.pagination import Pagination, normalize_page
from gauth_web.users.schemas import CreateUserRequest, UpdateUserRequest, UserListResponse


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

require_admin = require_role(SystemRole.ADMIN)


# =============================================================================
# Helpers
# =============================================================================

def _parse_user_id(raw: str) -> UUID:
    try:
        return UUID(raw)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid user ID",
        )


def _get_live_user(db: DBSession, user_id: UUID) -> User:
    user = db.exec(
        select(User).where(User.id == user_id, User.deleted_at == None)  # noqa: E711
    ).first()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return user


def _load_roles(db: DBSession, role_ids: List[UUID]) -> List[Role]:
    """Roles matching the given ids; unknown ids are ignored."""
    if not role_ids:
        return []
    return list(db.exec(select(Role).where(col(Role.id).in_(role_ids))).all())


def _escape_like(term: str) -> str:
    """Match % and _ literally in a LIKE pattern."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _taken(db: DBSession, column, value: str, exclude_id: Optional[UUID] = None) -> bool:
    # Soft-deleted rows still hold their unique username/email
    statement = select(User).where(column == value)
    if exclude_id is not None:
        statement = statement.where(User.id != exclude_id)
    return db.exec(statement).first() is not None


# =============================================================================
# Endpoints
# =============================================================================

@router.get("", response_model=UserListResponse, summary="List users")
def list_users(
    page: int = Query(1, description="Page number"),
    limit: int = Query(10, description="Items per page (1-100)"),
    search: Optional[str] = Query(None, description="Match username, email or name"),
    admin: AuthenticatedUser = Depends(require_admin),
    db: DBSession = Depends(get_db),
):
    """Paginated list of non-deleted users, optionally filtered by a search term."""
    page, limit, offset = normalize_page(page, limit)

    filters = [User.deleted_at == None]  # noqa: E711
    if search:
        pattern = f"%{_escape_like(search)}%"
        filters.append(
            or_(
                col(User.username).ilike(pattern, escape="\\"),
                col(User.email).ilike(pattern, escape="\\"),
                col(User.first_name).ilike(pattern, escape="\\"),
                col(User.last_name).ilike(pattern, escape="\\"),
            )
        )

    total = db.exec(select(func.count()).select_from(User).where(*filters)).one()
    users = db.exec(
        select(User)
        .where(*filters)
        .order_by(col(User.created_at), col(User.username))
        .offset(offset)
        .limit(limit)
    ).all()

    return UserListResponse(
        users=[UserResponse.from_user(u) for u in users],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/{user_id}", response_model=UserResponse, summary="Get user by ID")
def get_user(
    user_id: str,
    admin: AuthenticatedUser = Depends(require_admin),
    db: DBSession = Depends(get_db),
):
    user = _get_live_user(db, _parse_user_id(user_id))
    return UserResponse.from_user(user)


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create new user",
)
def create_user(
    body: CreateUserRequest,
    admin: AuthenticatedUser = Depends(require_admin),
    db: DBSession = Depends(get_db),
):
    """Create an active user account. Password is hashed with bcrypt."""
    if _taken(db, User.username, body.username) or _taken(db, User.email, body.email):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User with this username or email already exists",
        )

    user = User(
        username=body.username,
        email=body.email,
        password_hash=hash_password(body.password),
        first_name=body.first_name,
        last_name=body.last_name,
        is_active=True,
        roles=_load_roles(db, body.role_ids),
    )

    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info("User %s created by %s", user.id, admin.user_id)

    return UserResponse.from_user(user)


@router.put("/{user_id}", response_model=UserResponse, summary="Update user")
def update_user(
    user_id: str,
    body: UpdateUserRequest,
    admin: AuthenticatedUser = Depends(require_admin),
    db: DBSession = Depends(get_db),
):
    """Apply the provided fields; role_ids, when present, replaces the role set."""
    user = _get_live_user(db, _parse_user_id(user_id))

    if body.username is not None and body.username != user.username:
        if _taken(db, User.username, body.username, exclude_id=user.id):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Username already exists",
            )
        user.username = body.username

    if body.email is not None and body.email != user.email:
        if _taken(db, User.email, body.email, exclude_id=user.id):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Email already exists",
            )
        user.email = body.email

    if body.first_name is not None:
        user.first_name = body.first_name
    if body.last_name is not None:
        user.last_name = body.last_name
    if body.avatar is not None:
        user.avatar = body.avatar
    if body.is_active is not None:
        user.is_active = body.is_active
    if body.role_ids is not None:
        user.roles = _load_roles(db, body.role_ids)

    user.updated_at = datetime.utcnow()
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info("User %s updated by %s", user.id, admin.user_id)

    return UserResponse.from_user(user)


@router.delete("/{user_id}", response_model=MessageResponse, summary="Delete user")
def delete_user(
    user_id: str,
    admin: AuthenticatedUser = Depends(require_admin),
    db: DBSession = Depends(get_db),
):
    """Soft delete a user and revoke all of their sessions."""
    target_id = _parse_user_id(user_id)

    if target_id == admin.user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete your own account",
        )

    user = _get_live_user(db, target_id)
    user.deleted_at = datetime.utcnow()
    db.add(user)
    db.commit()

    revoked = session_service.invalidate_all_user_sessions(db, target_id)
    logger.info("User %s deleted by %s (%d sessions revoked)", target_id, admin.user_id, revoked)

    return MessageResponse(message="User deleted successfully")
