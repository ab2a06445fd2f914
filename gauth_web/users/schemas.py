"""
GAuth Web - User Management Schemas
"""

import re
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from gauth_web.auth.schemas import UserResponse
from gauth_web.pagination import Pagination


# Accepts .local development addresses such as admin@gauth.local
EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+$")


def _validate_email(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    if not EMAIL_PATTERN.match(v):
        raise ValueError("Invalid email format")
    return v.lower()


class CreateUserRequest(BaseModel):
    """Request body for POST /users."""
    username: str = Field(..., min_length=3, max_length=50)
    email: str
    password: str = Field(..., min_length=6)
    first_name: str = ""
    last_name: str = ""
    role_ids: List[UUID] = Field(default_factory=list)

    @field_validator("email")
    @classmethod
    def email_format(cls, v):
        return _validate_email(v)


class UpdateUserRequest(BaseModel):
    """Request body for PUT /users/{id}. Omitted fields are left unchanged."""
    username: Optional[str] = Field(default=None, min_length=3, max_length=50)
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar: Optional[str] = None
    is_active: Optional[bool] = None
    role_ids: Optional[List[UUID]] = None

    @field_validator("email")
    @classmethod
    def email_format(cls, v):
        return _validate_email(v)


class UserListResponse(BaseModel):
    users: List[UserResponse]
    pagination: Pagination
