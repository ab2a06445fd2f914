"""
GAuth Web - Audit Models

Append-only audit entries, one per handled request.
Rows are never updated after insertion.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, Boolean, Column, DateTime, String
from sqlmodel import Field, SQLModel


class AuditLog(SQLModel, table=True):
    """
    Represents a single audit log entry.

    Attributes:
        user_id: Caller, when the request was authenticated
        action: HTTP method
        resource: Request path
        resource_id: Target entity id, when known
        details: status_code, duration_ms, query, request_id
        success: True when the response status was below 400
    """
    __tablename__ = "audit_logs"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False, index=True, default=datetime.utcnow),
    )
    user_id: Optional[UUID] = Field(default=None, foreign_key="users.id", index=True)
    action: str = Field(sa_column=Column(String(16), nullable=False))
    resource: str = Field(sa_column=Column(String(2048), nullable=False))
    resource_id: Optional[UUID] = Field(default=None)
    details: Dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False, default=dict),
    )
    ip_address: Optional[str] = Field(
        default=None,
        sa_column=Column(String(45), nullable=True),
    )
    user_agent: Optional[str] = Field(
        default=None,
        sa_column=Column(String(512), nullable=True),
    )
    success: bool = Field(
        default=True,
        sa_column=Column(Boolean, nullable=False, default=True),
    )
