"""
GAuth Web - Audit Log API

Read-only access to the request audit trail.
Requires the audit:read permission.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict
from sqlalchemy import func
from sqlmodel import Session as DBSession, select

from gauth_web.audit.models import AuditLog
from gauth_web.auth.dependencies import (
    AuthenticatedUser,
    Permission,
    get_db,
    require_permission,
)
from gauth_web.pagination import Pagination, normalize_page


router = APIRouter(prefix="/audit", tags=["audit"])


class AuditLogEntry(BaseModel):
    """Single audit log entry."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created_at: datetime
    user_id: Optional[UUID] = None
    action: str
    resource: str
    resource_id: Optional[UUID] = None
    details: Dict[str, Any] = {}
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    success: bool


class AuditLogResponse(BaseModel):
    """Paginated audit log response."""
    logs: List[AuditLogEntry]
    pagination: Pagination


@router.get("/logs", response_model=AuditLogResponse, summary="Get Audit Logs")
def get_audit_logs(
    page: int = Query(1, description="Page number"),
    limit: int = Query(10, description="Items per page"),
    user_id: Optional[str] = Query(None, description="Filter by user ID"),
    action: Optional[str] = Query(None, description="Filter by HTTP method"),
    reader: AuthenticatedUser = Depends(require_permission(Permission.AUDIT_READ)),
    db: DBSession = Depends(get_db),
):
    """Newest entries first, with optional user/action filters."""
    page, limit, offset = normalize_page(page, limit)

    filters = []
    if user_id:
        try:
            filters.append(AuditLog.user_id == UUID(user_id))
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid user ID",
            )
    if action:
        filters.append(AuditLog.action == action.upper())

    total = db.exec(select(func.count()).select_from(AuditLog).where(*filters)).one()
    rows = db.exec(
        select(AuditLog)
        .where(*filters)
        .order_by(AuditLog.created_at.desc())
        .offset(offset)
        .limit(limit)
    ).all()

    return AuditLogResponse(
        logs=[AuditLogEntry.model_validate(row) for row in rows],
        pagination=Pagination.build(page, limit, total),
    )
