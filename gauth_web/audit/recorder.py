"""
GAuth Web - Audit Recorder

Best-effort persistence of one AuditLog row per request.

The security middleware builds the entry once the response is ready and
schedules `AuditRecorder.record` as a response background task, so the
write happens after the response has been sent. A failed write is logged
and dropped; it never changes the outcome of the request.
"""

import logging
from typing import Callable, Optional
from uuid import UUID

from sqlmodel import Session as DBSession
from starlette.requests import Request

from gauth_web.audit.models import AuditLog
from gauth_web.gateway.client_info import get_client_ip, get_user_agent


logger = logging.getLogger(__name__)


def build_audit_entry(
    request: Request,
    status_code: int,
    duration_ms: float,
    user_id: Optional[UUID] = None,
    request_id: Optional[str] = None,
) -> AuditLog:
    """Snapshot request metadata into an unsaved AuditLog."""
    return AuditLog(
        user_id=user_id,
        action=request.method,
        resource=request.url.path,
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
        success=status_code < 400,
        details={
            "status_code": status_code,
            "duration_ms": round(duration_ms, 3),
            "query": request.url.query,
            "request_id": request_id,
        },
    )


class AuditRecorder:
    """Writes audit entries through a session factory, never raising."""

    def __init__(self, session_factory: Callable[[], DBSession]):
        self._session_factory = session_factory

    def record(self, entry: AuditLog) -> bool:
        """
        Persist one entry.

        Returns:
            True if written, False if the write failed (already logged)
        """
        try:
            with self._session_factory() as db:
                db.add(entry)
                db.commit()
            return True
        except Exception:
            logger.exception(
                "Failed to create audit log for %s %s", entry.action, entry.resource
            )
            return False
