"""
GAuth Web - Security Middleware

Request/response middleware for:
- Request ID injection for tracing
- Recovery: unhandled exceptions become a generic 500 JSON error
- Access logging and audit recording of every request
- Security headers

Audit entries are written by a background task attached to the response,
after the body has been sent.
"""

import logging
import time
import uuid
from typing import Callable

from starlette.background import BackgroundTask
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from gauth_web.audit.recorder import build_audit_entry
from gauth_web.gateway.client_info import get_client_ip


logger = logging.getLogger(__name__)

INTERNAL_ERROR = "Internal server error"


class SecurityMiddleware(BaseHTTPMiddleware):
    """
    Security-focused middleware for all incoming requests.

    Responsibilities:
    1. Inject X-Request-ID header for distributed tracing
    2. Convert unhandled exceptions into {"error": "Internal server error"}
    3. Log one access line per request
    4. Schedule the audit write for the request
    5. Add security headers to response
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process each request through security pipeline."""
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Unhandled error on %s %s", request.method, request.url.path)
            response = JSONResponse(status_code=500, content={"error": INTERNAL_ERROR})

        duration_ms = (time.perf_counter() - start_time) * 1000

        logger.info(
            "%s %s %d %.1fms %s",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            get_client_ip(request),
        )

        self._schedule_audit(request, response, duration_ms, request_id)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Cache-Control"] = "no-store"

        return response

    def _schedule_audit(
        self,
        request: Request,
        response: Response,
        duration_ms: float,
        request_id: str,
    ) -> None:
        """
        Attach the audit write to the response as a background task.

        Preflight requests and requests made before the recorder exists
        (outside the app lifespan) are not audited.
        """
        recorder = getattr(request.app.state, "audit_recorder", None)
        if recorder is None or request.method == "OPTIONS":
            return

        entry = build_audit_entry(
            request,
            status_code=response.status_code,
            duration_ms=duration_ms,
            user_id=getattr(request.state, "user_id", None),
            request_id=request_id,
        )

        task = BackgroundTask(recorder.record, entry)
        if response.background is None:
            response.background = task
        else:
            previous = response.background

            async def run_both() -> None:
                await previous()
                await task()

            response.background = BackgroundTask(run_both)
