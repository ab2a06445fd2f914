"""
GAuth Web - FastAPI Application Entrypoint

This module initializes the FastAPI application with:
- CORS and security middleware, application-wide rate limit
- Authentication, user management and audit routes
- Database lifecycle management and default data seeding
- Uniform {"error": "..."} error envelope

Run with:
    gauth-web
    uvicorn gauth_web.app:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from gauth_web import __version__
from gauth_web.audit.recorder import AuditRecorder
from gauth_web.audit.routes import router as audit_router
from gauth_web.auth.database import get_engine, get_session_factory, init_db
from gauth_web.auth.routes import router as auth_router
from gauth_web.auth.seed import seed_defaults
from gauth_web.config import settings
from gauth_web.gateway.limiter import enforce_rate_limit, limiter
from gauth_web.gateway.middleware import SecurityMiddleware
from gauth_web.users.routes import router as users_router


logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

SERVICE_NAME = "gauth-web-api"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
        - Create engine and tables (users, roles, policies, sessions, audit)
        - Seed default roles and the admin account when SEED_DEFAULTS is set
        - Create the audit recorder

    Shutdown:
        - Dispose the engine
    """
    engine = get_engine(settings.database_url())
    init_db(engine)
    app.state.db_engine = engine
    app.state.db_session_factory = get_session_factory(engine)

    if settings.SEED_DEFAULTS:
        with app.state.db_session_factory() as db:
            seed_defaults(db)

    app.state.audit_recorder = AuditRecorder(app.state.db_session_factory)
    logger.info("%s %s started (environment=%s)", SERVICE_NAME, __version__, settings.ENVIRONMENT)

    yield

    app.state.audit_recorder = None
    engine.dispose()
    logger.info("%s shutdown complete", SERVICE_NAME)


app = FastAPI(
    title="GAuth Web API",
    description="Authentication and authorization management API",
    version=__version__,
    lifespan=lifespan,
    dependencies=[Depends(enforce_rate_limit)],
)

# slowapi reads the enabled flag from app.state.limiter
app.state.limiter = limiter

# Registered innermost first: Security -> CORS (outermost)
app.add_middleware(SecurityMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=[
        "Authorization",
        "Content-Type",
        "Accept",
        "Origin",
        "Cache-Control",
        "X-Requested-With",
    ],
)


app.include_router(auth_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(audit_router, prefix="/api")


# =============================================================================
# Exception handlers
#
# Every error leaves the API as {"error": "<message>"}.
# =============================================================================

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed or missing input is a 400, with the first problem spelled out."""
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 with Retry-After set to the limit's window length."""
    response = JSONResponse(status_code=429, content={"error": "Rate limit exceeded"})
    response.headers["Retry-After"] = str(exc.limit.limit.get_expiry())
    return response


@app.get("/health", tags=["health"])
async def health_check():
    """Liveness check."""
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": __version__,
    }


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run(
        "gauth_web.app:app",
        host="0.0.0.0",
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )
