"""
GAuth Web - Shared Rate Limiter

One slowapi Limiter instance for the whole app, keyed by client address
(the first X-Forwarded-For hop, same as sessions and audit entries).
Counters live in the configured storage (in-memory by default, Redis when
REDIS_HOST or RATE_LIMIT_STORAGE_URI is set) and use a moving window, so
old hits age out of the store instead of accumulating.

The limit is enforced by `enforce_rate_limit`, an application-wide
dependency that runs before authentication on every route. All routes
share the "global" scope, so each client has one budget. RATE_LIMIT is
read from settings on every check.
"""

from slowapi import Limiter
from starlette.requests import Request

from gauth_web.config import settings
from gauth_web.gateway.client_info import get_client_ip


def current_rate_limit() -> str:
    return settings.RATE_LIMIT


limiter = Limiter(
    key_func=get_client_ip,
    storage_uri=settings.rate_limit_storage_uri(),
    strategy="moving-window",
)


@limiter.shared_limit(current_rate_limit, scope="global")
def enforce_rate_limit(request: Request) -> None:
    """Count the request against the client's budget; raises RateLimitExceeded."""
    return None
