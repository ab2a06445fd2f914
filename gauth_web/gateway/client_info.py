"""Client metadata extraction shared by routes and middleware."""

from starlette.requests import Request


def get_client_ip(request: Request) -> str:
    """Extract client IP, honouring the first X-Forwarded-For hop."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def get_user_agent(request: Request) -> str:
    return request.headers.get("User-Agent", "unknown")[:512]
