"""
Rate limiting utilities for API endpoints.
Uses slowapi to slow down password guessing on the login endpoint.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request

from clinic_cms.config import settings


def get_client_identifier(request: Request) -> str:
    """
    Client key for rate limiting.
    Uses the first X-Forwarded-For address when behind a proxy.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


limiter = Limiter(
    key_func=get_client_identifier,
    storage_uri="memory://",  # Per process; use Redis when running several workers
)

RATE_LIMITS = {
    "login": settings.LOGIN_RATE_LIMIT,
}
