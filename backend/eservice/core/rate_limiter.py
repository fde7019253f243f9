"""
Rate Limiting for the E-Service Portal
======================================
Implements rate limiting using slowapi. Storage defaults to in-process
memory; point RATE_LIMIT_STORAGE_URI at redis:// for multi-worker setups.

Default: RATE_LIMIT_PER_MINUTE per client.

Sensitive endpoints have their own limits:
- /auth/login: 5 req/min (brute force protection)
- /auth/signup, /auth/reset-password: 3 req/min
- /otp/send, /hahusms/*: 3 req/min (each call costs an SMS)
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from eservice.core.config import settings
from eservice.core.logging_config import logger


def get_client_identifier(request: Request) -> str:
    """
    Rate limit key.

    Priority:
    1. Authenticated user ID (stored on request.state by the auth dependency)
    2. IP address
    """
    user_id = getattr(request.state, 'user_id', None)
    if user_id:
        return f"user:{user_id}"
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=get_client_identifier,
    default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"],
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """429 in the standard failure envelope with a Retry-After header"""
    retry_after = "60"
    limit = getattr(exc, "limit", None)
    if limit is not None and getattr(limit, "limit", None) is not None:
        retry_after = str(limit.limit.get_expiry())

    logger.warning(
        f"[RateLimit] Exceeded for {get_client_identifier(request)}: {exc.detail}"
    )

    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "error": "Too many requests. Please slow down.",
            "code": "RATE_LIMIT_EXCEEDED",
            "details": {"limit": str(exc.detail), "retry_after_seconds": int(retry_after)},
        },
        headers={"Retry-After": retry_after},
    )


def rate_limit(limit: str):
    """
    Decorator for applying custom rate limits to endpoints.
    The endpoint must accept a `request: Request` argument.

    Usage:
        @router.post("/my-endpoint")
        @rate_limit("5/minute")
        async def my_endpoint(request: Request):
            ...
    """
    return limiter.limit(limit, key_func=get_client_identifier)


def auth_rate_limit():
    """Rate limit for login (5/min)"""
    return rate_limit("5/minute")


def strict_rate_limit():
    """Very strict rate limit for signup, password reset and SMS (3/min)"""
    return rate_limit("3/minute")
