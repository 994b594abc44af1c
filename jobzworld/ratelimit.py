"""Per-client rate limiting with slowapi."""

import os
from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from .logger import logger
from .schemas import ErrorCode

limiter = Limiter(key_func=get_remote_address)


# Helper to conditionally apply rate limiting (skip in tests)
def conditional_limit(limit_string):
    """Apply rate limit only if not in test mode."""
    if os.getenv('TEST_MODE'):
        # Return a no-op decorator in test mode
        def decorator(func):
            return func
        return decorator
    return limiter.limit(limit_string)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return the standard error envelope with a Retry-After hint."""
    retry_after = exc.limit.limit.get_expiry()
    logger.warning(
        f"Rate limit exceeded: {request.method} {request.url.path} "
        f"client={get_remote_address(request)} limit={exc.detail}"
    )
    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "error": ErrorCode.RATE_LIMITED,
            "message": "Too many requests, please try again later",
            "details": {"limit": exc.detail, "retry_after": retry_after},
        },
        headers={"Retry-After": str(retry_after)},
    )
