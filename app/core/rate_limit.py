"""
Rate Limiting
=============

Redis-based fixed window rate limiting in front of every API route.
"""

import logging
from typing import Optional

from fastapi import Request

from app.config import settings
from app.core.errors import RateLimitError
from app.core.security import subject_from_token
from app.services.redis_client import get_redis

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Fixed window rate limiter using Redis.

    Rate limits are applied per user (if a valid bearer token is present)
    or per client IP. The first request in a window creates the counter
    with a TTL equal to the window; the counter disappears when the
    window ends.
    """

    @staticmethod
    def _get_key(identifier: str, action: str) -> str:
        """Generate rate limit key."""
        return f"ratelimit:{action}:{identifier}"

    @staticmethod
    async def check_rate_limit(
        identifier: str,
        action: str = "api",
        max_requests: Optional[int] = None,
        window_seconds: Optional[int] = None,
    ) -> dict:
        """
        Count a request against the identifier's current window.

        Args:
            identifier: User ID or IP address
            action: Bucket name
            max_requests: Override max requests (optional)
            window_seconds: Override window size (optional)

        Returns:
            Dict with 'allowed', 'remaining', 'reset_in' keys
        """
        max_req = max_requests or settings.RATE_LIMIT_MAX_REQUESTS
        window = window_seconds or settings.RATE_LIMIT_WINDOW_SECONDS

        key = RateLimiter._get_key(identifier, action)

        try:
            client = await get_redis()

            count = await client.incr(key)
            if count == 1:
                await client.expire(key, window)
                ttl = window
            else:
                ttl = await client.ttl(key)
                if ttl < 0:
                    # Counter survived without a TTL (e.g. crash between calls)
                    await client.expire(key, window)
                    ttl = window

            return {
                "allowed": count <= max_req,
                "remaining": max(max_req - count, 0),
                "reset_in": ttl,
            }

        except Exception as e:
            # Fail open: the limiter must never take the API down with it
            logger.warning("Rate limit check error: %s", e)
            return {
                "allowed": True,
                "remaining": max_req,
                "reset_in": window,
            }


def _identify(request: Request) -> str:
    """Authenticated user id if the bearer token is valid, else client IP."""
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        user_id = subject_from_token(auth_header[7:])
        if user_id is not None:
            return f"user:{user_id}"

    host = request.client.host if request.client else None
    return f"ip:{host or 'anonymous'}"


async def rate_limit_dependency(
    request: Request,
    action: str = "api",
) -> None:
    """
    FastAPI dependency for rate limiting.

    Raises:
        RateLimitError: when the identifier has exhausted its window.
    """
    result = await RateLimiter.check_rate_limit(_identify(request), action)

    if not result["allowed"]:
        raise RateLimitError(
            reset_in=result["reset_in"],
            limit=settings.RATE_LIMIT_MAX_REQUESTS,
            remaining=result["remaining"],
        )


def create_rate_limit_dependency(action: str = "api"):
    """
    Factory for rate limit dependencies.

    Usage:
        @app.get("/endpoint", dependencies=[Depends(create_rate_limit_dependency("api"))])
        async def endpoint():
            ...
    """
    async def dependency(request: Request) -> None:
        await rate_limit_dependency(request, action)

    return dependency


# Shared dependency instance mounted on every router
rate_limit = create_rate_limit_dependency("api")
