"""
Rate Limiter Tests
==================

Tests for the Redis fixed-window limiter including:
- Window creation on first hit
- Rejection past the limit
- Recovery of counters that lost their TTL
- Fail-open when Redis is unreachable
"""

from types import SimpleNamespace
import uuid
from unittest.mock import AsyncMock, patch

import pytest

from app.core.errors import RateLimitError
from app.core.rate_limit import RateLimiter, _identify, rate_limit_dependency
from app.core.security import create_access_token


def _request(headers: dict | None = None, host: str = "10.0.0.1"):
    return SimpleNamespace(
        headers=headers or {},
        client=SimpleNamespace(host=host),
    )


class TestCheckRateLimit:
    """Tests for RateLimiter.check_rate_limit"""

    @pytest.mark.asyncio
    async def test_first_hit_opens_window(self):
        mock_client = AsyncMock()
        mock_client.incr.return_value = 1

        with patch("app.core.rate_limit.get_redis", return_value=mock_client):
            result = await RateLimiter.check_rate_limit(
                "ip:1.2.3.4", max_requests=10, window_seconds=30
            )

        assert result == {"allowed": True, "remaining": 9, "reset_in": 30}
        mock_client.incr.assert_awaited_once_with("ratelimit:api:ip:1.2.3.4")
        mock_client.expire.assert_awaited_once_with("ratelimit:api:ip:1.2.3.4", 30)

    @pytest.mark.asyncio
    async def test_over_limit_is_rejected_with_remaining_ttl(self):
        mock_client = AsyncMock()
        mock_client.incr.return_value = 11
        mock_client.ttl.return_value = 12

        with patch("app.core.rate_limit.get_redis", return_value=mock_client):
            result = await RateLimiter.check_rate_limit(
                "user:abc", max_requests=10, window_seconds=30
            )

        assert result == {"allowed": False, "remaining": 0, "reset_in": 12}
        mock_client.expire.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_counter_without_ttl_is_given_one(self):
        mock_client = AsyncMock()
        mock_client.incr.return_value = 4
        mock_client.ttl.return_value = -1

        with patch("app.core.rate_limit.get_redis", return_value=mock_client):
            result = await RateLimiter.check_rate_limit(
                "user:abc", max_requests=10, window_seconds=30
            )

        assert result["allowed"] is True
        assert result["reset_in"] == 30
        mock_client.expire.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_redis_failure_fails_open(self):
        with patch(
            "app.core.rate_limit.get_redis",
            side_effect=ConnectionError("redis down"),
        ):
            result = await RateLimiter.check_rate_limit(
                "user:abc", max_requests=10, window_seconds=30
            )

        assert result["allowed"] is True
        assert result["remaining"] == 10


class TestIdentify:
    """Tests for request identification"""

    def test_valid_bearer_token_identifies_user(self):
        user_id = uuid.uuid4()
        token = create_access_token({"sub": str(user_id)})

        assert _identify(_request({"Authorization": f"Bearer {token}"})) == f"user:{user_id}"

    def test_invalid_token_falls_back_to_ip(self):
        request = _request({"Authorization": "Bearer not-a-jwt"}, host="192.168.1.5")

        assert _identify(request) == "ip:192.168.1.5"

    def test_anonymous_request_uses_ip(self):
        assert _identify(_request(host="127.0.0.1")) == "ip:127.0.0.1"


class TestRateLimitDependency:
    """Tests for rate_limit_dependency"""

    @pytest.mark.asyncio
    async def test_raises_with_retry_after(self):
        with patch.object(
            RateLimiter,
            "check_rate_limit",
            AsyncMock(return_value={"allowed": False, "remaining": 0, "reset_in": 17}),
        ):
            with pytest.raises(RateLimitError) as exc_info:
                await rate_limit_dependency(_request())

        assert exc_info.value.status_code == 429
        assert exc_info.value.headers["Retry-After"] == "17"

    @pytest.mark.asyncio
    async def test_allowed_request_passes(self):
        with patch.object(
            RateLimiter,
            "check_rate_limit",
            AsyncMock(return_value={"allowed": True, "remaining": 5, "reset_in": 20}),
        ):
            assert await rate_limit_dependency(_request()) is None
