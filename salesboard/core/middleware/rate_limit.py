from __future__ import annotations

import logging
import time

from fastapi import Request
from fastapi.responses import JSONResponse
import redis
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware


_WINDOW_SECONDS = 60.0
_WRITE_METHODS = {"POST", "PUT", "PATCH", "DELETE"}
logger = logging.getLogger("salesboard.api.rate_limit")


class WriteRateLimitMiddleware(BaseHTTPMiddleware):
    """Sliding one-minute window on mutating requests, keyed by client address.

    Reads (leaderboard polling from TV screens) are never throttled. When
    Redis is unreachable the limiter lets requests through.
    """

    def __init__(self, app, *, enabled: bool, writes_per_minute: int, redis_url: str) -> None:
        super().__init__(app)
        self._enabled = enabled
        self._writes_per_minute = max(1, int(writes_per_minute))
        self._redis = redis.Redis.from_url(redis_url) if enabled else None

    async def dispatch(self, request: Request, call_next):
        if self._redis is None or request.method not in _WRITE_METHODS:
            return await call_next(request)

        client_ip = request.client.host if request.client is not None and request.client.host else "unknown"
        now = time.time()
        key = f"rate_limit:writes:{client_ip}"
        try:
            pipeline = self._redis.pipeline(transaction=True)
            pipeline.zadd(key, {str(now): now})
            pipeline.zremrangebyscore(key, 0, now - _WINDOW_SECONDS)
            pipeline.zcard(key)
            pipeline.expire(key, 120)
            _added, _removed, request_count, _expiry = pipeline.execute()
        except RedisError:
            logger.warning("rate_limit_redis_unavailable_fail_open")
            return await call_next(request)

        if int(request_count) > self._writes_per_minute:
            return JSONResponse(
                status_code=429,
                content={
                    "success": False,
                    "errors": [{"code": "rate_limit_exceeded", "message": "Rate limit exceeded", "details": {}}],
                    "meta": {"request_id": getattr(request.state, "request_id", None), "status_code": 429},
                },
            )
        return await call_next(request)
