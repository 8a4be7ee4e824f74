"""
Wallet Ledger — Sliding window rate limiter for PIN login (Redis-backed)

A 4-digit PIN has only 10,000 values, so login attempts are capped per
username. Sorted sets (ZADD/ZREMRANGEBYSCORE/ZCARD) give a true sliding window.
"""
import json
import time
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import get_settings
from app.core.redis_client import get_redis

settings = get_settings()

RATE_LIMIT_PREFIX = "ratelimit:"
RATE_LIMITED_PATHS = {"/auth/login", "/auth/login/"}


class SlidingWindowRateLimiter(BaseHTTPMiddleware):
    """
    Applies ONLY to POST /auth/login.
    Key is the lower-cased username from the request body; falls back to the
    client IP when the body cannot be parsed.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method != "POST" or request.url.path not in RATE_LIMITED_PATHS:
            return await call_next(request)

        # Starlette caches the body, so the route can still read it
        body = await request.body()
        client_host = request.client.host if request.client else "unknown"
        try:
            data = json.loads(body)
            tracking_key = str(data.get("username") or "").strip().lower() or client_host
        except (ValueError, AttributeError):
            tracking_key = client_host

        redis = get_redis(request)
        key = f"{RATE_LIMIT_PREFIX}{tracking_key}"
        now = time.time()
        window_start = now - settings.RATE_LIMIT_WINDOW_SECONDS

        pipe = redis.pipeline()
        # Remove entries outside the window
        pipe.zremrangebyscore(key, "-inf", window_start)
        # Count current attempts in window
        pipe.zcard(key)
        # Add this attempt
        pipe.zadd(key, {str(now): now})
        pipe.expire(key, settings.RATE_LIMIT_WINDOW_SECONDS + 1)
        results = await pipe.execute()

        attempt_count = results[1]  # count before this attempt

        if attempt_count >= settings.RATE_LIMIT_MAX_ATTEMPTS:
            return JSONResponse(
                status_code=429,
                content={
                    "detail": (
                        f"Too many login attempts. Maximum {settings.RATE_LIMIT_MAX_ATTEMPTS} "
                        f"attempts per {settings.RATE_LIMIT_WINDOW_SECONDS} seconds."
                    ),
                    "retry_after_seconds": settings.RATE_LIMIT_WINDOW_SECONDS,
                },
                headers={"Retry-After": str(settings.RATE_LIMIT_WINDOW_SECONDS)},
            )

        return await call_next(request)
