"""
Wallet Ledger — Idempotency Key Middleware

Guards order placement against double charges from client retries:
  - Replay hit    → return the stored success, the ledger is not touched
  - Key in flight → 409, the first request is still being processed
  - Body mismatch → 422, the key was already used for a different order
  - Miss          → claim the key (SET NX), run the handler, store a 2xx reply

Keys are scoped to the authenticated subject, so two users can never collide
on the same Idempotency-Key value. Each entry carries a fingerprint of the
request body. Only successful placements are stored; any other reply releases
the claim, so a retry after a top-up or a corrected PIN runs again.
"""
import hashlib
import json
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import get_settings
from app.core.redis_client import get_redis

settings = get_settings()

IDEMPOTENCY_PREFIX = "idempotent:"
IDEMPOTENCY_METHODS = {"POST"}
IDEMPOTENCY_PATHS = {"/tokens", "/tokens/"}
IN_FLIGHT = "in_flight"


def request_fingerprint(body: bytes) -> str:
    """sha256 of the JSON body in canonical form (raw bytes if it is not JSON)."""
    try:
        canonical = json.dumps(json.loads(body), sort_keys=True, separators=(",", ":")).encode()
    except ValueError:
        canonical = body
    return hashlib.sha256(canonical).hexdigest()


class IdempotencyMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method not in IDEMPOTENCY_METHODS or request.url.path not in IDEMPOTENCY_PATHS:
            return await call_next(request)

        idem_key = request.headers.get("Idempotency-Key")
        claims = getattr(request.state, "user", None)
        if not idem_key or not claims:
            return await call_next(request)

        redis = get_redis(request)
        cache_key = f"{IDEMPOTENCY_PREFIX}{claims.get('sub')}:{idem_key}"
        # Starlette caches the body, so the route can still read it
        fingerprint = request_fingerprint(await request.body())

        claimed = await redis.set(
            cache_key,
            json.dumps({"state": IN_FLIGHT, "fingerprint": fingerprint}),
            nx=True,
            ex=settings.IDEMPOTENCY_LOCK_TTL_SECONDS,
        )
        if not claimed:
            return await self._replay(await redis.get(cache_key), fingerprint)

        try:
            response = await call_next(request)

            body_bytes = b""
            async for chunk in response.body_iterator:
                body_bytes += chunk
        except Exception:
            await redis.delete(cache_key)
            raise

        if 200 <= response.status_code < 300:
            await redis.setex(
                cache_key,
                settings.IDEMPOTENCY_KEY_TTL_SECONDS,
                json.dumps({
                    "fingerprint": fingerprint,
                    "body": json.loads(body_bytes),
                    "status_code": response.status_code,
                }),
            )
        else:
            await redis.delete(cache_key)

        return Response(
            content=body_bytes,
            status_code=response.status_code,
            media_type=response.media_type,
            headers=dict(response.headers),
        )

    @staticmethod
    async def _replay(cached: str | None, fingerprint: str) -> Response:
        data = json.loads(cached) if cached else None
        if data is not None and data["fingerprint"] != fingerprint:
            return JSONResponse(
                status_code=422,
                content={"detail": "Idempotency-Key was already used with a different request body."},
            )
        if data is None or data.get("state") == IN_FLIGHT:
            return JSONResponse(
                status_code=409,
                content={"detail": "A request with this Idempotency-Key is already in progress."},
            )
        return JSONResponse(
            content=data["body"],
            status_code=data["status_code"],
            headers={"X-Idempotency-Replay": "true"},
        )
