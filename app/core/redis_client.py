"""
Wallet Ledger — Redis client

The client is built once in the application lifespan and kept on app.state;
middlewares and routes fetch it from there instead of a module-level global.
"""
import redis.asyncio as aioredis
from starlette.requests import HTTPConnection

from app.core.config import Settings


def create_redis(settings: Settings) -> aioredis.Redis:
    return aioredis.from_url(
        settings.redis_url,
        decode_responses=True,
        socket_connect_timeout=settings.HEALTH_CHECK_TIMEOUT,
    )


def get_redis(conn: HTTPConnection) -> aioredis.Redis:
    return conn.app.state.redis


async def close_redis(client: aioredis.Redis | None):
    if client is not None:
        await client.aclose()
