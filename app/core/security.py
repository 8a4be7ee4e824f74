"""
Wallet Ledger — PIN hashing and JWT session utilities
"""
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import jwt
from passlib.context import CryptContext
from starlette.concurrency import run_in_threadpool

from app.core.config import get_settings

settings = get_settings()

pin_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.PIN_HASH_ROUNDS,
)


# ─── PIN Hashing ──────────────────────────────────────────────────────────────

def hash_pin(pin: str) -> str:
    return pin_context.hash(pin)


def verify_pin(pin: str, pin_hash: str) -> bool:
    """Slow, side-effect-free comparison. A malformed hash counts as a mismatch."""
    try:
        return pin_context.verify(pin, pin_hash)
    except ValueError:
        return False


async def hash_pin_async(pin: str) -> str:
    return await run_in_threadpool(hash_pin, pin)


async def verify_pin_async(pin: str, pin_hash: str) -> bool:
    # bcrypt is CPU-bound; keep it off the event loop
    return await run_in_threadpool(verify_pin, pin, pin_hash)


# ─── JWT Sessions ─────────────────────────────────────────────────────────────

def create_session_token(data: dict[str, Any]) -> str:
    payload = data.copy()
    expire = datetime.now(tz=timezone.utc) + timedelta(
        minutes=settings.JWT_SESSION_EXPIRE_MINUTES
    )
    payload.update({"exp": expire, "iat": datetime.now(tz=timezone.utc), "jti": str(uuid.uuid4())})
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict[str, Any]:
    """Decode and validate a JWT. Raises JWTError on failure."""
    return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
