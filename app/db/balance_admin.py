"""
Wallet Ledger — Administrative balance and account overrides

These are unconditional single-row writes for the operator role. They do not
go through the ledger transaction engine and take no lock beyond the UPDATE
itself.
"""
import logging
import re
from decimal import Decimal
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import InvalidRequest, NotFound
from app.core.security import hash_pin_async
from app.db.ledger import to_money
from app.models.user import User

logger = logging.getLogger(__name__)

PIN_PATTERN = re.compile(r"^\d{4}$")


def _by_username(username: str):
    return func.lower(User.username) == username.strip().lower()


async def _update_user(db: AsyncSession, username: str, **values) -> None:
    result = await db.execute(
        update(User).where(_by_username(username)).values(**values).execution_options(
            synchronize_session=False
        )
    )
    if result.rowcount == 0:
        await db.rollback()
        raise NotFound("User not found.")


async def _read_balance(db: AsyncSession, username: str) -> Decimal:
    result = await db.execute(select(User.balance).where(_by_username(username)))
    return to_money(result.scalar_one())


async def add_balance(db: AsyncSession, username: str, amount: Decimal) -> Decimal:
    amount = to_money(amount)
    if amount <= 0:
        raise InvalidRequest("Top-up amount must be positive.")
    await _update_user(db, username, balance=User.balance + amount)
    new_balance = await _read_balance(db, username)
    await db.commit()
    logger.info("Admin top-up: user=%s amount=%s new_balance=%s", username, amount, new_balance)
    return new_balance


async def set_balance(db: AsyncSession, username: str, amount: Decimal) -> Decimal:
    amount = to_money(amount)
    if amount < 0:
        raise InvalidRequest("Balance cannot be negative.")
    await _update_user(db, username, balance=amount)
    await db.commit()
    logger.info("Admin set balance: user=%s balance=%s", username, amount)
    return amount


async def zero_balance(db: AsyncSession, username: str) -> Decimal:
    return await set_balance(db, username, Decimal("0"))


async def block_user(db: AsyncSession, username: str) -> None:
    await _update_user(db, username, blocked=True)
    await db.commit()
    logger.info("Admin blocked user=%s", username)


async def unblock_user(db: AsyncSession, username: str, new_pin: str) -> None:
    """Unblocking always issues a fresh PIN."""
    if not PIN_PATTERN.match(new_pin or ""):
        raise InvalidRequest("PIN must be 4 digits.")
    pin_hash = await hash_pin_async(new_pin)
    await _update_user(db, username, blocked=False, pin_hash=pin_hash)
    await db.commit()
    logger.info("Admin unblocked user=%s", username)
