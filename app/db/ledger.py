"""
Wallet Ledger — Order placement transaction

place_order is the only code path that debits a balance for an order and the
only one that issues token numbers. The flow:

  pre-checks (no lock held)
    - recompute the cart total and compare it with the declared total
    - resolve the user (absent / blocked) and the stall
    - release the read connection, then verify the PIN (slow hash)

  atomic section (one transaction)
    1. lock this user's balance row       SELECT ... FOR UPDATE
    2. re-read the balance under the lock
    3. reject if balance < total          InsufficientFunds
    4. debit
    5. lock + bump the stall's counter    SELECT ... FOR UPDATE
    6. insert the token row (Pending, snapshotted items)
    7. commit

Locks are always taken user row first, stall counter second, so two ledger
transactions can never wait on each other in a cycle. Nothing here retries:
a retried debit without an idempotency key could charge twice.
"""
import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from prometheus_client import Counter
from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import (
    Forbidden,
    InsufficientFunds,
    InvalidRequest,
    LedgerError,
    NotFound,
    OrderFailed,
    Unauthorized,
)
from app.core.security import verify_pin_async
from app.models.stall import Stall, StallTokenCounter
from app.models.token import Token, TokenStatus
from app.models.user import User
from app.schemas.order import OrderLine

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")

ORDERS_PLACED = Counter(
    "ledger_orders_total",
    "Order placement attempts by outcome.",
    ["outcome"],
)


@dataclass(frozen=True)
class UserAuth:
    id: int
    username: str
    pin_hash: str
    blocked: bool


@dataclass(frozen=True)
class PlacedOrder:
    order_id: int
    token_no: int
    new_balance: Decimal


def to_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENTS)


def order_total(items: Iterable[OrderLine]) -> Decimal:
    return to_money(sum((line.subtotal for line in items), Decimal("0")))


def snapshot_items(items: Iterable[OrderLine]) -> list[dict]:
    return [
        {"name": line.name, "qty": line.qty, "price": str(to_money(line.price))}
        for line in items
    ]


# ─── Pre-check reads ──────────────────────────────────────────────────────────

async def find_user_for_auth(db: AsyncSession, username: str) -> UserAuth | None:
    result = await db.execute(
        select(User.id, User.username, User.pin_hash, User.blocked).where(
            func.lower(User.username) == username.strip().lower()
        )
    )
    row = result.one_or_none()
    if row is None:
        return None
    return UserAuth(id=row.id, username=row.username, pin_hash=row.pin_hash, blocked=row.blocked)


async def find_stall_name(db: AsyncSession, stall_id: str) -> str | None:
    result = await db.execute(select(Stall.name).where(Stall.stall_id == stall_id))
    return result.scalar_one_or_none()


# ─── Transactional primitives (call only inside an open transaction) ──────────

async def lock_and_read_balance(db: AsyncSession, user_id: int) -> Decimal:
    result = await db.execute(
        select(User.balance).where(User.id == user_id).with_for_update()
    )
    balance = result.scalar_one_or_none()
    if balance is None:
        raise NotFound("User not found.")
    return to_money(balance)


async def debit(db: AsyncSession, user_id: int, balance: Decimal, amount: Decimal) -> Decimal:
    """Write balance - amount. The caller holds the row lock and has read `balance` under it."""
    new_balance = to_money(balance - amount)
    await db.execute(update(User).where(User.id == user_id).values(balance=new_balance))
    return new_balance


async def next_token_no(db: AsyncSession, stall_id: str) -> int:
    result = await db.execute(
        select(StallTokenCounter)
        .where(StallTokenCounter.stall_id == stall_id)
        .with_for_update()
    )
    counter = result.scalar_one_or_none()
    if counter is None:
        raise NotFound("Stall not found.")
    counter.last_token_no += 1
    await db.flush()
    return counter.last_token_no


async def insert_order(
    db: AsyncSession,
    *,
    token_no: int,
    stall_id: str,
    stall_name: str,
    username: str,
    items: list[OrderLine],
    total: Decimal,
) -> Token:
    token = Token(
        token_no=token_no,
        stall_id=stall_id,
        stall_name=stall_name,
        username=username,
        items=snapshot_items(items),
        total=total,
        status=TokenStatus.PENDING,
    )
    db.add(token)
    await db.flush()
    return token


# ─── Engine ───────────────────────────────────────────────────────────────────

async def place_order(
    db: AsyncSession,
    *,
    username: str,
    stall_id: str,
    stall_name: str,
    items: list[OrderLine],
    declared_total: Decimal,
    pin: str,
) -> PlacedOrder:
    try:
        placed = await _place_order(
            db,
            username=username,
            stall_id=stall_id,
            stall_name=stall_name,
            items=items,
            declared_total=declared_total,
            pin=pin,
        )
    except LedgerError as exc:
        ORDERS_PLACED.labels(outcome=type(exc).__name__).inc()
        raise
    ORDERS_PLACED.labels(outcome="placed").inc()
    return placed


async def _place_order(
    db: AsyncSession,
    *,
    username: str,
    stall_id: str,
    stall_name: str,
    items: list[OrderLine],
    declared_total: Decimal,
    pin: str,
) -> PlacedOrder:
    if not items:
        raise InvalidRequest("Order has no items.")
    total = order_total(items)
    if to_money(declared_total) != total:
        raise InvalidRequest("Order total does not match the items.")

    try:
        user = await find_user_for_auth(db, username)
        registered_stall_name = await find_stall_name(db, stall_id)
        # Return the connection to the pool before the slow PIN check
        await db.rollback()
    except (SQLAlchemyError, OSError, asyncio.TimeoutError) as exc:
        logger.exception("Order pre-check failed for user=%s stall=%s", username, stall_id)
        raise OrderFailed() from exc

    if user is None:
        raise NotFound("User not found.")
    if user.blocked:
        raise Forbidden("Account blocked — contact admin.")
    if registered_stall_name is None:
        raise NotFound("Stall not found.")

    if not await verify_pin_async(pin, user.pin_hash):
        raise Unauthorized("Wrong PIN.")

    try:
        async with db.begin():
            balance = await lock_and_read_balance(db, user.id)
            if balance < total:
                raise InsufficientFunds(balance)
            new_balance = await debit(db, user.id, balance, total)
            token_no = await next_token_no(db, stall_id)
            token = await insert_order(
                db,
                token_no=token_no,
                stall_id=stall_id,
                stall_name=registered_stall_name or stall_name,
                username=user.username,
                items=items,
                total=total,
            )
            order_id = token.id
    except LedgerError:
        raise
    except (SQLAlchemyError, OSError, asyncio.TimeoutError) as exc:
        logger.exception(
            "Order transaction failed for user=%s stall=%s total=%s", user.username, stall_id, total
        )
        raise OrderFailed() from exc

    logger.info(
        "Order placed: user=%s stall=%s token_no=%d total=%s new_balance=%s",
        user.username, stall_id, token_no, total, new_balance,
    )
    return PlacedOrder(order_id=order_id, token_no=token_no, new_balance=new_balance)
