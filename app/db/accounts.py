"""
Wallet Ledger — Accounts, stalls and read models

Plain reads and writes around the ledger: registration, PIN login, the stall
directory, and the order lists the UI polls.
"""
import logging
import re
import uuid
from decimal import Decimal
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import Conflict, Forbidden, InvalidRequest, NotFound, Unauthorized
from app.core.security import hash_pin_async, verify_pin_async
from app.db.ledger import find_user_for_auth, to_money
from app.models.stall import MenuItem, Stall, StallTokenCounter
from app.models.token import Token
from app.models.user import User

logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]{3,64}$")
PIN_PATTERN = re.compile(r"^\d{4}$")


# ─── Users ────────────────────────────────────────────────────────────────────

async def register_user(db: AsyncSession, username: str, pin: str) -> User:
    username = username.strip()
    if not USERNAME_PATTERN.match(username):
        raise InvalidRequest("Invalid username (letters, numbers, underscores, min 3 chars).")
    if not PIN_PATTERN.match(pin):
        raise InvalidRequest("PIN must be 4 digits.")

    if await find_user_for_auth(db, username) is not None:
        raise Conflict("Username already taken.")
    # Release the connection before the slow PIN hash
    await db.rollback()

    pin_hash = await hash_pin_async(pin)
    # uid is derived from the row id once it is assigned
    user = User(uid=str(uuid.uuid4()), username=username, pin_hash=pin_hash, balance=Decimal("0.00"))
    db.add(user)
    try:
        await db.flush()
        user.uid = f"UID_{user.id:04d}"
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict("Username already taken.")

    logger.info("Registered user=%s uid=%s", user.username, user.uid)
    return user


async def authenticate_user(db: AsyncSession, username: str, pin: str) -> User:
    result = await db.execute(
        select(User).where(func.lower(User.username) == username.strip().lower())
    )
    user: User | None = result.scalar_one_or_none()
    if user is not None:
        db.expunge(user)
    # Release the connection before the slow PIN check
    await db.rollback()

    if user is None:
        raise Unauthorized("No account found.")
    if user.blocked:
        raise Forbidden("Account blocked — contact admin.")
    if not await verify_pin_async(pin, user.pin_hash):
        raise Unauthorized("Incorrect PIN.")
    return user


async def get_balance(db: AsyncSession, username: str) -> Decimal:
    result = await db.execute(
        select(User.balance).where(func.lower(User.username) == username.strip().lower())
    )
    balance = result.scalar_one_or_none()
    if balance is None:
        raise NotFound("User not found.")
    return to_money(balance)


async def list_users(db: AsyncSession) -> list[User]:
    result = await db.execute(select(User).order_by(User.id))
    return list(result.scalars().all())


# ─── Stalls ───────────────────────────────────────────────────────────────────

async def create_stall(
    db: AsyncSession,
    stall_id: str,
    name: str,
    pin: str,
    menu: list[tuple[str, Decimal]],
) -> Stall:
    """
    Insert or refresh a stall and replace its menu. The token counter row is
    created once and never reset, so re-seeding keeps the sequence intact.
    """
    pin_hash = await hash_pin_async(pin)
    stall = await db.get(Stall, stall_id)
    if stall is None:
        stall = Stall(stall_id=stall_id, name=name, pin_hash=pin_hash)
        db.add(stall)
    else:
        stall.name = name
        stall.pin_hash = pin_hash

    if await db.get(StallTokenCounter, stall_id) is None:
        db.add(StallTokenCounter(stall_id=stall_id, last_token_no=0))

    await db.execute(delete(MenuItem).where(MenuItem.stall_id == stall_id))
    for item_name, price in menu:
        db.add(MenuItem(stall_id=stall_id, name=item_name, price=to_money(price)))

    await db.commit()
    return stall


async def authenticate_stall(db: AsyncSession, stall_id: str, stall_name: str, pin: str) -> Stall:
    result = await db.execute(
        select(Stall).where(
            func.lower(Stall.stall_id) == stall_id.strip().lower(),
            func.lower(Stall.name) == stall_name.strip().lower(),
        )
    )
    stall: Stall | None = result.scalar_one_or_none()
    if stall is not None:
        db.expunge(stall)
    await db.rollback()

    if stall is None:
        raise Unauthorized("No stall found — check ID, Name, and PIN.")
    if not await verify_pin_async(pin, stall.pin_hash):
        raise Unauthorized("Incorrect PIN.")
    return stall


async def list_stalls(db: AsyncSession) -> list[dict]:
    stalls = (await db.execute(select(Stall).order_by(Stall.stall_id))).scalars().all()
    items = (await db.execute(select(MenuItem).order_by(MenuItem.id))).scalars().all()

    menus: dict[str, list[MenuItem]] = {}
    for item in items:
        menus.setdefault(item.stall_id, []).append(item)

    return [
        {
            "stall_id": s.stall_id,
            "name": s.name,
            "menu_items": [
                {"id": i.id, "name": i.name, "price": to_money(i.price)}
                for i in menus.get(s.stall_id, [])
            ],
        }
        for s in stalls
    ]


# ─── Tokens ───────────────────────────────────────────────────────────────────

async def list_user_tokens(db: AsyncSession, username: str) -> list[Token]:
    result = await db.execute(
        select(Token).where(Token.username == username).order_by(Token.id.desc())
    )
    return list(result.scalars().all())


async def list_stall_tokens(db: AsyncSession, stall_id: str) -> list[Token]:
    result = await db.execute(
        select(Token).where(Token.stall_id == stall_id).order_by(Token.token_no.desc())
    )
    return list(result.scalars().all())


async def list_all_tokens(db: AsyncSession) -> list[Token]:
    result = await db.execute(select(Token).order_by(Token.id.desc()))
    return list(result.scalars().all())
