"""
Wallet Ledger — Admin API routes

Operator-only reads and balance overrides. Overrides bypass the ledger
transaction engine: no PIN, no row lock beyond the single UPDATE.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import current_admin
from app.db.accounts import list_all_tokens, list_users
from app.db.balance_admin import add_balance, block_user, set_balance, unblock_user, zero_balance
from app.db.database import get_db
from app.schemas.admin import AmountRequest, BalanceResponse, UnblockRequest, UserOut
from app.schemas.order import TokenOut

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(current_admin)])


@router.get("/users", response_model=list[UserOut])
async def get_users(db: AsyncSession = Depends(get_db)):
    return await list_users(db)


@router.get("/tokens", response_model=list[TokenOut])
async def get_tokens(db: AsyncSession = Depends(get_db)):
    return await list_all_tokens(db)


@router.post("/users/{username}/topup", response_model=BalanceResponse)
async def topup(username: str, payload: AmountRequest, db: AsyncSession = Depends(get_db)):
    new_balance = await add_balance(db, username, payload.amount)
    return BalanceResponse(username=username, balance=new_balance)


@router.post("/users/{username}/balance", response_model=BalanceResponse)
async def override_balance(username: str, payload: AmountRequest, db: AsyncSession = Depends(get_db)):
    new_balance = await set_balance(db, username, payload.amount)
    return BalanceResponse(username=username, balance=new_balance)


@router.post("/users/{username}/zero", response_model=BalanceResponse)
async def zero(username: str, db: AsyncSession = Depends(get_db)):
    new_balance = await zero_balance(db, username)
    return BalanceResponse(username=username, balance=new_balance)


@router.post("/users/{username}/block")
async def block(username: str, db: AsyncSession = Depends(get_db)):
    await block_user(db, username)
    return {"ok": True, "username": username, "blocked": True}


@router.post("/users/{username}/unblock")
async def unblock(username: str, payload: UnblockRequest, db: AsyncSession = Depends(get_db)):
    await unblock_user(db, username, payload.new_pin)
    return {"ok": True, "username": username, "blocked": False}
