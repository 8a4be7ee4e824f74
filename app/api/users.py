"""
Wallet Ledger — User self-service routes
"""
from typing import Any
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import current_user
from app.db.accounts import get_balance
from app.db.database import get_db
from app.schemas.admin import BalanceResponse

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/balance", response_model=BalanceResponse)
async def my_balance(claims: dict[str, Any] = Depends(current_user), db: AsyncSession = Depends(get_db)):
    balance = await get_balance(db, claims["username"])
    return BalanceResponse(username=claims["username"], balance=balance)
