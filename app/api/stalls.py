"""
Wallet Ledger — Stall directory (public)
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.accounts import list_stalls
from app.db.database import get_db
from app.schemas.admin import StallOut

router = APIRouter(prefix="/stalls", tags=["stalls"])


@router.get("", response_model=list[StallOut])
async def get_stalls(db: AsyncSession = Depends(get_db)):
    """All stalls with their menus, ordered by stall id."""
    return await list_stalls(db)
