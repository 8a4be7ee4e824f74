"""
Wallet Ledger — Tokens API

User side:
  POST /tokens         place an order (PIN + balance debit + token number)
  GET  /tokens         own order history, newest first
Stall side:
  GET   /tokens/stall  live queue for the caller's stall
  PATCH /tokens/stall  toggle Pending <-> Served on one of the caller's orders
"""
from typing import Any
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import current_stall_owner, current_user
from app.db.accounts import list_stall_tokens, list_user_tokens
from app.db.database import get_db
from app.db.fulfillment import set_status
from app.db.ledger import place_order
from app.schemas.order import (
    PlaceOrderRequest,
    PlaceOrderResponse,
    StatusUpdateRequest,
    StatusUpdateResponse,
    TokenOut,
)

router = APIRouter(prefix="/tokens", tags=["tokens"])


@router.post("", response_model=PlaceOrderResponse)
async def create_token(
    payload: PlaceOrderRequest,
    claims: dict[str, Any] = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Place an order. Requires a user session (JWTAuthMiddleware + role guard).
    Send an Idempotency-Key header to make client retries safe.
    """
    placed = await place_order(
        db,
        username=claims["username"],
        stall_id=payload.stall_id,
        stall_name=payload.stall_name,
        items=payload.items,
        declared_total=payload.total,
        pin=payload.pin,
    )
    return PlaceOrderResponse(
        token_no=placed.token_no,
        new_balance=placed.new_balance,
        order_id=placed.order_id,
    )


@router.get("", response_model=list[TokenOut])
async def my_tokens(claims: dict[str, Any] = Depends(current_user), db: AsyncSession = Depends(get_db)):
    return await list_user_tokens(db, claims["username"])


@router.get("/stall", response_model=list[TokenOut])
async def stall_tokens(
    claims: dict[str, Any] = Depends(current_stall_owner),
    db: AsyncSession = Depends(get_db),
):
    return await list_stall_tokens(db, claims["stall_id"])


@router.patch("/stall", response_model=StatusUpdateResponse)
async def update_token_status(
    payload: StatusUpdateRequest,
    claims: dict[str, Any] = Depends(current_stall_owner),
    db: AsyncSession = Depends(get_db),
):
    token = await set_status(db, payload.token_id, claims["stall_id"], payload.status)
    return StatusUpdateResponse(id=token.id, token_no=token.token_no, status=token.status)
