"""
Wallet Ledger — Admin and account schemas
"""
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field


class AmountRequest(BaseModel):
    amount: Decimal = Field(..., max_digits=12, decimal_places=2)


class UnblockRequest(BaseModel):
    new_pin: str = Field(..., min_length=4, max_length=4)


class BalanceResponse(BaseModel):
    username: str | None = None
    balance: Decimal


class UserOut(BaseModel):
    id: int
    uid: str
    username: str
    balance: Decimal
    blocked: bool
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class MenuItemOut(BaseModel):
    id: int
    name: str
    price: Decimal


class StallOut(BaseModel):
    stall_id: str
    name: str
    menu_items: list[MenuItemOut]
