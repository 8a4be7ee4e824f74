"""
Wallet Ledger — Order / token schemas
"""
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field

from app.models.token import TokenStatus


class OrderLine(BaseModel):
    """One cart line as submitted, and as snapshotted onto the token."""
    name: str = Field(..., min_length=1, max_length=255, examples=["Burger"])
    qty: int = Field(..., ge=1, le=100)
    price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.qty


class PlaceOrderRequest(BaseModel):
    stall_id: str = Field(..., min_length=1, max_length=32, examples=["S101"])
    stall_name: str = Field("", max_length=255)
    items: list[OrderLine] = Field(..., min_length=1, max_length=50)
    total: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    pin: str = Field(..., min_length=1, max_length=16)


class PlaceOrderResponse(BaseModel):
    token_no: int
    new_balance: Decimal
    order_id: int


class TokenOut(BaseModel):
    id: int
    token_no: int
    stall_id: str
    stall_name: str
    username: str
    items: list[OrderLine]
    total: Decimal
    status: TokenStatus
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class StatusUpdateRequest(BaseModel):
    token_id: int
    status: TokenStatus


class StatusUpdateResponse(BaseModel):
    id: int
    token_no: int
    status: TokenStatus
