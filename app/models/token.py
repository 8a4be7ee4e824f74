"""
Wallet Ledger — Token (order) model

[TRANSACTIONAL DATA] — append-only; rows are created by the ledger engine and
only their status changes afterwards.
"""
from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum
from typing import Any
from sqlalchemy import JSON, DateTime, Enum, Integer, Numeric, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column
from app.db.database import Base


class TokenStatus(str, PyEnum):
    PENDING = "Pending"
    SERVED = "Served"


class Token(Base):
    __tablename__ = "tokens"
    __table_args__ = (UniqueConstraint("stall_id", "token_no", name="uq_tokens_stall_token_no"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    token_no: Mapped[int] = mapped_column(Integer, nullable=False)
    stall_id: Mapped[str] = mapped_column(String(32), index=True, nullable=False)
    stall_name: Mapped[str] = mapped_column(String(255), nullable=False)
    username: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    # [{"name": str, "qty": int, "price": "80.00"}, ...] in cart order
    items: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[TokenStatus] = mapped_column(
        Enum(TokenStatus, name="token_status", values_callable=lambda e: [m.value for m in e]),
        default=TokenStatus.PENDING,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<Token stall={self.stall_id} no={self.token_no} status={self.status.value}>"
