"""
Wallet Ledger — Stall, menu and token counter models

[CONFIG DATA] stalls, menu_items — seeded, not touched by ordering.
[TRANSACTIONAL DATA] stall_token_counters — advanced inside the ledger transaction.
"""
from datetime import datetime
from decimal import Decimal
from sqlalchemy import CheckConstraint, DateTime, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column
from app.db.database import Base


class Stall(Base):
    __tablename__ = "stalls"

    stall_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    pin_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class MenuItem(Base):
    """
    Looked up by name at order time. Orders snapshot name and price, so editing
    a menu item never changes a placed order.
    """
    __tablename__ = "menu_items"
    __table_args__ = (CheckConstraint("price > 0", name="ck_menu_items_price_positive"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    stall_id: Mapped[str] = mapped_column(String(32), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)


class StallTokenCounter(Base):
    """
    One row per stall holding the last issued token number.
    Locked FOR UPDATE and incremented in the same transaction that debits the
    buyer, so a rolled-back order never consumes a number.
    """
    __tablename__ = "stall_token_counters"
    __table_args__ = (CheckConstraint("last_token_no >= 0", name="ck_counter_non_negative"),)

    stall_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    last_token_no: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
