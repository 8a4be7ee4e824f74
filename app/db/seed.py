"""
Wallet Ledger — Demo data

[CONFIG DATA] Three demo stalls with menus. Applied at startup when
SEED_DEMO_DATA is set; safe to run repeatedly.
"""
import logging
from decimal import Decimal
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.accounts import create_stall

logger = logging.getLogger(__name__)

DEMO_STALLS = [
    {
        "stall_id": "S101", "name": "Tasty Bites", "pin": "2134",
        "menu": [("Burger", "80"), ("Sandwich", "60"), ("French Fries", "40"), ("Cold Coffee", "50")],
    },
    {
        "stall_id": "S102", "name": "Spice Junction", "pin": "1234",
        "menu": [("Biryani", "120"), ("Paneer Roll", "90"), ("Lassi", "40"), ("Gulab Jamun", "30")],
    },
    {
        "stall_id": "S103", "name": "Sweet Treats", "pin": "4321",
        "menu": [("Ice Cream", "50"), ("Brownie", "60"), ("Waffles", "80"), ("Milkshake", "70")],
    },
]


async def seed_demo_stalls(db: AsyncSession) -> list[str]:
    seeded = []
    for stall in DEMO_STALLS:
        await create_stall(
            db,
            stall_id=stall["stall_id"],
            name=stall["name"],
            pin=stall["pin"],
            menu=[(name, Decimal(price)) for name, price in stall["menu"]],
        )
        seeded.append(stall["stall_id"])
    logger.info("Seeded demo stalls: %s", ", ".join(seeded))
    return seeded
