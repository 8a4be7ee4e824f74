"""
Wallet Ledger — Stall-side order fulfilment
"""
import logging
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import InvalidRequest, NotFound
from app.models.token import Token, TokenStatus

logger = logging.getLogger(__name__)


async def set_status(db: AsyncSession, order_id: int, stall_id: str, new_status: TokenStatus | str) -> Token:
    """
    Toggle an order between Pending and Served.

    The lookup is scoped to the caller's stall, so an order owned by another
    stall is indistinguishable from a missing one. Setting the current status
    again is a no-op that still returns the order.
    """
    try:
        status = TokenStatus(new_status)
    except ValueError:
        raise InvalidRequest(f"Unknown status '{new_status}'.")

    result = await db.execute(
        select(Token).where(Token.id == order_id, Token.stall_id == stall_id)
    )
    token: Token | None = result.scalar_one_or_none()
    if token is None:
        raise NotFound("Token not found.")

    if token.status != status:
        token.status = status
        logger.info("Token %s/%d marked %s", stall_id, token.token_no, status.value)
    await db.commit()
    return token
