"""
Wallet Ledger — Role guards

JWTAuthMiddleware has already validated the session; these dependencies only
check that the caller holds the role a route needs.
"""
from typing import Any
from fastapi import HTTPException, Request, status

ROLE_USER = "user"
ROLE_STALL_OWNER = "stall_owner"
ROLE_ADMIN = "admin"


def _require_role(role: str):
    def dependency(request: Request) -> dict[str, Any]:
        claims = getattr(request.state, "user", None)
        if not claims or claims.get("role") != role:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Unauthorized",
                headers={"WWW-Authenticate": "Bearer"},
            )
        return claims

    return dependency


current_user = _require_role(ROLE_USER)
current_stall_owner = _require_role(ROLE_STALL_OWNER)
current_admin = _require_role(ROLE_ADMIN)
