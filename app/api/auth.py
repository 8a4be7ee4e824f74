"""
Wallet Ledger — Auth API routes
"""
import secrets
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import ROLE_ADMIN, ROLE_STALL_OWNER, ROLE_USER
from app.core.config import get_settings
from app.core.security import create_session_token
from app.db.accounts import authenticate_stall, authenticate_user, register_user
from app.db.database import get_db
from app.db.ledger import to_money
from app.schemas.auth import (
    AdminLoginRequest,
    LoginRequest,
    RegisterRequest,
    RegisterResponse,
    SessionResponse,
    StallLoginRequest,
    StallSessionResponse,
    UserSessionResponse,
)

settings = get_settings()
router = APIRouter(prefix="/auth", tags=["auth"])

SESSION_SECONDS = settings.JWT_SESSION_EXPIRE_MINUTES * 60


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, db: AsyncSession = Depends(get_db)):
    """Create a student wallet with a zero balance. [CONFIG DATA]"""
    user = await register_user(db, payload.username, payload.pin)
    return RegisterResponse(uid=user.uid, username=user.username)


@router.post("/login", response_model=UserSessionResponse)
async def login(payload: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Validate username + PIN and issue a user session."""
    user = await authenticate_user(db, payload.username, payload.pin)
    token = create_session_token({"sub": user.uid, "role": ROLE_USER, "username": user.username})
    return UserSessionResponse(
        access_token=token,
        expires_in=SESSION_SECONDS,
        role=ROLE_USER,
        uid=user.uid,
        username=user.username,
        balance=to_money(user.balance),
    )


@router.post("/stall-login", response_model=StallSessionResponse)
async def stall_login(payload: StallLoginRequest, db: AsyncSession = Depends(get_db)):
    """Validate stall id + name + PIN and issue a stall-owner session."""
    stall = await authenticate_stall(db, payload.stall_id, payload.stall_name, payload.pin)
    token = create_session_token(
        {"sub": f"stall:{stall.stall_id}", "role": ROLE_STALL_OWNER,
         "stall_id": stall.stall_id, "stall_name": stall.name}
    )
    return StallSessionResponse(
        access_token=token,
        expires_in=SESSION_SECONDS,
        role=ROLE_STALL_OWNER,
        stall_id=stall.stall_id,
        stall_name=stall.name,
    )


@router.post("/admin-login", response_model=SessionResponse)
async def admin_login(payload: AdminLoginRequest):
    """Operator login against the configured admin credentials."""
    username_ok = secrets.compare_digest(payload.username.strip().encode(), settings.ADMIN_USERNAME.encode())
    password_ok = secrets.compare_digest(payload.password.encode(), settings.ADMIN_PASSWORD.encode())
    if not (username_ok and password_ok):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    token = create_session_token({"sub": f"admin:{settings.ADMIN_USERNAME}", "role": ROLE_ADMIN,
                                  "username": settings.ADMIN_USERNAME})
    return SessionResponse(access_token=token, expires_in=SESSION_SECONDS, role=ROLE_ADMIN)
