"""
Wallet Ledger — Auth schemas
"""
from decimal import Decimal
from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=64, examples=["alice_01"])
    pin: str = Field(..., min_length=4, max_length=4, examples=["1234"])


class RegisterResponse(BaseModel):
    ok: bool = True
    uid: str
    username: str


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=64)
    pin: str = Field(..., min_length=1, max_length=16)


class StallLoginRequest(BaseModel):
    stall_id: str = Field(..., min_length=1, max_length=32, examples=["S101"])
    stall_name: str = Field(..., min_length=1, max_length=255, examples=["Tasty Bites"])
    pin: str = Field(..., min_length=1, max_length=16)


class AdminLoginRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=64)
    password: str = Field(..., min_length=1, max_length=128)


class SessionResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    role: str


class UserSessionResponse(SessionResponse):
    uid: str
    username: str
    balance: Decimal


class StallSessionResponse(SessionResponse):
    stall_id: str
    stall_name: str


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    dependencies: dict[str, str]
