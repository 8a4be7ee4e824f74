"""
Shared fixtures: a fresh SQLite file database per test, an in-memory Redis,
and an httpx client bound to the ASGI app (lifespan is not run; the fixtures
install the database and Redis on app.state instead).
"""
import os

os.environ.setdefault("PIN_HASH_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("ADMIN_USERNAME", "Admin")
os.environ.setdefault("ADMIN_PASSWORD", "test-admin-pass")
os.environ.setdefault("RATE_LIMIT_MAX_ATTEMPTS", "5")

from decimal import Decimal

import fakeredis
import httpx
import pytest_asyncio

from app.db.accounts import create_stall, register_user
from app.db.balance_admin import set_balance
from app.db.database import Database
from app.main import app

STALL_PIN = "2134"
USER_PIN = "1234"


@pytest_asyncio.fixture
async def database(tmp_path):
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}", pool_size=5, pool_timeout=30)
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def session(database):
    async with database.session_factory() as s:
        yield s


@pytest_asyncio.fixture
async def stalls(database):
    """S101 and S102 with small menus."""
    async with database.session_factory() as s:
        await create_stall(
            s, "S101", "Tasty Bites", STALL_PIN,
            [("Burger", Decimal("80")), ("French Fries", Decimal("40")), ("Cold Coffee", Decimal("50"))],
        )
        await create_stall(
            s, "S102", "Spice Junction", "1234",
            [("Biryani", Decimal("120")), ("Lassi", Decimal("40"))],
        )
    return ["S101", "S102"]


@pytest_asyncio.fixture
async def make_user(database):
    async def _make(username: str, balance: str = "100.00", pin: str = USER_PIN):
        async with database.session_factory() as s:
            user = await register_user(s, username, pin)
            await set_balance(s, username, Decimal(balance))
        return user

    return _make


@pytest_asyncio.fixture
async def redis():
    client = fakeredis.FakeAsyncRedis(decode_responses=True)
    yield client
    await client.aclose()


@pytest_asyncio.fixture
async def client(database, redis):
    app.state.database = database
    app.state.redis = redis
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest_asyncio.fixture
async def login(client):
    """Log a user in over HTTP and return Authorization headers."""

    async def _login(username: str, pin: str = USER_PIN) -> dict[str, str]:
        r = await client.post("/auth/login", json={"username": username, "pin": pin})
        assert r.status_code == 200, f"Login failed: {r.text}"
        return {"Authorization": f"Bearer {r.json()['access_token']}"}

    return _login
