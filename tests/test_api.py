"""
HTTP API tests (in-process ASGI)

Covers:
  1. Session enforcement and role guards
  2. Order placement over HTTP, including InsufficientFunds payload
  3. Idempotency-Key replay does not charge twice
  4. Stall queue and status toggle, cross-stall isolation
  5. Admin overrides
  6. Login rate limiting
"""
import asyncio
import json
import uuid
from decimal import Decimal

import pytest

from app import main
from app.core.config import get_settings
from app.core.security import decode_token
from app.middleware.idempotency import request_fingerprint
from tests.conftest import STALL_PIN

BURGER_ORDER = {
    "stall_id": "S101",
    "stall_name": "Tasty Bites",
    "items": [{"name": "Burger", "qty": 1, "price": 80}, {"name": "French Fries", "qty": 1, "price": 20}],
    "total": 100,
    "pin": "1234",
}


async def stall_headers(client, stall_id="S101", stall_name="Tasty Bites", pin=STALL_PIN):
    r = await client.post(
        "/auth/stall-login", json={"stall_id": stall_id, "stall_name": stall_name, "pin": pin}
    )
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


async def admin_headers(client):
    r = await client.post("/auth/admin-login", json={"username": "Admin", "password": "test-admin-pass"})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


# ─── Test 1: Session enforcement ──────────────────────────────────────────────
@pytest.mark.asyncio
async def test_public_routes_need_no_session(client, stalls):
    r = await client.get("/stalls")
    assert r.status_code == 200
    body = r.json()
    assert [s["stall_id"] for s in body] == ["S101", "S102"]
    assert body[0]["menu_items"][0] == {"id": 1, "name": "Burger", "price": "80.00"}

    r = await client.get("/")
    assert r.json()["service"] == "wallet-ledger"


@pytest.mark.asyncio
async def test_place_order_requires_session(client, stalls):
    r = await client.post("/tokens", json=BURGER_ORDER)
    assert r.status_code == 401

    r = await client.post("/tokens", json=BURGER_ORDER, headers={"Authorization": "Bearer not.a.jwt"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_stall_session_cannot_place_orders(client, stalls):
    headers = await stall_headers(client)
    r = await client.post("/tokens", json=BURGER_ORDER, headers=headers)
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_register_and_login(client):
    r = await client.post("/auth/register", json={"username": "newbie", "pin": "1234"})
    assert r.status_code == 201
    assert r.json()["uid"] == "UID_0001"

    r = await client.post("/auth/register", json={"username": "NEWBIE", "pin": "1234"})
    assert r.status_code == 409

    r = await client.post("/auth/login", json={"username": "newbie", "pin": "1234"})
    assert r.status_code == 200
    body = r.json()
    assert body["role"] == "user"
    assert Decimal(body["balance"]) == Decimal("0")


# ─── Test 2: Order placement ──────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_order_then_retry_with_empty_wallet(client, stalls, make_user, login):
    await make_user("alice", balance="100.00")
    headers = await login("alice")

    r = await client.post("/tokens", json=BURGER_ORDER, headers=headers)
    assert r.status_code == 200, r.text
    assert r.json()["token_no"] == 1
    assert Decimal(r.json()["new_balance"]) == Decimal("0")

    r = await client.post("/tokens", json=BURGER_ORDER, headers=headers)
    assert r.status_code == 400
    assert r.json() == {"detail": "Insufficient balance.", "balance": "0.00"}

    r = await client.get("/users/balance", headers=headers)
    assert Decimal(r.json()["balance"]) == Decimal("0")

    r = await client.get("/tokens", headers=headers)
    history = r.json()
    assert len(history) == 1
    assert history[0]["status"] == "Pending"
    assert history[0]["items"][0] == {"name": "Burger", "qty": 1, "price": "80.00"}


@pytest.mark.asyncio
async def test_tampered_total_and_wrong_pin(client, stalls, make_user, login):
    await make_user("bob")
    headers = await login("bob")

    r = await client.post("/tokens", json={**BURGER_ORDER, "total": 1}, headers=headers)
    assert r.status_code == 400
    assert r.json()["detail"] == "Order total does not match the items."

    r = await client.post("/tokens", json={**BURGER_ORDER, "pin": "0000"}, headers=headers)
    assert r.status_code == 401
    assert r.json()["detail"] == "Wrong PIN."


@pytest.mark.asyncio
async def test_concurrent_http_orders_at_same_stall(client, stalls, make_user, login):
    await make_user("cara")
    await make_user("dean")
    h1 = await login("cara")
    h2 = await login("dean")

    r1, r2 = await asyncio.gather(
        client.post("/tokens", json=BURGER_ORDER, headers=h1),
        client.post("/tokens", json=BURGER_ORDER, headers=h2),
    )
    assert {r1.json()["token_no"], r2.json()["token_no"]} == {1, 2}


# ─── Test 3: Idempotency key ──────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_idempotency_key_replays_without_second_debit(client, stalls, make_user, login):
    await make_user("erin", balance="300.00")
    headers = {**(await login("erin")), "Idempotency-Key": str(uuid.uuid4())}

    first = await client.post("/tokens", json=BURGER_ORDER, headers=headers)
    second = await client.post("/tokens", json=BURGER_ORDER, headers=headers)

    assert first.status_code == 200
    assert second.status_code == 200
    assert second.headers.get("X-Idempotency-Replay") == "true"
    assert second.json() == first.json()

    r = await client.get("/users/balance", headers=headers)
    assert Decimal(r.json()["balance"]) == Decimal("200")


@pytest.mark.asyncio
async def test_idempotency_key_in_flight_is_rejected(client, stalls, make_user, login, redis):
    await make_user("fred")
    headers = await login("fred")
    r = await client.get("/tokens", headers=headers)
    assert r.status_code == 200

    idem_key = str(uuid.uuid4())
    # Simulate a first request still holding the key
    sub = decode_token(headers["Authorization"].split(" ", 1)[1])["sub"]
    marker = {"state": "in_flight", "fingerprint": request_fingerprint(json.dumps(BURGER_ORDER).encode())}
    await redis.set(f"idempotent:{sub}:{idem_key}", json.dumps(marker), ex=30)

    r = await client.post("/tokens", json=BURGER_ORDER, headers={**headers, "Idempotency-Key": idem_key})
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_failed_order_releases_idempotency_key_for_corrected_retry(client, stalls, make_user, login):
    await make_user("fern")
    headers = {**(await login("fern")), "Idempotency-Key": str(uuid.uuid4())}

    r = await client.post("/tokens", json={**BURGER_ORDER, "pin": "9999"}, headers=headers)
    assert r.status_code == 401

    r = await client.post("/tokens", json=BURGER_ORDER, headers=headers)
    assert r.status_code == 200, r.text
    assert "X-Idempotency-Replay" not in r.headers
    assert r.json()["token_no"] == 1


@pytest.mark.asyncio
async def test_insufficient_funds_retry_succeeds_after_topup(client, stalls, make_user, login):
    await make_user("finn", balance="10.00")
    headers = {**(await login("finn")), "Idempotency-Key": str(uuid.uuid4())}

    r = await client.post("/tokens", json=BURGER_ORDER, headers=headers)
    assert r.status_code == 400
    assert r.json()["balance"] == "10.00"

    admin = await admin_headers(client)
    r = await client.post("/admin/users/finn/topup", json={"amount": "200.00"}, headers=admin)
    assert r.status_code == 200

    r = await client.post("/tokens", json=BURGER_ORDER, headers=headers)
    assert r.status_code == 200, r.text
    assert Decimal(r.json()["new_balance"]) == Decimal("110.00")


@pytest.mark.asyncio
async def test_validation_error_is_not_replayed(client, stalls, make_user, login):
    await make_user("flo")
    headers = {**(await login("flo")), "Idempotency-Key": str(uuid.uuid4())}

    r = await client.post("/tokens", json={**BURGER_ORDER, "items": []}, headers=headers)
    assert r.status_code == 422

    r = await client.post("/tokens", json=BURGER_ORDER, headers=headers)
    assert r.status_code == 200, r.text


@pytest.mark.asyncio
async def test_reused_key_with_different_cart_is_rejected(client, stalls, make_user, login):
    await make_user("fizz", balance="300.00")
    headers = {**(await login("fizz")), "Idempotency-Key": str(uuid.uuid4())}

    r = await client.post("/tokens", json=BURGER_ORDER, headers=headers)
    assert r.status_code == 200

    other_cart = {
        **BURGER_ORDER,
        "items": [{"name": "Cold Coffee", "qty": 2, "price": 50}],
    }
    r = await client.post("/tokens", json=other_cart, headers=headers)
    assert r.status_code == 422
    assert "X-Idempotency-Replay" not in r.headers

    r = await client.get("/users/balance", headers=headers)
    assert Decimal(r.json()["balance"]) == Decimal("200")


# ─── Test 4: Stall queue ──────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_stall_queue_and_toggle(client, stalls, make_user, login):
    await make_user("gail", balance="500.00")
    user_headers = await login("gail")
    for _ in range(2):
        r = await client.post("/tokens", json=BURGER_ORDER, headers=user_headers)
        assert r.status_code == 200

    s101 = await stall_headers(client)
    queue = (await client.get("/tokens/stall", headers=s101)).json()
    assert [t["token_no"] for t in queue] == [2, 1]

    token_id = queue[0]["id"]
    for _ in range(2):
        r = await client.patch("/tokens/stall", json={"token_id": token_id, "status": "Served"}, headers=s101)
        assert r.status_code == 200
        assert r.json()["status"] == "Served"

    s102 = await stall_headers(client, "S102", "Spice Junction", "1234")
    r = await client.patch("/tokens/stall", json={"token_id": token_id, "status": "Pending"}, headers=s102)
    assert r.status_code == 404
    assert (await client.get("/tokens/stall", headers=s102)).json() == []


@pytest.mark.asyncio
async def test_status_must_be_pending_or_served(client, stalls):
    s101 = await stall_headers(client)
    r = await client.patch("/tokens/stall", json={"token_id": 1, "status": "Cancelled"}, headers=s101)
    assert r.status_code == 422


# ─── Test 5: Admin ────────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_admin_overrides_over_http(client, make_user):
    await make_user("hugo", balance="0.00")
    headers = await admin_headers(client)

    r = await client.post("/admin/users/hugo/topup", json={"amount": "25.50"}, headers=headers)
    assert r.status_code == 200
    assert Decimal(r.json()["balance"]) == Decimal("25.50")

    r = await client.post("/admin/users/hugo/balance", json={"amount": 10}, headers=headers)
    assert Decimal(r.json()["balance"]) == Decimal("10")

    r = await client.post("/admin/users/hugo/zero", headers=headers)
    assert Decimal(r.json()["balance"]) == Decimal("0")

    r = await client.post("/admin/users/nobody/topup", json={"amount": 5}, headers=headers)
    assert r.status_code == 404

    r = await client.post("/admin/users/hugo/block", headers=headers)
    assert r.json()["blocked"] is True
    users = (await client.get("/admin/users", headers=headers)).json()
    assert users[0]["username"] == "hugo"
    assert users[0]["blocked"] is True

    r = await client.post("/auth/login", json={"username": "hugo", "pin": "1234"})
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_admin_routes_reject_other_roles(client, make_user, login):
    await make_user("ivan")
    headers = await login("ivan")
    r = await client.get("/admin/users", headers=headers)
    assert r.status_code == 401

    r = await client.post("/auth/admin-login", json={"username": "Admin", "password": "wrong"})
    assert r.status_code == 401


# ─── Test 6: Rate limiting ────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_login_rate_limiter_blocks_after_max_attempts(client, make_user):
    await make_user("jade")
    max_attempts = get_settings().RATE_LIMIT_MAX_ATTEMPTS

    for _ in range(max_attempts):
        r = await client.post("/auth/login", json={"username": "jade", "pin": "0000"})
        assert r.status_code == 401

    r = await client.post("/auth/login", json={"username": "JADE", "pin": "1234"})
    assert r.status_code == 429
    assert "Retry-After" in r.headers


# ─── Test 7: Health ───────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_health_reports_database_and_redis(client):
    r = await client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "healthy"
    assert body["dependencies"] == {"database": "ok", "redis": "ok"}


# ─── Test 8: Runner ───────────────────────────────────────────────────────────
def test_runner_binds_configured_host_and_port(monkeypatch):
    calls = []
    monkeypatch.setattr(main.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
    main.run()

    settings = get_settings()
    assert calls == [(main.app, {"host": settings.HOST, "port": settings.PORT, "log_level": settings.LOG_LEVEL.lower()})]
