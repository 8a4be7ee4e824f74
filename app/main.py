"""
Wallet Ledger — FastAPI application entrypoint
"""
import logging
from contextlib import asynccontextmanager
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from app.core.config import get_settings
from app.core.errors import LedgerError
from app.core.redis_client import close_redis, create_redis
from app.db.database import Database
from app.db.seed import seed_demo_stalls
from app.middleware.auth import JWTAuthMiddleware
from app.middleware.idempotency import IdempotencyMiddleware
from app.middleware.rate_limiter import SlidingWindowRateLimiter
from app.api import admin, auth, health, stalls, tokens, users

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: build the bounded pool and Redis client, create tables
    # (Alembic handles migrations in production)
    database = Database.from_settings(settings)
    app.state.database = database
    app.state.redis = create_redis(settings)
    await database.create_all()
    if settings.SEED_DEMO_DATA:
        async with database.session_factory() as session:
            await seed_demo_stalls(session)
    logger.info("%s %s started", settings.SERVICE_NAME, settings.SERVICE_VERSION)
    yield
    # Shutdown: drain the pool
    await close_redis(app.state.redis)
    await database.dispose()


app = FastAPI(
    title="Campus Wallet Ledger",
    description="Student wallet and stall ordering: PIN-verified, row-locked balance debits with per-stall token numbers.",
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url=None,
)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# ── Middleware (last added runs first) ────────────────────────────────────────
# Idempotency sits inside Auth so replays are scoped to the session subject
app.add_middleware(IdempotencyMiddleware)
app.add_middleware(JWTAuthMiddleware)
app.add_middleware(SlidingWindowRateLimiter)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Tighten in production via env var
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Prometheus Metrics ────────────────────────────────────────────────────────
if settings.METRICS_ENABLED:
    Instrumentator().instrument(app).expose(app, endpoint="/metrics")

# ── Routers ───────────────────────────────────────────────────────────────────
app.include_router(auth.router)
app.include_router(stalls.router)
app.include_router(users.router)
app.include_router(tokens.router)
app.include_router(admin.router)
app.include_router(health.router)


@app.get("/")
async def root():
    return {"service": settings.SERVICE_NAME, "version": settings.SERVICE_VERSION}


def run():
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
