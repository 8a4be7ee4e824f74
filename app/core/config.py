"""
Wallet Ledger — Configuration
All settings are read from environment variables (or .env file).
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ── Service ──────────────────────────────────────────────
    SERVICE_NAME: str = "wallet-ledger"
    SERVICE_VERSION: str = "1.0.0"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # ── JWT sessions ─────────────────────────────────────────
    JWT_SECRET_KEY: str = "CHANGE_ME_IN_PRODUCTION"
    JWT_ALGORITHM: str = "HS256"
    JWT_SESSION_EXPIRE_MINUTES: int = 720

    # ── PIN hashing ──────────────────────────────────────────
    PIN_HASH_ROUNDS: int = 12

    # ── Administrator ────────────────────────────────────────
    ADMIN_USERNAME: str = "Admin"
    ADMIN_PASSWORD: str = "CHANGE_ME_IN_PRODUCTION"

    # ── PostgreSQL ────────────────────────────────────────────
    DATABASE_URL: str = ""
    POSTGRES_HOST: str = "ledger-db"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "ledger_db"
    POSTGRES_USER: str = "ledger_user"
    POSTGRES_PASSWORD: str = "ledger_pass"

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    # ── Connection pool ───────────────────────────────────────
    DB_POOL_SIZE: int = 20
    DB_POOL_TIMEOUT_SECONDS: float = 5.0
    DB_POOL_RECYCLE_SECONDS: int = 1800

    # ── Redis ─────────────────────────────────────────────────
    REDIS_HOST: str = "redis"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str = ""

    @property
    def redis_url(self) -> str:
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    # ── Login rate limiting ───────────────────────────────────
    RATE_LIMIT_MAX_ATTEMPTS: int = 5
    RATE_LIMIT_WINDOW_SECONDS: int = 60

    # ── Order placement idempotency ───────────────────────────
    IDEMPOTENCY_KEY_TTL_SECONDS: int = 86400
    IDEMPOTENCY_LOCK_TTL_SECONDS: int = 30

    # ── Startup ───────────────────────────────────────────────
    SEED_DEMO_DATA: bool = False

    # ── Observability ─────────────────────────────────────────
    METRICS_ENABLED: bool = True
    HEALTH_CHECK_TIMEOUT: float = 5.0


@lru_cache()
def get_settings() -> Settings:
    return Settings()
