"""Application settings loaded from environment / .env file."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Database ──────────────────────────────────────────
    database_url: str = "sqlite+aiosqlite:///./hostwp.db"

    # ── Redis (cross-process config change relay) ─────────
    redis_url: str = ""  # empty disables the relay

    # ── Security ──────────────────────────────────────────
    encryption_key: str = ""  # Fernet key – MUST be set before storing API tokens
    jwt_secret_key: str = ""  # MUST be set in production
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60

    # Bootstrap admin account, created at startup when both are set
    admin_email: str = ""
    admin_password: str = ""

    # ── CORS ──────────────────────────────────────────────
    allowed_origins: str = "http://localhost:5173"

    # ── Upmind client ─────────────────────────────────────
    upmind_retry_base_delay: float = 1.0  # seconds, multiplied by attempt number
    upmind_default_timeout: float = 30.0
    upmind_default_retry_attempts: int = 3

    # ── Logging ───────────────────────────────────────────
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
