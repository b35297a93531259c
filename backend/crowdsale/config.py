"""Crowdsale Service Configuration — CROWDSALE_* environment variables via pydantic-settings.

Invariants:
    - Every deployment-specific value is read from CROWDSALE_* variables or .env
    - get_settings() is cached (lru_cache), so one Settings instance per process
    - Ledger rules (unit price, objective, time window) are never configuration:
      they belong to each crowdsale and are fixed at construction

Design Decisions:
    - Defaults run out-of-the-box against a local SQLite file
    - vault_blocked_recipients is operational: an identity the escrow refuses
      to pay out to has every refund fail with TRANSFER_FAILED
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CROWDSALE_", env_file=".env",
        case_sensitive=False, extra="ignore",
    )

    # ─── Persistence ─────────────────────────────────────────────
    database_url: str = "sqlite+aiosqlite:///./crowdsale.db"
    database_pool_size: int = Field(20, ge=1)
    database_max_overflow: int = Field(10, ge=0)

    # ─── Escrow ──────────────────────────────────────────────────
    vault_blocked_recipients: list[str] = []

    # ─── API ─────────────────────────────────────────────────────
    cors_origins: list[str] = ["http://localhost:5173"]
    events_page_size: int = Field(50, ge=1)
    events_page_max: int = Field(500, ge=1)

    # ─── Logging ─────────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = Field("json", pattern="^(json|text)$")

    @field_validator("database_url", mode="before")
    @classmethod
    def use_async_driver(cls, v: str) -> str:
        """postgres:// and postgresql:// URLs need the asyncpg driver."""
        if isinstance(v, str):
            for scheme in ("postgresql://", "postgres://"):
                if v.startswith(scheme):
                    return "postgresql+asyncpg://" + v[len(scheme):]
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
