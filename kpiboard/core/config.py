"""Application configuration."""

from functools import lru_cache
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    app_name: str = "KPI Board Backend"
    app_env: str = "development"
    api_prefix: str = ""
    log_level: str = "INFO"

    # Empty value disables the startup migration entirely.
    database_url: str = "sqlite+pysqlite:///./data/kpiboard.sqlite"
    run_migrations_on_startup: bool = False

    forecast_cutoff_default: int = Field(default=12, ge=1, le=12)

    rate_limit_window_seconds: float = Field(default=60.0, gt=0)
    rate_limit_max_requests: int = Field(default=100, ge=1)
    rate_limit_cleanup_threshold: int = Field(default=10_000, ge=1)

    # Development fallback principal (for local use and tests).
    # Must be disabled in production environments.
    auth_allow_dev_principal: bool = True
    auth_dev_username: str = "dev.admin"
    auth_dev_display_name: str = "Dev Admin"

    # Keep .env support for comma-separated values (non-JSON).
    allowed_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def parse_origins(cls, value: str | list[str]) -> list[str]:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""

    return Settings()
