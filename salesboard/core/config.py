import os
import sys
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_WEAK_SECRETS = {"", "local-dev-secret", "replace-me", "changeme"}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Salesboard API"
    app_env: str = "local"
    api_v1_prefix: str = "/api/v1"

    database_url: str = "sqlite:///./salesboard.db"
    redis_url: str = "redis://localhost:6379/0"

    jwt_secret: str = "local-dev-secret"
    jwt_algorithm: str = "HS256"
    jwt_access_ttl_seconds: int = 3600

    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    metrics_enabled: bool = False
    rate_limit_enabled: bool = False
    rate_limit_writes_per_minute: int = 120

    invitation_ttl_hours: int = 168
    live_send_timeout_seconds: float = 2.0
    leaderboard_poll_interval_seconds: float = 5.0

    @model_validator(mode="after")
    def validate_production_guardrails(self) -> "Settings":
        if not self.jwt_secret.strip():
            raise ValueError("JWT_SECRET is required and must not be empty.")
        if self.invitation_ttl_hours <= 0:
            raise ValueError("INVITATION_TTL_HOURS must be positive.")

        if self.app_env.lower() != "production":
            return self

        if self.jwt_secret in _WEAK_SECRETS or len(self.jwt_secret) < 32:
            raise ValueError("Production requires JWT_SECRET with at least 32 characters.")
        if self.database_url.startswith("sqlite"):
            raise ValueError("Production requires DATABASE_URL backed by PostgreSQL.")
        return self

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    app_env = os.getenv("APP_ENV", "").lower()
    is_pytest_runtime = "pytest" in sys.modules
    if app_env == "test" or (not app_env and is_pytest_runtime):
        return Settings(
            app_env="test",
            database_url=os.getenv("DATABASE_URL", "").strip() or "sqlite:///./salesboard-test.db",
            jwt_secret=os.getenv("JWT_SECRET", "").strip() or "test-secret-key",
            rate_limit_enabled=False,
        )
    return Settings()
