"""Application configuration via environment variables."""

import json
import logging
from typing import List

from pydantic import Field, ValidationError, model_validator
from pydantic_settings import BaseSettings
from sqlalchemy.engine import URL, make_url

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database — both MUST be set via environment / .env (no default)
    DATABASE_URL: str = Field(min_length=1)
    DATABASE_SERVICE_KEY: str = Field(min_length=1)
    DB_TIMEOUT_SECONDS: float = 5.0

    # Shared secret for POST /events/donation
    REQUIRE_API_SECRET: bool = False
    API_SECRET: str = ""

    # Rate limiting (fixed window, per installId / client IP)
    RATE_LIMIT_WINDOW_MS: int = 60_000
    RATE_LIMIT_MAX: int = 60
    RATE_LIMIT_MAX_KEYS: int = 100_000
    RATE_LIMIT_SWEEP_INTERVAL_MS: int = 60_000

    # App
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "info"
    CORS_ORIGINS: str = '["*"]'

    @model_validator(mode="after")
    def _check_secret(self) -> "Settings":
        if self.REQUIRE_API_SECRET and not self.API_SECRET:
            raise ValueError("API_SECRET must be set when REQUIRE_API_SECRET is true")
        return self

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS_ORIGINS JSON string into a list."""
        try:
            return json.loads(self.CORS_ORIGINS)
        except (json.JSONDecodeError, TypeError):
            return ["*"]

    @property
    def database_url(self) -> URL:
        """DATABASE_URL with the service key filled in as the password."""
        url = make_url(self.DATABASE_URL)
        if url.password is None and self.DATABASE_SERVICE_KEY:
            url = url.set(password=self.DATABASE_SERVICE_KEY)
        return url

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


def load_settings() -> Settings:
    """Build Settings, exiting the process if required configuration is absent."""
    try:
        return Settings()
    except ValidationError as exc:
        problems = []
        for err in exc.errors():
            loc = ".".join(str(p) for p in err.get("loc", ())) or "settings"
            problems.append(f"{loc}: {err.get('msg', 'invalid')}")
        logger.critical(
            "Missing or invalid configuration. Need DATABASE_URL and "
            "DATABASE_SERVICE_KEY. Problems: %s",
            "; ".join(problems),
        )
        raise SystemExit(1) from exc


settings = load_settings()
