"""
Configuration

All runtime settings come from environment variables (or a local .env
file) and are parsed into one typed Settings object. Names are matched
case-insensitively, so DATABASE_URL and database_url are the same key.

A bad value (unknown log level, a short or placeholder SECRET_KEY, a zero
queue size) stops the process at startup instead of surfacing later as a
confusing runtime error.

Usage:
    from library_api.config import get_settings

    settings = get_settings()
    engine = create_engine(settings.database_url)
"""

from functools import lru_cache
from typing import List, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Fragments that show up in copy-pasted example keys
PLACEHOLDER_SECRETS = ("replace_with", "change-me", "your-secret", "generate-with")
MIN_SECRET_KEY_LENGTH = 32


class Settings(BaseSettings):
    """Typed view of the process environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Server
    # -------------------------------------------------------------------------
    app_name: str = Field(default="Library API", description="Shown in docs, logs and /health")
    api_version: str = Field(default="v1", description="Reported by /health and /")
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = Field(default=False, description="Verbose errors, SQL echo, reload")
    host: str = "0.0.0.0"
    port: int = 4000
    allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="CORS origins, comma separated",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # -------------------------------------------------------------------------
    # Storage
    # -------------------------------------------------------------------------
    database_url: str = Field(
        default="sqlite:///./library.db",
        description="SQLAlchemy URL; use postgresql://... outside development",
    )
    db_pool_size: int = Field(default=5, ge=1)
    db_max_overflow: int = Field(default=10, ge=0)

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------
    secret_key: str = Field(
        default="REPLACE_WITH_YOUR_GENERATED_SECRET_KEY",
        description="HMAC key for login tokens (openssl rand -hex 32)",
    )
    access_token_expire_minutes: int = Field(default=60 * 24, ge=1)
    default_user_password: str = Field(
        default="secret",
        description="Password for users registered without one",
    )

    # -------------------------------------------------------------------------
    # GraphQL
    # -------------------------------------------------------------------------
    graphql_ide_enabled: bool = Field(default=True, description="Apollo Sandbox on GET /graphql")
    subscriber_queue_size: int = Field(
        default=100,
        ge=1,
        description="Events buffered per subscriber before new ones are dropped",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v):
        return v.upper() if isinstance(v, str) else v

    @field_validator("environment", mode="before")
    @classmethod
    def lower_environment(cls, v):
        return v.lower() if isinstance(v, str) else v

    @field_validator("secret_key")
    @classmethod
    def reject_weak_secret(cls, v: str) -> str:
        """Refuse to sign tokens with an example or short key."""
        lowered = v.lower()
        if any(fragment in lowered for fragment in PLACEHOLDER_SECRETS):
            raise ValueError(
                "SECRET_KEY still holds an example value; "
                "set it to the output of: openssl rand -hex 32"
            )
        if len(v) < MIN_SECRET_KEY_LENGTH:
            raise ValueError(
                f"SECRET_KEY needs at least {MIN_SECRET_KEY_LENGTH} characters"
            )
        return v

    @property
    def allowed_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def is_sqlite(self) -> bool:
        """SQLite needs check_same_thread off and no pool sizing."""
        return self.database_url.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    """Build Settings once per process; later calls reuse it."""
    return Settings()
