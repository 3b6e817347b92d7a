"""Application configuration."""
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # App
    app_env: str = "development"
    app_host: str = "0.0.0.0"
    app_port: int = 4000
    app_debug: bool = True
    log_level: str = "DEBUG"

    # Ledger owner - the only identity allowed to create, start and end
    owner_identity: str = Field(
        ...,
        min_length=1,
        description="Owner identity fixed when the registry is built (required)",
    )

    # JWT - caller identity comes from the verified `sub` claim
    jwt_secret_key: str = Field(
        ...,
        description="JWT secret key (required, minimum 32 characters)",
    )
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 30

    # Redis - optional; enables distributed locks, event stream and snapshots
    redis_url: Optional[str] = Field(
        default=None,
        description="Redis connection URL (optional)",
    )
    redis_max_connections: int = 50
    redis_socket_timeout: float = 5.0
    redis_socket_connect_timeout: float = 5.0

    # Locking
    lock_backend: Literal["local", "redis"] = Field(
        default="local",
        description=(
            "Record lock backend: in-process asyncio locks, or Redis locks with the "
            "registry shared between workers through the snapshot store"
        ),
    )
    lock_timeout_ms: int = Field(
        default=10000,
        description="Lock auto-expire time in milliseconds (redis backend)",
    )
    lock_acquire_timeout_ms: int = Field(
        default=5000,
        description="Maximum wait for a record lock in milliseconds",
    )

    # Events
    event_history_size: int = Field(
        default=10000,
        ge=1,
        description="Events kept in the in-memory audit history",
    )
    event_stream_enabled: bool = Field(
        default=True,
        description="Mirror events to a Redis Stream when Redis is configured",
    )

    # Snapshots
    snapshot_enabled: bool = Field(
        default=True,
        description="Persist registry snapshots to Redis when Redis is configured",
    )
    snapshot_hmac_key: str = Field(
        default="tournament-ledger-snapshot-key",
        description="HMAC key for snapshot integrity",
    )

    # CORS
    cors_origins: str = "http://localhost:3000"

    @field_validator("jwt_secret_key")
    @classmethod
    def validate_jwt_secret_key(cls, v: str) -> str:
        """Validate JWT secret key length."""
        if len(v) < 32:
            raise ValueError(
                "jwt_secret_key must be at least 32 characters long"
            )

        weak_patterns = [
            "change-this",
            "secret",
            "password",
            "12345",
            "qwerty",
            "admin",
        ]
        lower_v = v.lower()
        for pattern in weak_patterns:
            if pattern in lower_v:
                raise ValueError(
                    f"jwt_secret_key contains weak pattern '{pattern}'. "
                    "Use a strong, random secret key."
                )

        return v

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Validate settings for production environment."""
        if self.lock_backend == "redis" and not self.redis_url:
            raise ValueError("lock_backend 'redis' requires redis_url")

        if self.app_env == "production":
            if self.app_debug:
                raise ValueError(
                    "app_debug must be False in production environment"
                )

            origins = [o.strip() for o in self.cors_origins.split(",")]
            if "*" in origins:
                raise ValueError(
                    "CORS wildcard '*' is not allowed in production environment. "
                    "Specify explicit allowed origins."
                )

        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
