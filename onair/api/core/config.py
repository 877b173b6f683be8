"""Application configuration using Pydantic Settings"""

import logging
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: str = Field(default="development", description="Environment name")
    log_level: str = Field(default="INFO", description="Logging level")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")
    frontend_url: str = Field(default="http://localhost:5173", description="Frontend URL for CORS")

    # Storage
    storage_backend: Literal["postgres", "memory"] = Field(
        default="postgres", description="Where presence and engagement rows live"
    )
    database_url: str = Field(default="", description="PostgreSQL database URL")
    database_ssl: str | None = Field(default=None, description="asyncpg ssl mode, e.g. 'require'")
    store_timeout_seconds: float = Field(
        default=0.5, gt=0, description="Upper bound for a single store operation"
    )
    startup_db_timeout_seconds: float = Field(
        default=30.0, gt=0, description="How long startup waits for the database"
    )

    # Presence
    liveness_timeout_seconds: int = Field(
        default=90, gt=0, description="Max gap since last heartbeat before a viewer is not counted"
    )
    heartbeat_interval_seconds: int = Field(
        default=30, gt=0, description="Heartbeat cadence expected from clients"
    )
    presence_purge_after_seconds: int = Field(
        default=600, gt=0, description="Idle presence rows older than this are deleted"
    )
    presence_purge_interval_seconds: int = Field(
        default=300, gt=0, description="How often the purge task runs"
    )

    # Engagement
    reaction_window_seconds: int = Field(
        default=60, gt=0, description="Trailing window for the live reaction tally"
    )
    snapshot_comment_limit: int = Field(default=20, ge=1, le=100)
    snapshot_song_request_limit: int = Field(default=10, ge=1, le=100)
    snapshot_cache_ttl_seconds: float = Field(
        default=2.0, ge=0, description="How long polled counts/snapshots are shared"
    )

    # Session identity
    session_cookie_name: str = Field(default="onair_session", description="Session cookie name")
    session_cookie_max_age: int = Field(default=60 * 60 * 24 * 30, description="Cookie lifetime")

    # Admin
    admin_token: str = Field(default="", description="Token required by admin routes; empty disables them")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid logging level"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            logger.warning(f"Invalid log level '{v}', defaulting to INFO")
            return "INFO"
        return v_upper

    @model_validator(mode="after")
    def check_presence_timing(self) -> "Settings":
        if self.heartbeat_interval_seconds >= self.liveness_timeout_seconds:
            raise ValueError(
                "heartbeat_interval_seconds must be shorter than liveness_timeout_seconds"
            )
        if self.storage_backend == "postgres" and not self.database_url:
            raise ValueError("database_url is required when storage_backend is 'postgres'")
        return self

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS allowed origins"""
        return [self.frontend_url]

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
