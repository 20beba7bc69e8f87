"""
Application settings - pydantic-settings configuration.

This module defines application configuration using pydantic-settings
for environment variable loading with validation and defaults. No
durable-backend configuration is required: without it the store
selector falls back to the JSON file store.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage selection
    storage_type: str | None = None  # Explicit override: memory, file, postgres, remote
    data_dir: Path = Path("data")  # JSON file store directory outside serverless hosts

    # Relational database configuration
    database_url: str | None = None  # Takes precedence over the db_* parts
    db_host: str | None = None
    db_port: int = 5432
    db_user: str | None = None
    db_password: str | None = None
    db_name: str | None = None
    pool_min_size: int = 1  # Minimum connections in pool
    pool_max_size: int = 10  # Maximum connections in pool
    db_connect_timeout: float = 5.0  # Seconds to wait for the pool on startup

    # Hosted table service (PostgREST dialect)
    supabase_url: str | None = Field(
        default=None, validation_alias=AliasChoices("supabase_url", "next_public_supabase_url")
    )
    supabase_service_role_key: str | None = None
    supabase_anon_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("supabase_anon_key", "next_public_supabase_anon_key"),
    )
    http_timeout_seconds: float = 10.0

    # Serverless execution context markers
    vercel: bool = False
    netlify: bool = False
    aws_lambda_function_name: str | None = None

    # Email delivery
    base_url: str = Field(
        default="http://localhost:3000",
        validation_alias=AliasChoices("base_url", "next_public_base_url"),
    )
    resend_api_key: str | None = None
    resend_from_email: str = "noreply@example.com"

    # Application
    admin_enabled: bool = False  # Mounts GET /api/registrations
    log_level: str = "INFO"

    @property
    def supabase_key(self) -> str | None:
        """Service role key preferred over the anon key for server calls."""
        return self.supabase_service_role_key or self.supabase_anon_key

    @property
    def has_remote_config(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    @property
    def has_db_config(self) -> bool:
        if self.database_url:
            return True
        return all((self.db_host, self.db_name, self.db_user, self.db_password))

    @property
    def is_serverless(self) -> bool:
        return self.vercel or self.netlify or bool(self.aws_lambda_function_name)

    @property
    def conninfo(self) -> str:
        """libpq connection string for psycopg."""
        if self.database_url:
            return self.database_url
        return (
            f"host={self.db_host} port={self.db_port} dbname={self.db_name} "
            f"user={self.db_user} password={self.db_password}"
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
