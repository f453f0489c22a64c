"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Academy Admin"
    app_env: Literal["development", "staging", "production"] = "development"
    app_secret_key: str
    app_base_url: str = "http://localhost:8000"
    app_debug: bool = False
    app_log_level: str = "INFO"

    # Database
    database_url: str
    database_pool_size: int = 10
    database_max_overflow: int = 5

    # JWT Authentication
    jwt_secret_key: str | None = None
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 1440  # 24 hours

    # Document store (Firestore)
    firestore_project_id: str | None = None
    firestore_credentials_file: str | None = None
    registrations_collection: str = "2026-iyf_orlando_academy_spring_semester"
    invoices_collection: str = "2026_spring_academy_invoices_2026"
    payments_collection: str = "academy_payments_2026"
    academies_collection: str = "academies_2026_spring"
    teachers_collection: str = "teachers"
    settings_collection: str = "settings"
    pricing_document: str = "pricing"

    # Program
    active_semester_name: str = "Spring 2026"
    lunch_semester_price_cents: int = 4000
    lunch_single_price_cents: int = 400
    admin_emails: str = ""
    max_upload_size_mb: int = 5

    # Maintenance
    backup_dir: str = "backups"

    @property
    def effective_jwt_secret(self) -> str:
        """Get the JWT secret key, falling back to app secret key."""
        return self.jwt_secret_key or self.app_secret_key

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"

    @property
    def async_database_url(self) -> str:
        """Get database URL with asyncpg driver for async SQLAlchemy."""
        url = self.database_url
        if url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        elif url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql+asyncpg://", 1)
        return url

    @property
    def sync_database_url(self) -> str:
        """Get database URL with psycopg2 driver for sync operations (Alembic)."""
        url = self.database_url
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql://", 1)
        if "+asyncpg" in url:
            url = url.replace("+asyncpg", "", 1)
        if "+aiosqlite" in url:
            url = url.replace("+aiosqlite", "", 1)
        return url

    @property
    def admin_emails_list(self) -> list[str]:
        """Get admin e-mails as a normalized list."""
        return [e.strip().lower() for e in self.admin_emails.split(",") if e.strip()]

    @property
    def max_upload_size_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_size_mb * 1024 * 1024


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
