"""
Centralized configuration management using Pydantic Settings.

All environment variables and configuration in one place.
Type-safe with validation.
"""

from typing import Optional, Literal
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==================== Database Configuration ====================
    database_url: str = Field(
        default="postgresql://localhost/essay_grading",
        description="Database connection string"
    )
    db_pool_size: int = Field(default=20, ge=1, le=100, description="Database pool size")
    db_max_overflow: int = Field(default=30, ge=0, le=200, description="Max overflow connections")
    db_pool_recycle: int = Field(default=1800, ge=300, description="Pool recycle time (seconds)")
    db_pool_pre_ping: bool = Field(default=True, description="Enable pool pre-ping")
    db_pool_timeout: int = Field(default=30, ge=1, le=120, description="Pool timeout (seconds)")
    db_echo: bool = Field(default=False, description="Echo SQL queries")
    db_connection_retries: int = Field(default=3, ge=0, le=10, description="Connection retry attempts")
    db_retry_backoff: float = Field(default=0.5, ge=0.1, description="Retry backoff factor (seconds)")

    # ==================== Analysis Configuration ====================
    google_api_key: Optional[str] = Field(default=None, description="Google Gemini API key")
    analysis_model: str = Field(default="gemini-2.5-flash", description="Model used for essay analysis")
    analysis_fallback_model: str = Field(default="gemini-2.5-pro", description="Fallback analysis model")
    analysis_temperature: float = Field(default=0.3, ge=0.0, le=1.0, description="Analysis temperature")
    analysis_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="Upper bound for a single provider call (seconds)"
    )
    analysis_cache_ttl: int = Field(
        default=600,
        ge=0,
        description="Seconds a completed analysis stays cached (0 disables expiry)"
    )

    # ==================== API Configuration ====================
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, ge=1024, le=65535, description="API port")
    api_reload: bool = Field(default=False, description="Enable auto-reload")
    cors_allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed CORS origins"
    )

    # ==================== Security ====================
    secret_key: str = Field(
        ...,
        min_length=32,
        description="Secret key for JWT tokens (must be at least 32 characters)"
    )
    jwt_algorithm: Literal["HS256", "HS384", "HS512"] = Field(
        default="HS256",
        description="JWT signing algorithm"
    )
    access_token_expire_minutes: int = Field(
        default=60,
        ge=5,
        le=1440,
        description="Access token expiry (minutes)"
    )
    jwt_leeway_seconds: int = Field(
        default=60,
        ge=0,
        le=300,
        description="Clock skew tolerance for token validation"
    )

    # ==================== Monitoring & Logging ====================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level"
    )
    enable_metrics: bool = Field(default=True, description="Enable in-process metrics")

    # ==================== Development ====================
    debug: bool = Field(default=False, description="Debug mode")
    testing: bool = Field(default=False, description="Testing mode")

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Ensure database URL points at a supported backend."""
        if not v.startswith(("postgresql://", "postgresql+asyncpg://", "sqlite", "sqlite+aiosqlite://")):
            raise ValueError("Database URL must use PostgreSQL or SQLite")
        return v

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        """Validate secret key for production use."""
        if len(v) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters long")
        if v in ["change-me-in-production", "development-key-not-secure"]:
            raise ValueError("SECRET_KEY must be changed from default value in production")
        return v

    @property
    def async_database_url(self) -> str:
        """Get async database URL for SQLAlchemy."""
        if "asyncpg" in self.database_url or "aiosqlite" in self.database_url:
            return self.database_url
        if self.database_url.startswith("sqlite://"):
            return self.database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return self.database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

    @property
    def is_sqlite(self) -> bool:
        """Check if the configured database is SQLite."""
        return self.database_url.startswith("sqlite")

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.debug or self.testing

    @property
    def allowed_origins(self) -> list[str]:
        """CORS origins as a list."""
        return [origin.strip() for origin in self.cors_allowed_origins.split(",") if origin.strip()]

    def validate_production_config(self) -> list[str]:
        """Get list of production configuration issues."""
        issues = []

        if not self.is_development and "localhost" in self.database_url:
            issues.append("DATABASE_URL should not use localhost in production")

        if not self.is_development and self.is_sqlite:
            issues.append("DATABASE_URL should use PostgreSQL in production")

        if not self.google_api_key:
            issues.append("GOOGLE_API_KEY is required for automated essay analysis")

        return issues


# Global settings instance
settings = Settings()
