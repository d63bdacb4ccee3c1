"""
OpsDesk Operations Backend
Centralized Configuration Management

Pydantic settings with environment variable support, validation, and type
safety. Analytics window and limit defaults live here so that request
handlers never carry inline date arithmetic literals.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Hosted Postgres Configuration"""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_", env_file=".env", extra="ignore")

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    db: str = Field(default="postgres", description="Database name")
    user: str = Field(default="postgres", description="Database user")
    password: SecretStr = Field(default="postgres", description="Database password")
    url: Optional[str] = Field(default=None, description="Full async DSN (overrides host/port)")
    echo: bool = Field(default=False, description="Echo SQL queries")

    @property
    def async_url(self) -> str:
        """Async database URL for asyncpg"""
        if self.url:
            return self.url
        return f"postgresql+asyncpg://{self.user}:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"


class SecuritySettings(BaseSettings):
    """Token Verification and CORS Configuration"""

    model_config = SettingsConfigDict(env_prefix="", env_file=".env", extra="ignore")

    supabase_jwt_secret: SecretStr = Field(
        default="jwt-secret-change-me",
        description="Secret used by the identity provider to sign access tokens",
    )
    jwt_algorithm: str = Field(default="HS256", description="JWT algorithm")
    jwt_audience: Optional[str] = Field(default="authenticated", description="Expected token audience")

    cors_origins: List[str] = Field(
        default=["http://localhost:5173"],
        description="Allowed CORS origins",
    )


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="", env_file=".env", extra="ignore")

    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format: json or text")


class AnalyticsSettings(BaseSettings):
    """Analytics window and limit defaults"""

    model_config = SettingsConfigDict(env_prefix="ANALYTICS_", env_file=".env", extra="ignore")

    default_window_days: int = Field(default=30, ge=1, description="Overview window when no bounds are given")
    default_trend_days: int = Field(default=30, ge=1, description="Order trend lookback in days")
    default_revenue_months: int = Field(default=6, ge=1, description="Revenue lookback in months")
    default_top_limit: int = Field(default=10, ge=1, description="Top performers returned by default")
    max_top_limit: int = Field(default=100, ge=1, description="Upper bound for the top performers limit")
    default_ltv_top_n: int = Field(default=10, ge=1, description="Top customers listed in the LTV report")
    max_trend_days: int = Field(default=366, ge=1, description="Upper bound for the trend lookback")


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="opsdesk", description="Application name")
    app_env: str = Field(default="development", description="Environment")
    debug: bool = Field(default=False, description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=7000, description="API port")
    api_workers: int = Field(default=4, description="API workers")

    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development"""
        return self.app_env == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
