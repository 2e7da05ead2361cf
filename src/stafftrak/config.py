"""Configuration management for the StaffTrak engine."""

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseConfig(BaseSettings):
    """Database configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    url: Optional[str] = None
    pool_min_size: int = 1
    pool_max_size: int = 10

    @field_validator("url")
    @classmethod
    def validate_url(cls, v):
        """Validate database URL format."""
        if v is None:
            return v
        if not v.startswith(("postgresql://", "postgres://")):
            raise ValueError("DATABASE_URL must be a valid PostgreSQL connection string")
        if "[PASSWORD]" in v:
            raise ValueError("DATABASE_URL contains placeholder password - please set actual password")
        return v


class ComplianceConfig(BaseSettings):
    """Evaluation-cycle settings."""

    model_config = SettingsConfigDict(
        env_prefix="COMPLIANCE_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    school_year: str = "2025-2026"
    calendar_dir: Optional[Path] = None
    upcoming_window_days: int = Field(7, ge=0)

    @field_validator("school_year")
    @classmethod
    def validate_school_year(cls, v):
        """School years are written as YYYY-YYYY with consecutive years."""
        parts = v.split("-")
        if len(parts) != 2 or not all(p.isdigit() and len(p) == 4 for p in parts):
            raise ValueError("school_year must look like 2025-2026")
        if int(parts[1]) != int(parts[0]) + 1:
            raise ValueError("school_year must span two consecutive years")
        return v


class AppConfig(BaseSettings):
    """Application configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="APP_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    name: str = "stafftrak"
    version: str = "0.1.0"
    log_level: str = "INFO"
    debug: bool = False


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    compliance: ComplianceConfig = Field(default_factory=ComplianceConfig)
    app: AppConfig = Field(default_factory=AppConfig)

    @classmethod
    def load(cls) -> "Settings":
        """Load settings from environment."""
        return cls()


# Global settings instance
settings = Settings.load()
