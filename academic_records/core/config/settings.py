# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

Settings are loaded from environment variables with sensible defaults.
The Settings class aggregates every subsetting and a cached singleton is
available through get_settings().

Example:
    >>> from academic_records.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> settings.records.min_attendance_percent
    75.0
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Self

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DB_PASSWORD = "records_password"


class DatabaseSettings(BaseSettings):
    """Records database configuration.

    All tenants share one schema; every row is scoped by ``tenant_id``.

    Attributes:
        user: PostgreSQL username.
        password: PostgreSQL password.
        host: Database host address.
        port: Database port number.
        database: Database name.
        dsn: Full async URL. When set it overrides the individual parts.
        pool_size: Connection pool size.
        max_overflow: Maximum overflow connections.
        echo: Log every SQL statement.
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        extra="ignore",
    )

    user: str = "records"
    password: SecretStr = SecretStr(DEFAULT_DB_PASSWORD)
    host: str = "localhost"
    port: int = 5432
    database: str = "academic_records"
    dsn: str | None = None
    pool_size: int = 10
    max_overflow: int = 20
    echo: bool = False

    @property
    def url(self) -> str:
        """Build the async database URL from components."""
        if self.dsn:
            return self.dsn
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"


class RecordsSettings(BaseSettings):
    """Academic rules that institutions may tune.

    Attributes:
        min_attendance_percent: Minimum mean attendance required to conclude.
        higher_min_hours_ratio: Minimum destination/origin hours ratio for
            equivalencies in higher education.
    """

    model_config = SettingsConfigDict(
        env_prefix="RECORDS_",
        extra="ignore",
    )

    min_attendance_percent: float = Field(default=75.0, ge=0, le=100)
    higher_min_hours_ratio: float = Field(default=0.8, gt=0, le=1)


class DocumentSettings(BaseSettings):
    """Official document rendering configuration.

    Attributes:
        templates_override: Optional YAML file merged over the packaged texts.
        page_size: Paper size for rendered documents.
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCUMENTS_",
        extra="ignore",
    )

    templates_override: Path | None = None
    page_size: Literal["A4", "LETTER"] = "A4"


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        db: Database settings.
        records: Academic rule settings.
        documents: Document rendering settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"

    db: DatabaseSettings = Field(default_factory=DatabaseSettings)
    records: RecordsSettings = Field(default_factory=RecordsSettings)
    documents: DocumentSettings = Field(default_factory=DocumentSettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Refuse insecure defaults in production.

        Raises:
            ValueError: If the database password was left at its default.
        """
        if self.environment == "production" and not self.db.dsn:
            if self.db.password.get_secret_value() == DEFAULT_DB_PASSWORD:
                raise ValueError(
                    "Database password must be changed from default in production. "
                    "Set DB_PASSWORD or DB_DSN environment variable."
                )
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Call clear_settings_cache() to reload settings from the environment.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()
