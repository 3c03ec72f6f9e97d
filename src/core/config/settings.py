# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

Settings are loaded from environment variables (and an optional .env file)
with sensible defaults. The Settings class aggregates the subsettings of
each event store backend and the API server.

Example:
    >>> from src.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> print(settings.store_backend)
    'firestore'
"""

from functools import lru_cache
from typing import Literal, Self

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class FirestoreSettings(BaseSettings):
    """Firestore event store configuration.

    Attributes:
        project_id: Google Cloud project id. None uses the ambient project.
        credentials_file: Path to a service account JSON key.
        database: Firestore database id.
        emulator_host: host:port of a local Firestore emulator. Disables auth.
        in_batch_size: Maximum number of values in one "in" filter.
        timeout: Per-request timeout in seconds.
    """

    model_config = SettingsConfigDict(
        env_prefix="FIRESTORE_",
        extra="ignore",
    )

    project_id: str | None = None
    credentials_file: str | None = None
    database: str = "(default)"
    emulator_host: str | None = None
    in_batch_size: int = Field(default=30, ge=1, le=30)
    timeout: float = 30.0

    @property
    def base_url(self) -> str:
        """Get the REST endpoint root."""
        if self.emulator_host:
            return f"http://{self.emulator_host}/v1"
        return "https://firestore.googleapis.com/v1"


class PostgresSettings(BaseSettings):
    """Postgres event store configuration.

    Attributes:
        user: PostgreSQL username.
        password: PostgreSQL password.
        host: Database host address.
        port: Database port number.
        database: Database name.
        pool_size: Connection pool size.
        max_overflow: Maximum overflow connections.
        page_size: Rows fetched per page when reading event tables.
    """

    model_config = SettingsConfigDict(
        env_prefix="POSTGRES_",
        extra="ignore",
    )

    user: str = "postgres"
    password: SecretStr = SecretStr("postgres")
    host: str = "localhost"
    port: int = 5432
    database: str = "postgres"
    pool_size: int = 5
    max_overflow: int = 10
    page_size: int = Field(default=1000, ge=1)

    @property
    def url(self) -> str:
        """Build the async database URL from components."""
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"


class APISettings(BaseSettings):
    """API server configuration.

    Attributes:
        host: Host to bind to.
        port: Port to listen on.
    """

    model_config = SettingsConfigDict(
        env_prefix="API_",
        extra="ignore",
    )

    host: str = "0.0.0.0"
    port: int = 8000


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        store_backend: Which event store backend serves the engine.
        firestore: Firestore backend settings.
        postgres: Postgres backend settings.
        api: API server settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    store_backend: Literal["firestore", "postgres"] = "firestore"

    firestore: FirestoreSettings = Field(default_factory=FirestoreSettings)
    postgres: PostgresSettings = Field(default_factory=PostgresSettings)
    api: APISettings = Field(default_factory=APISettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Validate that production settings are properly configured.

        Raises:
            ValueError: If running in production with the default database password.
        """
        if self.environment == "production" and self.store_backend == "postgres":
            if self.postgres.password.get_secret_value() == "postgres":
                raise ValueError(
                    "Postgres password must be changed from default in production. "
                    "Set POSTGRES_PASSWORD environment variable."
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

    Uses lru_cache to ensure settings are only loaded once.
    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this if you need to reload settings from environment.
    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()
