"""Configuration management for ither.

This module provides centralized configuration using Pydantic Settings,
read from environment variables and an optional ``.env`` file.

Environment Profiles:
    - DEVELOPMENT: Verbose logging, mock mode by default
    - PRODUCTION: JSON logs, remote document store
    - TESTING: In-memory database, no durable local storage, minimal logging

Example:
    >>> from ither.config import settings
    >>> settings.mock_mode
    True
    >>> settings.collection_path("books")
    'artifacts/ither-community/public/data/books'
"""

from enum import StrEnum
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(StrEnum):
    """Runtime environment with specific behavior profiles.

    Attributes:
        DEVELOPMENT: Verbose logging, mock mode by default
        PRODUCTION: Structured logs, remote store
        TESTING: In-memory everything, quiet logs
        STAGING: Pre-production validation environment
    """

    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"
    STAGING = "staging"


class Settings(BaseSettings):
    """Application settings with environment variable support.

    Attributes:
        environment: Active behavior profile
        mock_mode: Serve every collection from seed data and the local mirror
        app_id: Deployment namespace for remote collections
        data_dir: Base directory for the document database and local storage
        database_path: SQLite file backing the remote document store
        local_storage_dir: Directory holding persisted mirror keys (None = memory only)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Runtime environment (development, production, testing, staging)",
    )

    # Backend selection
    mock_mode: bool = Field(
        default=True,
        description="Use seed data and the local mirror instead of the remote store",
    )
    app_id: str = Field(
        default="ither-community",
        min_length=1,
        description="Deployment identifier used to namespace remote collections",
    )

    # Storage locations
    data_dir: Path = Field(
        Path("./data"),
        description="Base directory for all data files",
    )
    database_path: Path = Field(
        Path("ither.db"),  # Will be updated to data_dir/ither.db by validator
        description="Path to the SQLite document database",
    )
    local_storage_dir: Optional[Path] = Field(
        default=Path("local_storage"),
        description="Directory for persisted local mirror keys (relative to data_dir)",
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_to_file: bool = Field(
        default=False,
        description="Enable file logging in addition to console",
    )
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format (recommended for production)",
    )

    @field_validator("data_dir", mode="before")
    @classmethod
    def expand_data_dir(cls, v: str | Path) -> Path:
        """Expand and resolve data directory path."""
        return Path(v).expanduser().resolve()

    @field_validator("app_id")
    @classmethod
    def validate_app_id(cls, v: str) -> str:
        """Reject deployment ids that would break the collection path."""
        if "/" in v:
            raise ValueError("app_id must not contain '/'")
        return v

    @model_validator(mode="after")
    def set_storage_defaults(self) -> "Settings":
        """Anchor relative storage paths under data_dir."""
        if self.database_path == Path("ither.db"):
            self.database_path = self.data_dir / "ither.db"
        if self.local_storage_dir is not None and not self.local_storage_dir.is_absolute():
            self.local_storage_dir = self.data_dir / self.local_storage_dir
        return self

    @model_validator(mode="after")
    def apply_environment_profile(self) -> "Settings":
        """Apply environment-specific defaults.

        Profiles:
            - PRODUCTION: INFO logging, JSON logs, remote store
            - DEVELOPMENT: DEBUG logging, human-readable logs
            - TESTING: In-memory database, memory-only local storage, ERROR logging
            - STAGING: Production-like with INFO logging

        Returns:
            Modified settings instance with environment-specific adjustments
        """
        if self.environment == Environment.PRODUCTION:
            if self.log_level == "DEBUG":
                self.log_level = "INFO"
            self.log_json = True
            self.mock_mode = False

        elif self.environment == Environment.DEVELOPMENT:
            self.log_level = "DEBUG"
            self.log_json = False

        elif self.environment == Environment.TESTING:
            self.database_path = Path(":memory:")
            self.local_storage_dir = None
            self.log_level = "ERROR"
            self.log_to_file = False
            self.log_json = False

        elif self.environment == Environment.STAGING:
            self.log_level = "INFO"
            self.log_json = True

        return self

    @property
    def database_url(self) -> str:
        """Get SQLAlchemy database URL."""
        return f"sqlite:///{self.database_path}"

    @property
    def collection_root(self) -> str:
        """Namespace prefix shared by every remote collection."""
        return f"artifacts/{self.app_id}/public/data"

    def collection_path(self, name: str) -> str:
        """Full remote path for a logical collection name."""
        return f"{self.collection_root}/{name}"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == Environment.TESTING


def get_settings() -> Settings:
    """Get a settings instance built from the current environment."""
    return Settings()


# Global settings instance
settings = get_settings()
