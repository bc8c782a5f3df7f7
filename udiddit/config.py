"""Configuration management for Udiddit.

This module provides centralized configuration using Pydantic Settings,
read from environment variables and an optional ``.env`` file.

Environment Profiles:
    - DEVELOPMENT: Verbose logging, human-readable output
    - PRODUCTION: INFO logging, structured JSON logs
    - TESTING: Minimal logging, no file logging
    - STAGING: Production-like but with INFO logging

Example:
    >>> from udiddit.config import settings, Environment
    >>> print(settings.database_path)
    /home/me/udiddit/data/udiddit.db
    >>> if settings.is_production:
    ...     print("Running in production mode")
"""

from enum import StrEnum
from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(StrEnum):
    """Runtime environment with specific behavior profiles.

    Attributes:
        DEVELOPMENT: Verbose logging, human-readable output
        PRODUCTION: Structured logs, conservative defaults
        TESTING: Minimal logging, no file logging
        STAGING: Pre-production validation environment
    """

    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"
    STAGING = "staging"


class Settings(BaseSettings):
    """Application settings with environment variable support.

    Attributes:
        environment: Runtime profile
        data_dir: Base directory for database and log files
        database_path: Normalized (target) SQLite database
        legacy_database_path: Legacy (source) SQLite database
        voter_delimiter: Separator used in legacy upvote/downvote lists
        log_level: Minimum log level
        log_to_file: Also write logs to ``data_dir/udiddit.log``
        log_json: Emit JSON log lines
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

    # Data Directory Configuration
    data_dir: Path = Field(
        Path("./data"),
        validate_default=True,
        description="Base directory for all data files (databases, logs)",
    )

    # Database Configuration
    database_path: Path = Field(
        Path("udiddit.db"),  # Will be updated to data_dir/udiddit.db by validator
        description="Path to the normalized SQLite database (defaults to data_dir/udiddit.db)",
    )
    legacy_database_path: Path = Field(
        Path("legacy.db"),  # Will be updated to data_dir/legacy.db by validator
        description="Path to the legacy SQLite snapshot (defaults to data_dir/legacy.db)",
    )

    # Migration Parameters
    voter_delimiter: str = Field(
        ",",
        min_length=1,
        description="Delimiter separating usernames in legacy voter lists",
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_to_file: bool = Field(
        default=True,
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
        path = Path(v).expanduser().resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path

    @model_validator(mode="after")
    def set_database_path_defaults(self) -> "Settings":
        """Place both databases under data_dir unless explicitly provided."""
        if self.database_path == Path("udiddit.db"):
            self.database_path = self.data_dir / "udiddit.db"
        if self.legacy_database_path == Path("legacy.db"):
            self.legacy_database_path = self.data_dir / "legacy.db"
        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        return self

    @model_validator(mode="after")
    def apply_environment_profile(self) -> "Settings":
        """Apply environment-specific logging defaults.

        Profiles:
            - PRODUCTION: INFO logging unless DEBUG was requested, JSON logs
            - DEVELOPMENT: DEBUG logging, human-readable logs
            - TESTING: ERROR logging, no file logging
            - STAGING: INFO logging, JSON logs

        Returns:
            Modified settings instance with environment-specific adjustments
        """
        if self.environment == Environment.PRODUCTION:
            if self.log_level == "DEBUG":
                self.log_level = "INFO"
            self.log_json = True

        elif self.environment == Environment.DEVELOPMENT:
            self.log_level = "DEBUG"
            self.log_json = False

        elif self.environment == Environment.TESTING:
            self.log_level = "ERROR"  # Quiet tests
            self.log_to_file = False
            self.log_json = False

        elif self.environment == Environment.STAGING:
            self.log_level = "INFO"
            self.log_json = True

        return self

    @property
    def database_url(self) -> str:
        """Get SQLAlchemy URL of the normalized database."""
        return f"sqlite:///{self.database_path}"

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


# Global settings instance
settings = Settings()
