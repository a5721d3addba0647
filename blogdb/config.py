"""Configuration management for BlogDB.

This module provides centralized configuration using Pydantic Settings,
read from environment variables and an optional ``.env`` file.

Environment Profiles:
    - DEVELOPMENT: Verbose logging, human-readable output
    - PRODUCTION: Structured JSON logs, conservative retry settings
    - TESTING: In-memory database, minimal logging
    - STAGING: Production-like with more logging

Example:
    >>> from blogdb.config import settings
    >>> settings.sqlalchemy_url
    'sqlite:////abs/path/data/blog.db'
    >>> settings.unknown_tag_policy
    <TagPolicy.ACCEPT: 'accept'>
"""

from enum import StrEnum
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from blogdb.utils import MAX_SQL_INTEGER


class TagPolicy(StrEnum):
    """How tag identifiers that match no Tag row are treated on write.

    Attributes:
        ACCEPT: Store the association anyway (lenient tagging)
        REJECT: Refuse the whole write and report the unknown identifiers
    """

    ACCEPT = "accept"
    REJECT = "reject"


class Environment(StrEnum):
    """Runtime environment with specific behavior profiles."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"
    STAGING = "staging"


class Settings(BaseSettings):
    """Application settings with environment variable support.

    Attributes:
        environment: Active behavior profile
        data_dir: Base directory for the SQLite database and log files
        database_path: SQLite database file (defaults to data_dir/blog.db)
        database_url: Full SQLAlchemy URL, overrides database_path when set
        db_echo: Echo emitted SQL
        db_retry_attempts: Attempts for a transaction hitting a transient error
        db_busy_timeout_ms: SQLite busy timeout for locked databases
        default_page_size: Listing page size when none (or garbage) is given
        max_page_limit: Upper bound applied to any requested page size
        max_clap_increment: Upper bound for one add_clap increment
        unknown_tag_policy: Treatment of tag identifiers with no Tag row
        metrics_enabled: Record Prometheus metrics for engine operations
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
        description="Base directory for database and log files",
    )

    # Database Configuration
    database_path: Path = Field(
        Path("blog.db"),  # Rewritten to data_dir/blog.db by validator
        description="Path to SQLite database file (defaults to data_dir/blog.db)",
    )
    database_url: Optional[str] = Field(
        default=None,
        description="SQLAlchemy URL (e.g. postgresql+psycopg://...); overrides database_path",
    )
    db_echo: bool = Field(default=False, description="Echo SQL statements")
    db_retry_attempts: int = Field(
        3,
        ge=1,
        le=10,
        description="Attempts for a transaction that hits a transient storage error",
    )
    db_busy_timeout_ms: int = Field(
        5000,
        ge=0,
        description="SQLite busy timeout in milliseconds",
    )

    # Listing Configuration
    default_page_size: int = Field(
        10,
        ge=1,
        description="Default number of posts per listing page",
    )
    max_page_limit: int = Field(
        100,
        ge=1,
        description="Maximum number of posts a single listing page may return",
    )

    # Claps
    max_clap_increment: int = Field(
        1000,
        ge=1,
        le=MAX_SQL_INTEGER,
        description="Largest number of claps a single add_clap call may add",
    )

    # Tagging
    unknown_tag_policy: TagPolicy = Field(
        default=TagPolicy.ACCEPT,
        description="accept: store links to unknown tag ids; reject: refuse the write",
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

    # Observability
    metrics_enabled: bool = Field(
        default=True,
        description="Record Prometheus metrics for engine operations",
    )

    @field_validator("data_dir", mode="before")
    @classmethod
    def expand_data_dir(cls, v: str | Path) -> Path:
        """Expand and resolve data directory path."""
        return Path(v).expanduser().resolve()

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Upper-case the level name so loguru accepts it."""
        level = v.strip().upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @model_validator(mode="after")
    def set_database_path_default(self) -> "Settings":
        """Set database_path to data_dir/blog.db if not explicitly provided."""
        if self.database_path == Path("blog.db"):
            self.database_path = self.data_dir / "blog.db"
        return self

    @model_validator(mode="after")
    def check_page_bounds(self) -> "Settings":
        """Keep the default page size within the configured maximum."""
        if self.default_page_size > self.max_page_limit:
            raise ValueError(
                f"default_page_size ({self.default_page_size}) exceeds "
                f"max_page_limit ({self.max_page_limit})"
            )
        return self

    @model_validator(mode="after")
    def apply_environment_profile(self) -> "Settings":
        """Apply environment-specific defaults.

        Profiles:
            - PRODUCTION: INFO logging (unless stricter), JSON logs, no SQL echo
            - DEVELOPMENT: DEBUG logging, human-readable logs
            - TESTING: In-memory database, ERROR logging, no file logging
            - STAGING: INFO logging, JSON logs

        Returns:
            Modified settings instance with environment-specific adjustments
        """
        if self.environment == Environment.PRODUCTION:
            if self.log_level == "DEBUG":
                self.log_level = "INFO"
            self.log_json = True
            self.db_echo = False

        elif self.environment == Environment.DEVELOPMENT:
            self.log_level = "DEBUG"
            self.log_json = False

        elif self.environment == Environment.TESTING:
            self.database_url = "sqlite:///:memory:"
            self.log_level = "ERROR"
            self.log_to_file = False
            self.log_json = False

        elif self.environment == Environment.STAGING:
            self.log_level = "INFO"
            self.log_json = True

        return self

    @property
    def sqlalchemy_url(self) -> str:
        """Get SQLAlchemy database URL."""
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.database_path}"

    @property
    def log_file(self) -> Path | None:
        """Get log file path when file logging is enabled."""
        return self.data_dir / "blogdb.log" if self.log_to_file else None

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == Environment.TESTING


def get_settings() -> Settings:
    """Get settings instance.

    Returns:
        Configured Settings instance
    """
    return Settings()


# Global settings instance
settings = get_settings()
