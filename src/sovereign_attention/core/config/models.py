"""
Configuration Models

Pydantic models for type-safe configuration management with validation,
defaults, and field documentation.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, Field, field_validator, ConfigDict


DEFAULT_DB_PATH = Path.home() / ".sap" / "metrics.db"
MODIFY_MARKER = "{content}"


class StorageConfig(BaseModel):
    """Configuration for the durable metrics and rules store."""

    db_path: Path = Field(
        default=DEFAULT_DB_PATH,
        description="SQLite database file holding metrics and rules"
    )
    cleanup_days: int = Field(
        default=30,
        ge=0,
        description="Default retention window (days) used by the cleanup command"
    )
    export_indent: int = Field(
        default=2,
        ge=0,
        le=8,
        description="JSON indentation for metrics exports (0 for compact)"
    )

    @field_validator('db_path')
    @classmethod
    def expand_db_path(cls, v):
        """Expand '~' in the database path."""
        return Path(v).expanduser()


class RulesConfig(BaseModel):
    """Configuration for the rule engine."""

    load_on_start: bool = Field(
        default=True,
        description="Load persisted rules into the engine when the processor opens"
    )
    regex_cache_size: int = Field(
        default=1024,
        ge=1,
        description="Number of cached regex patterns above which adding a rule logs a warning"
    )


class AttentionConfig(BaseModel):
    """Configuration for the in-memory attention tracker."""

    hydrate_on_start: bool = Field(
        default=True,
        description="Seed the tracker from persisted metrics when the processor opens"
    )
    default_top: int = Field(
        default=10,
        ge=1,
        le=10000,
        description="Default number of records shown by metrics listings"
    )


class LoggingConfig(BaseModel):
    """Configuration for application logging."""

    level: str = Field(
        default="WARNING",
        description="Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_file: Optional[Path] = Field(
        default=None,
        description="Optional log file; console logging is always enabled"
    )
    format: str = Field(
        default='%(asctime)s - %(levelname)s - %(message)s',
        description="logging format string"
    )

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        """Validate the log level name."""
        level = str(v).upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level


class AppConfig(BaseModel):
    """Root application configuration model."""

    # Metadata
    version: str = Field(default="0.1.0", description="Configuration version")
    created: datetime = Field(default_factory=datetime.now, description="Configuration creation time")

    # Sections
    storage: StorageConfig = Field(default_factory=StorageConfig, description="Storage configuration")
    rules: RulesConfig = Field(default_factory=RulesConfig, description="Rule engine configuration")
    attention: AttentionConfig = Field(default_factory=AttentionConfig, description="Attention tracker configuration")
    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="Logging configuration")

    model_config = ConfigDict(
        extra="forbid",
        validate_assignment=True,
    )
