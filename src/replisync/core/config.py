"""
Replisync configuration management.

Provides centralized configuration with validation using Pydantic.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Annotated, Literal

from croniter import croniter
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from replisync.core.errors import ConfigurationError
from replisync.core.models import ConflictPolicy, Direction

DEFAULT_CONFIG_FILE = "config.json"
DEFAULT_DB_FILE = "data.sqlite"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class LoggingConfig(BaseModel):
    """Configuration for structured logging."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    file_enabled: bool = False
    console_enabled: bool = True
    json_format: bool = False
    log_directory: Path = Field(default_factory=lambda: Path.home() / ".replisync" / "logs")

    @field_validator("log_directory", mode="before")
    @classmethod
    def expand_path(cls, v: str | Path) -> Path:
        return Path(v).expanduser().resolve()


class IntervalSchedule(BaseModel):
    """Run a pass every N seconds."""

    type: Literal["interval"] = "interval"
    every_seconds: int = Field(gt=0)


class CronSchedule(BaseModel):
    """Run a pass on a cron expression (names, ranges, steps and @macros allowed)."""

    type: Literal["cron"] = "cron"
    expression: str

    @field_validator("expression")
    @classmethod
    def validate_expression(cls, v: str) -> str:
        v = v.strip()
        if not croniter.is_valid(v):
            raise ValueError(f"invalid cron expression: {v!r}")
        return v


ScheduleConfig = Annotated[IntervalSchedule | CronSchedule, Field(discriminator="type")]


class CollectionConfig(BaseModel):
    """A named collection synchronized between a local and a cloud table."""

    name: str
    local_table: str
    cloud_table: str
    direction: Direction
    conflict_policy: ConflictPolicy = ConflictPolicy.LATEST_WINS

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("collection name is required")
        return v.strip()

    @field_validator("local_table", "cloud_table")
    @classmethod
    def validate_table(cls, v: str) -> str:
        if not _IDENTIFIER.match(v):
            raise ValueError(f"table name must be a plain SQL identifier: {v!r}")
        return v

    @model_validator(mode="after")
    def distinct_tables(self) -> CollectionConfig:
        if self.local_table == self.cloud_table:
            raise ValueError("local_table and cloud_table must differ")
        return self


class ReplisyncConfig(BaseModel):
    """Main Replisync configuration."""

    database_file: Path = Path(DEFAULT_DB_FILE)
    schedule: ScheduleConfig | None = None
    collections: list[CollectionConfig] = Field(min_length=1)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("database_file", mode="before")
    @classmethod
    def expand_database_path(cls, v: str | Path) -> Path:
        if not str(v).strip():
            raise ValueError("database_file must be a non-empty path")
        return Path(v).expanduser()

    @model_validator(mode="after")
    def unique_collection_names(self) -> ReplisyncConfig:
        names = [c.name for c in self.collections]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate collection names: {', '.join(duplicates)}")
        return self

    def get_collection(self, name: str) -> CollectionConfig:
        """Look up a collection by name."""
        for collection in self.collections:
            if collection.name == name:
                return collection
        raise ConfigurationError(f"Unknown collection: {name}")

    @classmethod
    def load(cls, config_path: Path) -> ReplisyncConfig:
        """Load and validate configuration from a JSON file."""
        try:
            with open(config_path) as f:
                data = json.load(f)
        except OSError as e:
            raise ConfigurationError(f"Cannot read config {config_path}: {e}") from e
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {config_path}: {e}") from e

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid config {config_path}:\n{e}") from e

    def save(self, config_path: Path) -> None:
        """Save configuration to file."""
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w") as f:
            json.dump(
                self.model_dump(mode="json", exclude_none=True),
                f,
                indent=2,
                default=str,
            )


def get_default_config() -> ReplisyncConfig:
    """Get the starter configuration."""
    return ReplisyncConfig(
        database_file=Path(DEFAULT_DB_FILE),
        collections=[
            CollectionConfig(
                name="items",
                local_table="local_items",
                cloud_table="cloud_items",
                direction=Direction.BOTH,
                conflict_policy=ConflictPolicy.LATEST_WINS,
            )
        ],
    )


def load_config(config_path: Path | None = None) -> ReplisyncConfig:
    """Load configuration, writing a starter file on first run."""
    if config_path is None:
        config_path = Path(DEFAULT_CONFIG_FILE)

    if not config_path.exists():
        config = get_default_config()
        config.save(config_path)
        return config

    return ReplisyncConfig.load(config_path)
