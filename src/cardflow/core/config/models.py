"""
Configuration data models for cardflow.

These models define the structure of .cardflow.json and
~/.config/cardflow/config.json files, with validation and type safety via
Pydantic.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DatabaseConfig(BaseModel):
    """
    Location of the SQLite database holding boards, lists, modules and cards.
    """
    path: str = Field(
        default=".cardflow/cardflow.db",
        description="Path to the SQLite database (relative paths resolve from the project dir)"
    )


class CronConfig(BaseModel):
    """
    Shared secret for the release cron endpoint.

    When unset, the endpoint refuses every invocation with a 500.
    """
    secret: Optional[str] = Field(
        default=None,
        description="Shared secret expected in 'Authorization: Bearer' or 'x-cron-secret'"
    )

    @field_validator("secret", mode="before")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """An empty secret is the same as no secret."""
        if isinstance(v, str) and not v.strip():
            return None
        return v


class SchedulerConfig(BaseModel):
    """
    Polling worker settings for `cardflow release run --watch`.
    """
    interval_seconds: int = Field(
        default=300,
        ge=1,
        description="Seconds to sleep between release runs"
    )


class ServerConfig(BaseModel):
    """HTTP server settings for `cardflow serve`."""
    host: str = Field(default="127.0.0.1", description="Interface to bind")
    port: int = Field(default=8080, ge=1, le=65535, description="Port to bind")


class LoggingConfig(BaseModel):
    """Log level applied by the CLI when --debug is not given."""
    level: str = Field(default="INFO", description="Standard logging level name")

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        """Upper-case the level and reject unknown names."""
        level = str(v).upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {v}")
        return level


class CardflowConfig(BaseModel):
    """
    Top-level cardflow configuration.

    Loaded from defaults, user config, project config, and env vars.

    Example:
        >>> config = CardflowConfig(
        ...     database=DatabaseConfig(path="/tmp/board.db"),
        ...     cron=CronConfig(secret="s3cret"),
        ... )
        >>> config.scheduler.interval_seconds
        300
    """
    database: DatabaseConfig = Field(
        default_factory=DatabaseConfig,
        description="Database location"
    )
    cron: CronConfig = Field(
        default_factory=CronConfig,
        description="Cron endpoint authentication"
    )
    scheduler: SchedulerConfig = Field(
        default_factory=SchedulerConfig,
        description="Release polling worker"
    )
    server: ServerConfig = Field(
        default_factory=ServerConfig,
        description="HTTP server"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging"
    )

    model_config = ConfigDict(
        extra="allow",  # Allow extra fields for forward compatibility
        validate_assignment=True,
    )
