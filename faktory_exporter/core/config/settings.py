"""Exporter settings.

All defaults are defined here in the schema. Uses Pydantic Settings for
automatic env var loading; command-line flags override these values.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from faktory_exporter.core.config.enums import LogFormat


class Settings(BaseSettings):
    """Exporter configuration loaded from the environment and ``.env``."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    FAKTORY_URL: str = Field("tcp://localhost:7419", description="URL of the Faktory instance")
    FAKTORY_TIMEOUT_SECONDS: float = Field(
        5.0, gt=0, description="Socket timeout for every Faktory round trip"
    )

    WEB_LISTEN_ADDRESS: str = Field(
        ":9386", description="Address on which to expose metrics and web interface"
    )
    WEB_TELEMETRY_PATH: str = Field("/metrics", description="Path under which to expose metrics")

    LOG_LEVEL: str = Field("INFO", description="Minimum level of emitted log records")
    LOG_FORMAT: LogFormat = Field(LogFormat.LOGFMT, description="Log output format")

    SHUTDOWN_TIMEOUT_SECONDS: float = Field(
        5.0, gt=0, description="Upper bound for graceful HTTP server shutdown"
    )

    @field_validator("WEB_TELEMETRY_PATH")
    @classmethod
    def validate_telemetry_path(cls, v: str) -> str:
        """The metrics path must be absolute and must not shadow the landing page."""
        if not v.startswith("/"):
            raise ValueError("WEB_TELEMETRY_PATH must start with '/'")
        if v == "/":
            raise ValueError("WEB_TELEMETRY_PATH must not be '/' (reserved for the landing page)")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize the level name and reject unknown levels."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level
