"""Configuration module for the Faktory exporter.

Usage:
    from faktory_exporter.core.config import settings, LogFormat

    if settings.LOG_FORMAT == LogFormat.JSON:
        ...
"""

from faktory_exporter.core.config.enums import FaktoryScheme, LogFormat
from faktory_exporter.core.config.settings import Settings

__all__ = [
    "FaktoryScheme",
    "LogFormat",
    "Settings",
    "settings",
]

# Singleton settings instance
settings = Settings()
