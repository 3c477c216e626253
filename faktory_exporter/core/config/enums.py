"""Configuration enums for type-safe settings.

They inherit from str to maintain JSON serialization compatibility.
"""

from enum import Enum


class LogFormat(str, Enum):
    """Log output formats.

    ``logfmt`` renders ``key=value`` pairs, ``json`` renders one JSON object
    per line.
    """

    LOGFMT = "logfmt"
    JSON = "json"


class FaktoryScheme(str, Enum):
    """Transport schemes accepted in the Faktory connection URL."""

    TCP = "tcp"
    TCP_TLS = "tcp+tls"
