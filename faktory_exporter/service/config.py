"""Exporter service configuration."""

from dataclasses import dataclass, replace
from typing import Any, Optional

from faktory_exporter.core.config import LogFormat, Settings, settings


def parse_listen_address(address: str) -> tuple[Optional[str], int]:
    """Split a ``host:port`` listen address.

    Accepts ``:9386`` (all interfaces), ``0.0.0.0:9386`` and ``[::1]:9386``.

    Raises:
        ValueError: the address has no valid port.
    """
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ValueError(f"Listen address {address!r} must be of the form host:port")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        port_number = int(port)
    except ValueError:
        raise ValueError(f"Listen address {address!r} has an invalid port") from None
    if not 0 <= port_number <= 65535:
        raise ValueError(f"Listen address {address!r} has an out-of-range port")
    return host or None, port_number


@dataclass(frozen=True)
class ExporterConfig:
    """Exporter configuration - all tunables in one place.

    Attributes:
        faktory_url: Connection URL of the Faktory instance
        faktory_timeout_seconds: Socket timeout for every Faktory round trip

        listen_host: Interface to bind, None for all interfaces
        listen_port: Port to bind
        metrics_path: Path under which metrics are served

        log_level: Minimum level of emitted log records
        log_format: logfmt or json

        shutdown_timeout_seconds: Upper bound for graceful HTTP shutdown
    """

    faktory_url: str
    listen_host: Optional[str]
    listen_port: int
    metrics_path: str = "/metrics"
    faktory_timeout_seconds: float = 5.0
    log_level: str = "INFO"
    log_format: LogFormat = LogFormat.LOGFMT
    shutdown_timeout_seconds: float = 5.0

    @classmethod
    def from_settings(cls, source: Settings = settings) -> "ExporterConfig":
        """Build config from environment settings."""
        host, port = parse_listen_address(source.WEB_LISTEN_ADDRESS)
        return cls(
            faktory_url=source.FAKTORY_URL,
            faktory_timeout_seconds=source.FAKTORY_TIMEOUT_SECONDS,
            listen_host=host,
            listen_port=port,
            metrics_path=source.WEB_TELEMETRY_PATH,
            log_level=source.LOG_LEVEL,
            log_format=source.LOG_FORMAT,
            shutdown_timeout_seconds=source.SHUTDOWN_TIMEOUT_SECONDS,
        )

    def with_overrides(self, **overrides: Any) -> "ExporterConfig":
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})
