"""Faktory exporter service.

Package structure:
    config.py   - ExporterConfig dataclass and listen-address parsing
    cli.py      - Command-line flags layered over the settings
    __init__.py - ExporterService class and main() entry point
"""

import asyncio
import platform
import signal
import sys
from typing import Any, Optional, Sequence

from prometheus_client import CollectorRegistry, Info

from faktory_exporter import __version__
from faktory_exporter.adapters.faktory import FaktoryClient
from faktory_exporter.adapters.metrics import PrometheusMetricsRenderer
from faktory_exporter.api.server import ExporterServer
from faktory_exporter.core.exceptions import ConnectionSetupError
from faktory_exporter.core.logging import configure_logging, logger
from faktory_exporter.core.protocols.status import StatusSource
from faktory_exporter.exporter.collector import FaktoryCollector

from .cli import parse_config
from .config import ExporterConfig

__all__ = [
    "ExporterConfig",
    "ExporterService",
    "main",
    "run",
]


# =============================================================================
# Exporter Service
# =============================================================================


class ExporterService:
    """Exporter lifecycle management.

    Responsibilities:
        - Own the collector registry, the Faktory collector and build info
        - Start/stop the HTTP server
        - Close the upstream connection on shutdown
    """

    def __init__(self, config: ExporterConfig, source: StatusSource) -> None:
        """Wire the collector, registry and server around ``source``.

        A private registry is used so that only Faktory metrics and the build
        info are exposed, without the default process/platform collectors.
        """
        self._config = config
        self._source = source
        self._stop_requested = asyncio.Event()

        self._registry = CollectorRegistry()
        self._collector = FaktoryCollector(source)
        self._registry.register(self._collector)

        build_info = Info(
            "faktory_exporter_build",
            "A metric with a constant '1' value labeled by version and python version "
            "from which faktory_exporter was built.",
            registry=self._registry,
        )
        build_info.info({"version": __version__, "pythonversion": platform.python_version()})

        self._server = ExporterServer(
            renderer=PrometheusMetricsRenderer(self._registry),
            port=config.listen_port,
            host=config.listen_host,
            metrics_path=config.metrics_path,
        )

    @classmethod
    def connect(cls, config: ExporterConfig) -> "ExporterService":
        """Dial the Faktory instance from ``config`` and build the service.

        Raises:
            ConnectionSetupError: the URL is invalid or the server is
                unreachable.
        """
        client = FaktoryClient.from_url(
            config.faktory_url, timeout=config.faktory_timeout_seconds
        )
        return cls(config, client)

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    @property
    def server(self) -> ExporterServer:
        return self._server

    async def start(self) -> None:
        """Start serving metrics."""
        await self._server.start()

    def request_stop(self) -> None:
        """Ask ``wait_until_stopped()`` to return."""
        self._stop_requested.set()

    async def wait_until_stopped(self) -> None:
        await self._stop_requested.wait()

    async def stop(self) -> None:
        """Stop the server, waiting no longer than the shutdown timeout."""
        try:
            await asyncio.wait_for(
                self._server.stop(), timeout=self._config.shutdown_timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.error(
                f"HTTP server did not shut down within "
                f"{self._config.shutdown_timeout_seconds}s"
            )
        finally:
            await asyncio.to_thread(self._source.close)


# =============================================================================
# Entry Point
# =============================================================================


async def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point; returns the process exit status."""
    # 1. Flags and logging
    config = parse_config(argv)
    configure_logging(config.log_level, config.log_format)
    logger.info(
        "Starting faktory_exporter",
        extra={"version": __version__, "python": platform.python_version()},
    )

    # 2. Connect to Faktory (fatal on failure)
    try:
        service = await asyncio.to_thread(ExporterService.connect, config)
    except ConnectionSetupError as e:
        logger.error(str(e))
        return 1

    # 3. Set up signal handlers
    loop = asyncio.get_running_loop()

    def signal_handler(signum: int, frame: Any) -> None:
        logger.warning(f"Received {signal.Signals(signum).name}, exiting gracefully...")
        loop.call_soon_threadsafe(service.request_stop)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    # 4. Serve until a termination signal arrives
    try:
        await service.start()
    except OSError as e:
        logger.error(f"Error starting http server, exiting: {e}")
        await service.stop()
        return 1

    try:
        await service.wait_until_stopped()
    finally:
        await service.stop()

    logger.info("See you next time!")
    return 0


def run() -> None:
    """Console-script entry point."""
    sys.exit(asyncio.run(main()))
