"""Command-line flags.

Flags mirror the settings; anything not given on the command line falls
back to the environment (see ``Settings``).
"""

import argparse
from dataclasses import replace
from typing import Optional, Sequence

from faktory_exporter import __version__
from faktory_exporter.core.config import LogFormat, Settings, settings

from .config import ExporterConfig, parse_listen_address


COMMAND_COUNT_NOTE = (
    "Note: the Faktory command counter is exposed as "
    "faktory_server_command_count_total (counters carry a _total suffix)."
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="faktory-exporter",
        description="Prometheus exporter for Faktory job-queue servers",
        epilog=COMMAND_COUNT_NOTE,
    )
    parser.add_argument(
        "--faktory.url", dest="faktory_url", default=None, help="URL of the faktory instance"
    )
    parser.add_argument(
        "--faktory.timeout",
        dest="faktory_timeout_seconds",
        type=float,
        default=None,
        help="Timeout in seconds for every Faktory round trip",
    )
    parser.add_argument(
        "--web.listen-address",
        dest="listen_address",
        default=None,
        help="Address on which to expose metrics and web interface",
    )
    parser.add_argument(
        "--web.telemetry-path",
        dest="metrics_path",
        default=None,
        help="Path under which to expose metrics",
    )
    parser.add_argument(
        "--log.level",
        dest="log_level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Only log messages with the given severity or above",
    )
    parser.add_argument(
        "--log.format",
        dest="log_format",
        type=LogFormat,
        choices=[f.value for f in LogFormat],
        default=None,
        help="Output format of log messages (logfmt or json)",
    )
    parser.add_argument("--version", action="version", version=f"faktory_exporter {__version__}")
    return parser


def parse_config(
    argv: Optional[Sequence[str]] = None,
    source: Settings = settings,
) -> ExporterConfig:
    """Parse ``argv`` and overlay the flags on the settings-derived config.

    Exits with status 2 (argparse convention) on invalid flags.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.metrics_path is not None and (
        not args.metrics_path.startswith("/") or args.metrics_path == "/"
    ):
        parser.error("--web.telemetry-path must start with '/' and must not be '/'")

    config = ExporterConfig.from_settings(source).with_overrides(
        faktory_url=args.faktory_url,
        faktory_timeout_seconds=args.faktory_timeout_seconds,
        metrics_path=args.metrics_path,
        log_level=args.log_level,
        log_format=args.log_format,
    )
    if args.listen_address is not None:
        try:
            host, port = parse_listen_address(args.listen_address)
        except ValueError as e:
            parser.error(str(e))
        config = replace(config, listen_host=host, listen_port=port)
    return config
