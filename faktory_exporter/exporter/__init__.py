"""Scrape-and-publish core: status decoding and the Prometheus collector."""

from faktory_exporter.exporter.collector import FaktoryCollector, MetricSnapshot
from faktory_exporter.exporter.decoder import decode_status
from faktory_exporter.exporter.stats import Stats

__all__ = [
    "FaktoryCollector",
    "MetricSnapshot",
    "Stats",
    "decode_status",
]
