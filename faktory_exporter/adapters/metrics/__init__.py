"""Metrics adapters: Prometheus and Fake implementations."""

from faktory_exporter.adapters.metrics.renderer import (
    FakeMetricsRenderer,
    PrometheusMetricsRenderer,
)

__all__ = [
    "FakeMetricsRenderer",
    "PrometheusMetricsRenderer",
]
