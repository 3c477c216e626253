"""Core protocols for dependency injection."""

from faktory_exporter.core.protocols.metrics import MetricsRenderer, RenderedMetrics
from faktory_exporter.core.protocols.status import StatusDocument, StatusSource

__all__ = [
    "MetricsRenderer",
    "RenderedMetrics",
    "StatusDocument",
    "StatusSource",
]
