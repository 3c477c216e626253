"""Metrics rendering protocol.

``MetricsRenderer`` serializes every collector of a registry into a
scrapeable wire format; the HTTP server depends only on this protocol.
"""

from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable


@dataclass(frozen=True)
class RenderedMetrics:
    """A serialized metrics page ready to be written to the wire."""

    body: bytes
    media_type: str
    charset: str


@runtime_checkable
class MetricsRenderer(Protocol):
    """Protocol for rendering collected metrics into a scrapeable format."""

    def render(self, accept: Optional[str] = None) -> RenderedMetrics:
        """Serialize all collected metrics.

        Args:
            accept: The scraper's ``Accept`` header, used to pick between the
                Prometheus text format and OpenMetrics.
        """
        ...
