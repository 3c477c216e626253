"""Metrics renderer adapters (Prometheus + Fake).

The Prometheus implementation serializes every collector registered on the
exporter's ``CollectorRegistry``. The encoder is negotiated from the
scraper's ``Accept`` header: OpenMetrics when asked for, the classic text
exposition format otherwise.
"""

from typing import Optional

from prometheus_client import CollectorRegistry
from prometheus_client.exposition import choose_encoder

from faktory_exporter.core.protocols.metrics import MetricsRenderer, RenderedMetrics


def _parse_content_type(raw: str) -> tuple[str, str]:
    """Split a Content-Type string into (media-type, charset).

    aiohttp builds the header from ``content_type`` and ``charset``
    separately and rejects a charset embedded in ``content_type``.
    """
    charset = "utf-8"
    media: list[str] = []
    for part in (p.strip() for p in raw.split(";")):
        if part.lower().startswith("charset="):
            charset = part.split("=", 1)[1].strip()
        elif part:
            media.append(part)
    return "; ".join(media), charset


class PrometheusMetricsRenderer(MetricsRenderer):
    """Render all metrics in a CollectorRegistry."""

    def __init__(self, registry: CollectorRegistry) -> None:
        self._registry = registry

    def render(self, accept: Optional[str] = None) -> RenderedMetrics:
        encoder, content_type = choose_encoder(accept or "")
        media_type, charset = _parse_content_type(content_type)
        return RenderedMetrics(
            body=encoder(self._registry),
            media_type=media_type,
            charset=charset,
        )


# ---------------------------------------------------------------------------
# Fake
# ---------------------------------------------------------------------------


class FakeMetricsRenderer(MetricsRenderer):
    """In-memory spy implementing the MetricsRenderer protocol."""

    def __init__(self, body: bytes = b"# fake metrics\n") -> None:
        self._body = body
        self._error: Optional[Exception] = None
        self.accept_headers: list[Optional[str]] = []

    @property
    def render_calls(self) -> int:
        return len(self.accept_headers)

    def render(self, accept: Optional[str] = None) -> RenderedMetrics:
        self.accept_headers.append(accept)
        if self._error is not None:
            raise self._error
        return RenderedMetrics(body=self._body, media_type="text/plain", charset="utf-8")

    # -- test helpers --

    def fail_with(self, error: Exception) -> None:
        """Raise ``error`` on every subsequent render."""
        self._error = error
