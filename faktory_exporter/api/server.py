"""HTTP server exposing the Faktory metrics.

Endpoints:
    GET  /               - Landing page linking to the metrics path
    GET  <metrics path>  - Prometheus metrics (default /metrics)

Rendering triggers a blocking scrape of the Faktory instance, so it runs in
a worker thread; concurrent pulls queue on the collector's scrape lock
instead of stalling the event loop.
"""

import asyncio
import html
from typing import Optional

from aiohttp import web

from faktory_exporter.core.logging import logger
from faktory_exporter.core.protocols.metrics import MetricsRenderer

LANDING_PAGE = """<html>
	<head>
		<title>Faktory Exporter</title>
	</head>
	<body>
		<h1>Faktory Exporter</h1>
		<p>
		<a href="{metrics_path}">Metrics</a>
		</p>
	</body>
</html>"""


class ExporterServer:
    """Lightweight aiohttp server serving the metrics page for Prometheus."""

    def __init__(
        self,
        renderer: MetricsRenderer,
        port: int,
        host: Optional[str] = None,
        metrics_path: str = "/metrics",
    ) -> None:
        """Initialize the server; ``host=None`` listens on all interfaces."""
        self._renderer = renderer
        self._port = port
        self._host = host
        self._metrics_path = metrics_path
        self._runner: web.AppRunner | None = None
        self._landing_page = LANDING_PAGE.format(metrics_path=html.escape(metrics_path))

    @property
    def bound_port(self) -> int | None:
        """Port actually bound (useful when started with ``port=0``)."""
        if self._runner is None:
            return None
        for site in self._runner.sites:
            server = getattr(site, "_server", None)
            if server is not None and server.sockets:
                return server.sockets[0].getsockname()[1]
        return None

    def build_app(self) -> web.Application:
        """Create the aiohttp application with all routes."""
        app = web.Application()
        app.router.add_get("/", self._handle_landing)
        app.router.add_get(self._metrics_path, self._handle_metrics)
        return app

    async def start(self) -> None:
        """Start the server.

        Raises:
            OSError: the listen address cannot be bound.
        """
        self._runner = web.AppRunner(self.build_app(), access_log=None)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._host, self._port)
        try:
            await site.start()
        except OSError:
            await self._runner.cleanup()
            self._runner = None
            raise
        logger.info(
            f"Listening on {self._host or '0.0.0.0'}:{self.bound_port} "
            f"(endpoints: /, {self._metrics_path})"
        )

    async def stop(self) -> None:
        """Stop the server."""
        if self._runner:
            try:
                await self._runner.cleanup()
            finally:
                self._runner = None

    # -------------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------------

    async def _handle_landing(self, request: web.Request) -> web.Response:
        """Landing page."""
        return web.Response(text=self._landing_page, content_type="text/html")

    async def _handle_metrics(self, request: web.Request) -> web.Response:
        """Return the metrics in the negotiated exposition format."""
        try:
            rendered = await asyncio.to_thread(
                self._renderer.render, request.headers.get("Accept")
            )
        except Exception as e:
            logger.error(f"Error generating Prometheus metrics: {e}", exc_info=True)
            return web.Response(text=f"Error: {str(e)}", status=500)

        return web.Response(
            body=rendered.body,
            content_type=rendered.media_type,
            charset=rendered.charset,
        )
