"""HTTP serving surface for the exporter."""

from faktory_exporter.api.server import ExporterServer

__all__ = ["ExporterServer"]
