"""Prometheus exporter for Faktory job-queue servers."""

__version__ = "0.3.0"
