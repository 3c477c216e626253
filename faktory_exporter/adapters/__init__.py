"""Adapters for external systems (Faktory, Prometheus)."""
