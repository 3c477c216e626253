"""Root conftest for pytest configuration and shared fixtures.

Fixtures here are available to every colocated ``tests/`` directory.
"""

import copy

import pytest

# Register pytest-asyncio plugin at the root level
pytest_plugins = ("pytest_asyncio",)


# ---------------------------------------------------------------------------
# Status documents
# ---------------------------------------------------------------------------

INFO_DOCUMENT = {
    "server": {
        "description": "Faktory",
        "faktory_version": "1.9.0",
        "uptime": 1234,
        "connections": 3,
        "command_count": 42,
        "used_memory_mb": 8,
    },
    "faktory": {
        "total_failures": 2,
        "total_processed": 98,
        "total_enqueued": 100,
        "total_queues": 2,
        "queues": {"default": 10, "low": 5},
        "tasks": {
            "Busy": {"size": 0, "cycles": 10, "wall_time_sec": 0.01},
            "Dead": {"size": 0, "cycles": 10, "wall_time_sec": 0.01},
            "Retries": {"enqueued": 1, "size": 4, "cycles": 10, "wall_time_sec": 0.02},
            "Scheduled": {"enqueued": 0, "size": 0, "cycles": 10, "wall_time_sec": 0.01},
        },
    },
}


@pytest.fixture
def info_document():
    """A complete Faktory INFO document (fresh copy per test)."""
    return copy.deepcopy(INFO_DOCUMENT)


# ---------------------------------------------------------------------------
# Shared fake fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_status_source(info_document):
    """FakeStatusSource serving the complete INFO document."""
    from faktory_exporter.adapters.faktory import FakeStatusSource

    return FakeStatusSource(info_document)


@pytest.fixture
def fake_metrics_renderer():
    """FakeMetricsRenderer that records render calls."""
    from faktory_exporter.adapters.metrics import FakeMetricsRenderer

    return FakeMetricsRenderer()
