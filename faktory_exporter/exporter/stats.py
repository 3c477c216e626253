"""Decoded Faktory statistics.

Frozen value object produced by ``decode_status()`` on every scrape and
discarded once the collector has applied it.
"""

from dataclasses import dataclass, field
from typing import Union

Number = Union[int, float]


@dataclass(frozen=True)
class Stats:
    """Validated projection of a Faktory ``INFO`` document."""

    command_count: Number
    connections: Number
    total_enqueued: Number
    total_failures: Number
    total_processed: Number
    total_queues: Number
    retries_enqueued: Number
    retries_size: Number
    queue_sizes: dict[str, Number] = field(default_factory=dict)
