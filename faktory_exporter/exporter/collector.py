"""Prometheus collector for a Faktory instance.

``FaktoryCollector`` issues the ``INFO`` command on every collection request
and exports the decoded statistics. It is registered on a private
``CollectorRegistry``; the registry calls ``describe()`` once at
registration time and ``collect()`` on every scrape.

Scrape cycle (serialized by ``_lock``):

1. reset the per-label metrics so queues that disappeared are not exported,
2. fetch and decode the status document,
3. on success overwrite the Faktory metrics, on failure keep the previous
   scalar values,
4. record duration, total scrapes, failures and ``up``.

Failures are logged and reflected in ``up`` / the failure counter; they are
never raised to the caller so a scrape always gets a complete page.

Counters are exposed with a ``_total`` suffix on their samples. Note that
``faktory_server_command_count`` is therefore served as
``faktory_server_command_count_total``; queries written against exporters
that publish the bare name need updating.
"""

import threading
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field

from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily
from prometheus_client.metrics_core import Metric
from prometheus_client.registry import Collector

from faktory_exporter.core.exceptions import DecodeError, FetchError
from faktory_exporter.core.logging import logger
from faktory_exporter.core.protocols.status import StatusSource
from faktory_exporter.exporter.decoder import decode_status
from faktory_exporter.exporter.stats import Stats

NAMESPACE = "faktory"

JOB_STATUSES = ("enqueued", "failure", "processed")


@dataclass
class MetricSnapshot:
    """Current values of every exported metric."""

    up: float = 0.0
    scrape_duration_seconds: float = 0.0
    scrapes_total: float = 0.0
    scrape_failures_total: float = 0.0

    command_count: float = 0.0
    connections: float = 0.0
    total_queues: float = 0.0
    retries_enqueued: float = 0.0
    retries_size: float = 0.0

    # Per-label metrics, rebuilt on every scrape.
    jobs: dict[str, float] = field(default_factory=dict)
    queues: dict[str, float] = field(default_factory=dict)

    def reset_labels(self) -> None:
        self.jobs.clear()
        self.queues.clear()

    def apply(self, stats: Stats) -> None:
        self.command_count = stats.command_count
        self.connections = stats.connections
        self.total_queues = stats.total_queues
        self.retries_enqueued = stats.retries_enqueued
        self.retries_size = stats.retries_size
        self.jobs.update(
            {
                "enqueued": stats.total_enqueued,
                "failure": stats.total_failures,
                "processed": stats.total_processed,
            }
        )
        self.queues.update(stats.queue_sizes)


def _name(subsystem: str, name: str) -> str:
    return "_".join(part for part in (NAMESPACE, subsystem, name) if part)


def _metric_families(snapshot: MetricSnapshot | None) -> list[Metric]:
    """Build one family per exported metric, in a fixed order.

    With ``snapshot=None`` the families carry no samples and serve as
    descriptors.
    """
    describe_only = snapshot is None

    def gauge(name: str, documentation: str, value: float) -> GaugeMetricFamily:
        if describe_only:
            return GaugeMetricFamily(name, documentation)
        return GaugeMetricFamily(name, documentation, value=value)

    def counter(name: str, documentation: str, value: float) -> CounterMetricFamily:
        if describe_only:
            return CounterMetricFamily(name, documentation)
        return CounterMetricFamily(name, documentation, value=value)

    s = snapshot or MetricSnapshot()

    jobs = CounterMetricFamily(_name("jobs", "total"), "Total amount of jobs.", labels=["status"])
    queues = GaugeMetricFamily(
        _name("queue", "jobs"), "Number of jobs in every queue.", labels=["queue"]
    )
    if not describe_only:
        for status in JOB_STATUSES:
            if status in s.jobs:
                jobs.add_metric([status], s.jobs[status])
        for queue, size in sorted(s.queues.items()):
            queues.add_metric([queue], size)

    return [
        gauge(_name("", "up"), "Was the last scrape of the Faktory instance successful?", s.up),
        gauge(
            _name("exporter", "scrape_duration_seconds"),
            "Duration of the scrape of metrics from the Faktory instance.",
            s.scrape_duration_seconds,
        ),
        counter(
            _name("exporter", "scrape_failures_total"),
            "Total amount of scrape failures.",
            s.scrape_failures_total,
        ),
        counter(_name("exporter", "scrapes_total"), "Total Faktory scrapes.", s.scrapes_total),
        counter(
            _name("server", "command_count"),
            "Number of commands which have been issued to the server.",
            s.command_count,
        ),
        gauge(
            _name("server", "connections"),
            "Number of currently connected clients.",
            s.connections,
        ),
        jobs,
        gauge(
            _name("tasks_retries", "enqueued"), "Task retries enqueued.", s.retries_enqueued
        ),
        gauge(_name("tasks_retries", "size"), "Task retries size.", s.retries_size),
        gauge(_name("queues", "total"), "Total amount of queues.", s.total_queues),
        queues,
    ]


class FaktoryCollector(Collector):
    """Collects stats from a Faktory instance by issuing the ``INFO`` command.

    Args:
        source: Anything satisfying ``StatusSource``; in production the
            Faktory wire client.
        clock: Monotonic clock used to measure the scrape duration.
    """

    def __init__(
        self,
        source: StatusSource,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._source = source
        self._clock = clock
        self._lock = threading.Lock()
        self._snapshot = MetricSnapshot()
        self._log = logger.with_context(component="collector")

    def describe(self) -> list[Metric]:
        """Describe all the metrics exported by the collector."""
        return _metric_families(None)

    def collect(self) -> Iterator[Metric]:
        """Scrape the Faktory instance and deliver the result as metrics."""
        yield from self.collect_snapshot()

    def collect_snapshot(self) -> list[Metric]:
        """Run one scrape cycle and return the value of every metric.

        Concurrent callers are serialized; each one runs its own cycle.
        """
        with self._lock:
            self._snapshot.reset_labels()
            self._scrape()
            return _metric_families(self._snapshot)

    def _scrape(self) -> None:
        """Fetch, decode and apply one status document, then do the bookkeeping."""
        begun = self._clock()
        failed = True
        try:
            stats = decode_status(self._source.fetch_status())
            self._snapshot.apply(stats)
            failed = False
        except DecodeError as e:
            self._log.warning("Invalid Faktory status document", extra={"field": e.field})
        except FetchError as e:
            self._log.warning(f"Failed to fetch Faktory status: {e}")
        except Exception as e:
            self._log.error(f"Unexpected error while scraping Faktory: {e}", exc_info=True)
        finally:
            s = self._snapshot
            s.scrape_duration_seconds = self._clock() - begun
            s.scrapes_total += 1
            if failed:
                s.up = 0
                s.scrape_failures_total += 1
            else:
                s.up = 1
