"""
Prometheus metrics for lifelog.

Metrics are created on init_metrics() and are no-ops until then, so the engine
can be embedded without a metrics endpoint.

Environment Variables:
    LIFELOG_METRICS_ENABLED: Enable metrics server (true/false) - default: false
    LIFELOG_METRICS_PORT: HTTP port for /metrics endpoint - default: 8080

Usage:
    from lifelog.metrics import init_metrics, track_command

    init_metrics()
    track_command("scheduleRecurringTransaction", "created")
"""

import logging
import os
import threading
from contextlib import contextmanager
from typing import Generator

from prometheus_client import Counter, Histogram, start_http_server

logger = logging.getLogger(__name__)

COMMANDS_TOTAL: "Counter" = None  # type: ignore
EVENTS_TOTAL: "Counter" = None  # type: ignore
QUERY_DURATION: "Histogram" = None  # type: ignore
FOLDED_EVENTS: "Histogram" = None  # type: ignore

_metrics_initialized = False
_metrics_lock = threading.Lock()


def init_metrics() -> None:
    """
    Initialize Prometheus metrics (call once at startup).

    Thread-safe via module-level lock.
    """
    global COMMANDS_TOTAL, EVENTS_TOTAL, QUERY_DURATION, FOLDED_EVENTS
    global _metrics_initialized

    with _metrics_lock:
        if _metrics_initialized:
            return

        # Command outcomes (labels: command, outcome=created|deduplicated|rejected)
        COMMANDS_TOTAL = Counter(
            "lifelog_commands_total",
            "Total number of commands handled",
            labelnames=["command", "outcome"],
        )

        EVENTS_TOTAL = Counter(
            "lifelog_events_total",
            "Total number of events appended to the event log",
            labelnames=["event_type"],
        )

        QUERY_DURATION = Histogram(
            "lifelog_query_duration_seconds",
            "Duration of fold-on-read queries in seconds",
            labelnames=["query"],
            buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0),
        )

        FOLDED_EVENTS = Histogram(
            "lifelog_folded_events",
            "Number of events folded per query",
            labelnames=["query"],
            buckets=(10, 100, 1000, 10000, 100000),
        )

        _metrics_initialized = True
        logger.info("Prometheus metrics initialized")


def start_metrics_server(enabled: bool, port: int) -> None:
    """
    Start Prometheus metrics HTTP server in background thread.

    Args:
        enabled: Whether to start metrics server
        port: HTTP port for /metrics endpoint
    """
    if not enabled:
        logger.info("Metrics server disabled (LIFELOG_METRICS_ENABLED=false)")
        return

    init_metrics()

    try:
        start_http_server(port, addr="0.0.0.0")
        logger.info(f"Metrics server started on http://0.0.0.0:{port}/metrics")
    except OSError as e:
        logger.error(f"Failed to start metrics server: {e}")


def start_metrics_server_from_env() -> None:
    enabled = os.getenv("LIFELOG_METRICS_ENABLED", "false").lower() == "true"
    port = int(os.getenv("LIFELOG_METRICS_PORT", "8080"))
    start_metrics_server(enabled=enabled, port=port)


def track_command(command: str, outcome: str) -> None:
    if COMMANDS_TOTAL is not None:
        COMMANDS_TOTAL.labels(command=command, outcome=outcome).inc()


def track_event(event_type: str) -> None:
    if EVENTS_TOTAL is not None:
        EVENTS_TOTAL.labels(event_type=event_type).inc()


def track_folded(query: str, count: int) -> None:
    if FOLDED_EVENTS is not None:
        FOLDED_EVENTS.labels(query=query).observe(count)


@contextmanager
def track_query_duration(query: str) -> Generator[None, None, None]:
    """
    Context manager for tracking query duration.

    Usage:
        with track_query_duration("recurringTransactions"):
            ...
    """
    if QUERY_DURATION is None:
        yield
        return

    with QUERY_DURATION.labels(query=query).time():
        yield
