"""
Prometheus metrics for the simulation kernel.

Metrics stay unregistered until init_metrics() (or start_metrics_server)
is called; the track_* helpers are no-ops before that.

Usage:
    from simkernel.metrics import start_metrics_server, track_dispatch

    start_metrics_server(enabled=True, port=8080)
    track_dispatch("ok")
"""

import logging
import threading
from contextlib import contextmanager
from typing import Generator, Optional

from prometheus_client import Counter, Gauge, Histogram, start_http_server

logger = logging.getLogger(__name__)

EVENTS_DISPATCHED: Optional[Counter] = None
CONTINUATIONS_RESUMED: Optional[Counter] = None
UNCAUGHT_FAILURES: Optional[Counter] = None
QUEUE_DEPTH: Optional[Gauge] = None
SIMULATED_TIME: Optional[Gauge] = None
RUN_DURATION: Optional[Histogram] = None

_metrics_initialized = False
_metrics_lock = threading.Lock()


def init_metrics() -> None:
    """
    Register kernel metrics (idempotent, thread-safe).
    """
    global EVENTS_DISPATCHED, CONTINUATIONS_RESUMED, UNCAUGHT_FAILURES
    global QUEUE_DEPTH, SIMULATED_TIME, RUN_DURATION
    global _metrics_initialized

    with _metrics_lock:
        if _metrics_initialized:
            return

        # Dispatch counter (labels: outcome = ok, failed, mismatch)
        EVENTS_DISPATCHED = Counter(
            "simkernel_events_dispatched_total",
            "Total number of event records dispatched",
            labelnames=["outcome"],
        )

        CONTINUATIONS_RESUMED = Counter(
            "simkernel_continuations_resumed_total",
            "Total number of suspended callers re-enqueued with an outcome",
        )

        UNCAUGHT_FAILURES = Counter(
            "simkernel_uncaught_failures_total",
            "Total number of behavior failures nothing was awaiting",
        )

        QUEUE_DEPTH = Gauge(
            "simkernel_queue_depth",
            "Number of pending event records",
        )

        SIMULATED_TIME = Gauge(
            "simkernel_simulated_time",
            "Current simulated instant of the controller",
        )

        # Wall-clock duration of Controller.run()
        RUN_DURATION = Histogram(
            "simkernel_run_duration_seconds",
            "Wall-clock duration of dispatch loop runs in seconds",
            buckets=(0.001, 0.01, 0.1, 0.5, 1.0, 5.0, 30.0, 120.0),
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
        logger.info("Metrics server disabled")
        return

    init_metrics()

    try:
        # start_http_server is non-blocking (starts daemon thread)
        start_http_server(port, addr="0.0.0.0")
        logger.info(f"Metrics server started on http://0.0.0.0:{port}/metrics")
    except OSError as e:
        logger.error(f"Failed to start metrics server: {e}")


@contextmanager
def track_run_duration() -> Generator[None, None, None]:
    if RUN_DURATION is None:
        yield
        return

    with RUN_DURATION.time():
        yield


def track_dispatch(outcome: str, queue_depth: int, now: int) -> None:
    """
    Track one dispatched record.

    Args:
        outcome: "ok", "failed" or "mismatch"
        queue_depth: Pending records after the dispatch
        now: Simulated instant of the dispatch
    """
    if EVENTS_DISPATCHED is not None:
        EVENTS_DISPATCHED.labels(outcome=outcome).inc()
    if QUEUE_DEPTH is not None:
        QUEUE_DEPTH.set(queue_depth)
    if SIMULATED_TIME is not None:
        SIMULATED_TIME.set(now)


def track_resume() -> None:
    if CONTINUATIONS_RESUMED is not None:
        CONTINUATIONS_RESUMED.inc()


def track_uncaught_failure() -> None:
    if UNCAUGHT_FAILURES is not None:
        UNCAUGHT_FAILURES.inc()
