"""
Prometheus metrics for pebblekit.

Metrics are disabled until init_metrics() is called; every tracking helper
is a no-op before that, so libraries embedding a manager pay nothing unless
the host process opts in.

Environment Variables:
    PEBBLE_METRICS_ENABLED: Enable metrics server (true/false) - default: false
    PEBBLE_METRICS_PORT: HTTP port for /metrics endpoint - default: 9108

Usage:
    from pebblekit import metrics

    metrics.start_metrics_server(enabled=True, port=9108)
"""

import logging
import os
import threading

from prometheus_client import Counter, Gauge, start_http_server

logger = logging.getLogger(__name__)

RED_NODES: "Gauge" = None  # type: ignore
BLUE_NODES: "Gauge" = None  # type: ignore
RETENTION_BUDGET: "Gauge" = None  # type: ignore
STORAGE_WRITES: "Counter" = None  # type: ignore
STORAGE_READS: "Counter" = None  # type: ignore
STORAGE_BYTES_WRITTEN: "Counter" = None  # type: ignore
DISCARDS: "Counter" = None  # type: ignore
LOST_CHECKPOINTS: "Counter" = None  # type: ignore
DROPPED_RECORDS: "Counter" = None  # type: ignore

_metrics_initialized = False
_metrics_lock = threading.Lock()


def enabled() -> bool:
    return _metrics_initialized


def init_metrics() -> None:
    """
    Create the metric objects (call once at startup, later calls are no-ops).

    Labels: namespace (the manager's storage key namespace).
    """
    global RED_NODES, BLUE_NODES, RETENTION_BUDGET
    global STORAGE_WRITES, STORAGE_READS, STORAGE_BYTES_WRITTEN
    global DISCARDS, LOST_CHECKPOINTS, DROPPED_RECORDS
    global _metrics_initialized

    with _metrics_lock:
        if _metrics_initialized:
            return

        RED_NODES = Gauge(
            "pebble_red_checkpoints",
            "Checkpoints resident in memory",
            labelnames=["namespace"],
        )
        BLUE_NODES = Gauge(
            "pebble_blue_checkpoints",
            "Checkpoints held in storage",
            labelnames=["namespace"],
        )
        RETENTION_BUDGET = Gauge(
            "pebble_retention_budget",
            "Current red checkpoint budget",
            labelnames=["namespace"],
        )
        STORAGE_WRITES = Counter(
            "pebble_storage_writes_total",
            "Checkpoint records written to storage",
            labelnames=["namespace"],
        )
        STORAGE_READS = Counter(
            "pebble_storage_reads_total",
            "Checkpoint records read from storage",
            labelnames=["namespace"],
        )
        STORAGE_BYTES_WRITTEN = Counter(
            "pebble_storage_bytes_written_total",
            "Record bytes written to storage",
            labelnames=["namespace"],
        )
        DISCARDS = Counter(
            "pebble_discards_total",
            "Checkpoints discarded without a storage write",
            labelnames=["namespace"],
        )
        LOST_CHECKPOINTS = Counter(
            "pebble_lost_checkpoints_total",
            "Checkpoints lost to serialization failures",
            labelnames=["namespace"],
        )
        DROPPED_RECORDS = Counter(
            "pebble_recovery_dropped_records_total",
            "Storage records rejected by warm recovery",
            labelnames=["namespace"],
        )

        _metrics_initialized = True
        logger.info("Prometheus metrics initialized")


def start_metrics_server(enabled: bool, port: int) -> None:
    """
    Start the /metrics HTTP endpoint in a background thread.

    Args:
        enabled: Whether to start the server (from PEBBLE_METRICS_ENABLED)
        port: HTTP port (from PEBBLE_METRICS_PORT)
    """
    if not enabled:
        logger.info("Metrics server disabled")
        return

    init_metrics()

    try:
        start_http_server(port, addr="0.0.0.0")
        logger.info(f"Metrics server started on http://0.0.0.0:{port}/metrics")
    except OSError as e:
        logger.error(f"Failed to start metrics server: {e}")


def start_from_env() -> None:
    """Start the metrics server according to PEBBLE_METRICS_* variables."""
    enabled_flag = os.getenv("PEBBLE_METRICS_ENABLED", "false").lower() == "true"
    port = int(os.getenv("PEBBLE_METRICS_PORT", "9108"))
    start_metrics_server(enabled=enabled_flag, port=port)


def observe_counts(namespace: str, red: int, blue: int, budget: int) -> None:
    if RED_NODES is None:
        return
    RED_NODES.labels(namespace=namespace).set(red)
    BLUE_NODES.labels(namespace=namespace).set(blue)
    RETENTION_BUDGET.labels(namespace=namespace).set(budget)


def track_write(namespace: str, size: int) -> None:
    if STORAGE_WRITES is None:
        return
    STORAGE_WRITES.labels(namespace=namespace).inc()
    STORAGE_BYTES_WRITTEN.labels(namespace=namespace).inc(size)


def track_read(namespace: str) -> None:
    if STORAGE_READS is not None:
        STORAGE_READS.labels(namespace=namespace).inc()


def track_discard(namespace: str) -> None:
    if DISCARDS is not None:
        DISCARDS.labels(namespace=namespace).inc()


def track_lost(namespace: str) -> None:
    if LOST_CHECKPOINTS is not None:
        LOST_CHECKPOINTS.labels(namespace=namespace).inc()


def track_dropped(namespace: str, count: int) -> None:
    if DROPPED_RECORDS is not None and count:
        DROPPED_RECORDS.labels(namespace=namespace).inc(count)
