"""
Structured logging configuration for pebblekit.

Provides JSON-formatted logs with a trace_id field so log lines from one
manager (trace_id = storage namespace) can be correlated.

Environment Variables:
    PEBBLE_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR) - default: INFO
    PEBBLE_LOG_FORMAT: Log format (json, text) - default: json

Usage:
    from pebblekit.logging_config import setup_logging, get_logger

    setup_logging()
    logger = get_logger(__name__, trace_id="pebble")
    logger.info("Evicted checkpoint", extra={"index": 42})
"""

import logging
import os
import sys
from typing import Optional

from pythonjsonlogger import jsonlogger


class TraceIDFilter(logging.Filter):
    """
    Logging filter that adds trace_id to every record.

    Attached to handlers, so it also covers records propagated from child
    loggers that were not created through get_logger().
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "trace_id"):
            record.trace_id = "N/A"  # type: ignore[attr-defined]
        return True


def setup_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """
    Configure the root logger.

    Args:
        level: Overrides PEBBLE_LOG_LEVEL
        log_format: Overrides PEBBLE_LOG_FORMAT ("json" or "text")
    """
    log_level = (level or os.getenv("PEBBLE_LOG_LEVEL", "INFO")).upper()
    fmt = (log_format or os.getenv("PEBBLE_LOG_FORMAT", "json")).lower()

    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    resolved = level_map.get(log_level, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(resolved)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # stderr keeps CLI --json output on stdout clean
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(resolved)
    handler.addFilter(TraceIDFilter())

    if fmt == "json":
        formatter: logging.Formatter = jsonlogger.JsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s %(trace_id)s",
            rename_fields={
                "asctime": "timestamp",
                "name": "logger",
                "levelname": "level",
            },
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s [trace_id=%(trace_id)s]",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # Silence noisy libraries
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("boto3").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def get_logger(name: str, trace_id: Optional[str] = None) -> logging.LoggerAdapter:
    """
    Get a logger that stamps trace_id on every record.

    Args:
        name: Logger name (typically __name__)
        trace_id: Correlation id (the manager uses its storage namespace)
    """
    logger = logging.getLogger(name)
    return logging.LoggerAdapter(logger, {"trace_id": trace_id or "N/A"})
