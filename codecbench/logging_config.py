"""
Structured logging configuration for codecbench.

Provides JSON-formatted logs with a trace_id naming the running scenario.
Logs go to stderr; stdout carries only benchmark results.

Environment Variables:
    CODECBENCH_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR) - default: WARNING
    CODECBENCH_LOG_FORMAT: Log format (json, text) - default: json

Usage:
    from codecbench.logging_config import setup_logging, get_logger

    setup_logging()
    logger = get_logger(__name__, trace_id="sparse-encoder")
    logger.info("Trial passed", extra={"trial": 3})
"""

import logging
import os
import sys
from typing import Optional

from pythonjsonlogger import jsonlogger

LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


class TraceIDFilter(logging.Filter):
    """Ensures every record has a trace_id field, even outside a LoggerAdapter."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "trace_id"):
            record.trace_id = "N/A"  # type: ignore
        return True


def setup_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """
    Configure the root logger.

    Arguments override CODECBENCH_LOG_LEVEL / CODECBENCH_LOG_FORMAT.
    """
    log_level = (level or os.getenv("CODECBENCH_LOG_LEVEL", "WARNING")).upper()
    log_format = (fmt or os.getenv("CODECBENCH_LOG_FORMAT", "json")).lower()
    resolved = LEVELS.get(log_level, logging.WARNING)

    root_logger = logging.getLogger()
    root_logger.setLevel(resolved)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(resolved)
    handler.addFilter(TraceIDFilter())

    if log_format == "json":
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


def get_logger(name: str, trace_id: Optional[str] = None) -> logging.LoggerAdapter:
    """
    Get a logger with optional trace_id for correlation.

    Args:
        name: Logger name (typically __name__)
        trace_id: Scenario name the records belong to

    Returns:
        LoggerAdapter with trace_id in extra fields
    """
    logger = logging.getLogger(name)
    return logging.LoggerAdapter(logger, {"trace_id": trace_id or "N/A"})
