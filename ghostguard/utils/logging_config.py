"""
Structured logging configuration for GhostGuard.

JSON-formatted logs in production, human-readable logs in development,
plus a small in-process metrics collector for scan counters and timings.
"""

import logging
import sys
import json
import time
import threading
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Any, Optional
from functools import wraps
from contextvars import ContextVar

from ghostguard.config import settings


# Context variables for request/session tracking
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
session_id_var: ContextVar[Optional[str]] = ContextVar("session_id", default=None)


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if request_id_var.get():
            log_data["request_id"] = request_id_var.get()
        if session_id_var.get():
            log_data["session_id"] = session_id_var.get()

        if hasattr(record, "extra_data"):
            log_data["data"] = record.extra_data

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info),
            }

        log_data["environment"] = settings.environment

        return json.dumps(log_data, default=str)


class StructuredLogger:
    """
    Wrapper for structured logging with keyword context.

    Usage:
        logger = StructuredLogger("ghostguard.pipeline")
        logger.info("Threat created", url=url, score=85)
        logger.warning("AI unavailable", url=url, error=str(e))
    """

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, message: str, **kwargs):
        if not self._logger.isEnabledFor(level):
            return
        extra_data = kwargs.pop("extra_data", None) or kwargs
        record = self._logger.makeRecord(
            name=self._logger.name,
            level=level,
            fn="",
            lno=0,
            msg=message,
            args=(),
            exc_info=None,
        )
        if extra_data:
            record.extra_data = extra_data
        self._logger.handle(record)

    def debug(self, message: str, **kwargs):
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs):
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, exc_info: bool = False, **kwargs):
        if exc_info:
            self._logger.error(message, exc_info=True, extra={"extra_data": kwargs})
        else:
            self._log(logging.ERROR, message, **kwargs)


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: Optional[str] = None,
):
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON formatting (True for prod, False for dev)
        log_file: Optional file path for file logging
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, level.upper()))

    if json_format:
        console_handler.setFormatter(JSONFormatter())
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"
        )
        console_handler.setFormatter(formatter)

    root_logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(getattr(logging, level.upper()))
        file_handler.setFormatter(JSONFormatter())  # Always JSON for files
        root_logger.addHandler(file_handler)

    # Suppress noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("python_multipart").setLevel(logging.WARNING)
    logging.getLogger("multipart").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.INFO)


# ============== METRICS ==============


class MetricsCollector:
    """
    Collects scan counters and timings for monitoring.

    Usage:
        metrics.increment("scan.ai.calls")
        metrics.timing("scan.ai.latency", 0.84)
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._counters: Dict[str, int] = {}
        self._timings: Dict[str, list] = {}
        self._start_time = time.time()

    def increment(self, name: str, value: int = 1):
        """Increment a counter."""
        with self._lock:
            self._counters[name] = self._counters.get(name, 0) + value

    def timing(self, name: str, value: float):
        """Record a timing value."""
        with self._lock:
            values = self._timings.setdefault(name, [])
            values.append(value)
            # Keep only last 1000 values
            if len(values) > 1000:
                self._timings[name] = values[-1000:]

    def get_stats(self) -> Dict[str, Any]:
        """Get current metrics."""
        with self._lock:
            counters = self._counters.copy()
            timings = {name: list(values) for name, values in self._timings.items()}

        timing_stats = {}
        for name, values in timings.items():
            if values:
                sorted_vals = sorted(values)
                timing_stats[name] = {
                    "count": len(values),
                    "min": min(values),
                    "max": max(values),
                    "avg": sum(values) / len(values),
                    "p50": sorted_vals[len(sorted_vals) // 2],
                    "p95": sorted_vals[int(len(sorted_vals) * 0.95)] if len(sorted_vals) >= 20 else None,
                }

        return {
            "uptime_seconds": time.time() - self._start_time,
            "counters": counters,
            "timings": timing_stats,
        }

    def reset(self):
        """Reset all metrics."""
        with self._lock:
            self._counters.clear()
            self._timings.clear()


# Global metrics instance
metrics = MetricsCollector()


# ============== DECORATORS ==============


def log_execution_time(logger_name: str = "ghostguard"):
    """Decorator to log function execution time."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            logger = StructuredLogger(logger_name)
            start = time.time()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.error(
                    f"{func.__name__} failed",
                    function=func.__name__,
                    duration_ms=round((time.time() - start) * 1000, 2),
                    error=str(e),
                    exc_info=True,
                )
                raise
            duration = time.time() - start
            logger.info(
                f"{func.__name__} completed",
                function=func.__name__,
                duration_ms=round(duration * 1000, 2),
            )
            metrics.timing(f"function.{func.__name__}", duration)
            return result

        return wrapper

    return decorator


def init_logging():
    """Initialize logging based on environment settings."""
    is_prod = settings.is_production
    setup_logging(
        level="INFO" if is_prod else "DEBUG",
        json_format=is_prod,
        log_file="logs/ghostguard.log" if is_prod else None,
    )
