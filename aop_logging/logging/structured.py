"""
Structured Logging Setup
========================
Stdlib and structlog configuration for the application and performance
sinks. Every record carries the correlation context of the running call.

Usage (FastAPI):
    from aop_logging.logging import setup_logging

    # Setup at startup
    setup_logging(service_name="orders-api")

Usage (Django):
    # In settings.py
    from aop_logging.logging import get_logging_config
    LOGGING = get_logging_config(service_name="orders-backend")
"""

import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog

from ..config import APP_LOGGER_NAME, LOG_JSON, LOG_LEVEL, PERFORMANCE_LOGGER_NAME, SERVICE_NAME
from ..context import CONTEXT_KEYS, current_context

TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | [%(request_id)s] %(message)s"

MISSING = "-"


def _context_values() -> Dict[str, str]:
    context = current_context()
    return context.as_dict() if context is not None else {}


# =============================================================================
# Filters and formatters
# =============================================================================

class CorrelationContextFilter(logging.Filter):
    """Copies the correlation context onto each record (``-`` when unset)."""

    def filter(self, record: logging.LogRecord) -> bool:
        values = _context_values()
        for key in CONTEXT_KEYS:
            setattr(record, key, values.get(key, MISSING))
        return True


class JSONFormatter(logging.Formatter):
    """
    Formats log records as JSON for structured logging.
    Compatible with ELK, Datadog, CloudWatch, etc.
    """

    def __init__(self, service_name: str = SERVICE_NAME):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
        }

        values = _context_values()
        for key in CONTEXT_KEYS:
            log_data[key] = values.get(key)

        if hasattr(record, "extra_data"):
            log_data.update(record.extra_data)

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info),
            }

        log_data["source"] = {
            "file": record.filename,
            "line": record.lineno,
            "function": record.funcName,
        }

        return json.dumps(log_data, default=str)


def add_correlation_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """structlog processor merging the correlation context into the event."""
    for key, value in _context_values().items():
        event_dict.setdefault(key, value)
    return event_dict


# =============================================================================
# Setup Functions
# =============================================================================

def _build_handler(level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(CorrelationContextFilter())
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    service_name: str = SERVICE_NAME,
    level: str = LOG_LEVEL,
    json_output: Optional[bool] = None,
) -> logging.Logger:
    """
    Configure logging for a service.

    Args:
        service_name: Name of the service (e.g., "orders-api")
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Whether to output JSON (default: LOG_JSON env var)

    Returns:
        Configured root logger
    """
    if json_output is None:
        json_output = LOG_JSON
    log_level = getattr(logging, level.upper(), logging.INFO)

    if json_output:
        formatter: logging.Formatter = JSONFormatter(service_name)
    else:
        formatter = logging.Formatter(TEXT_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(_build_handler(log_level, formatter))

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_correlation_context,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer() if json_output else structlog.processors.KeyValueRenderer(
                key_order=["event"]
            ),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    root_logger.info(f"Logging configured for {service_name}", extra={
        "extra_data": {"event": "logging.configured", "service": service_name}
    })

    return root_logger


def get_logging_config(
    service_name: str = SERVICE_NAME,
    level: str = LOG_LEVEL,
    json_output: Optional[bool] = None,
) -> Dict[str, Any]:
    """
    Get a ``logging.config.dictConfig`` dict with both sinks.

    The performance sink gets its own handler and does not propagate, so
    performance records can be routed separately.

    Usage in settings.py:
        from aop_logging.logging import get_logging_config
        LOGGING = get_logging_config("orders-backend")
    """
    if json_output is None:
        json_output = LOG_JSON
    formatter = "json" if json_output else "text"

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "correlation": {
                "()": CorrelationContextFilter,
            },
        },
        "formatters": {
            "json": {
                "()": JSONFormatter,
                "service_name": service_name,
            },
            "text": {
                "format": TEXT_FORMAT,
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": formatter,
                "filters": ["correlation"],
                "stream": "ext://sys.stdout",
            },
            "performance": {
                "class": "logging.StreamHandler",
                "formatter": formatter,
                "filters": ["correlation"],
                "stream": "ext://sys.stdout",
            },
        },
        "root": {
            "handlers": ["console"],
            "level": level,
        },
        "loggers": {
            APP_LOGGER_NAME: {"level": level, "propagate": True},
            PERFORMANCE_LOGGER_NAME: {
                "handlers": ["performance"],
                "level": level,
                "propagate": False,
            },
        },
    }
