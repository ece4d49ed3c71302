"""
Logging Setup

Structured logging for the application and performance sinks.
"""

from .structured import (
    # Setup
    setup_logging,
    get_logging_config,

    # Formatting
    JSONFormatter,
    CorrelationContextFilter,
    add_correlation_context,
    TEXT_FORMAT,
)

__all__ = [
    "setup_logging",
    "get_logging_config",
    "JSONFormatter",
    "CorrelationContextFilter",
    "add_correlation_context",
    "TEXT_FORMAT",
]
