"""
Interceptor Configuration
=========================
Configuration constants and environment variables.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

import structlog

logger = structlog.get_logger(__name__)

# Log sinks
APP_LOGGER_NAME = "aop_logging"
PERFORMANCE_LOGGER_NAME = "performance"

# Placeholders
ANONYMOUS_USER = "anonymous"
NO_SESSION = "no-session"
UNKNOWN_ADDRESS = "unknown"

# Proxy headers checked in order when resolving the client IP
CLIENT_IP_HEADERS: Tuple[str, ...] = (
    "X-Forwarded-For",
    "X-Real-IP",
    "Proxy-Client-IP",
    "WL-Proxy-Client-IP",
    "HTTP_X_FORWARDED_FOR",
    "HTTP_X_FORWARDED",
    "HTTP_X_CLUSTER_CLIENT_IP",
    "HTTP_CLIENT_IP",
    "HTTP_FORWARDED_FOR",
    "HTTP_FORWARDED",
)

DEFAULT_SLOW_THRESHOLD_MS = 1000
DEFAULT_USER_ID_HEADER = "X-User-Id"
DEFAULT_SESSION_COOKIE = "session"

SERVICE_NAME = os.getenv("SERVICE_NAME", "aop-logging")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("LOG_JSON", "true").lower() == "true"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _env_bool(environ: Mapping[str, str], name: str, default: bool) -> bool:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    logger.warning("invalid_boolean_setting", variable=name, value=raw, default=default)
    return default


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        logger.warning("invalid_integer_setting", variable=name, value=raw, default=default)
        return default
    if value < 0:
        logger.warning("negative_integer_setting", variable=name, value=raw, default=default)
        return default
    return value


@dataclass(frozen=True)
class InterceptorSettings:
    """Options consumed by the logging interceptors."""

    slow_threshold_ms: int = DEFAULT_SLOW_THRESHOLD_MS
    log_headers: bool = False
    log_request_body: bool = False
    service_advice_enabled: bool = False
    user_id_header: str = DEFAULT_USER_ID_HEADER
    session_cookie: str = DEFAULT_SESSION_COOKIE

    @property
    def log_request_details(self) -> bool:
        return self.log_headers or self.log_request_body

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "InterceptorSettings":
        """
        Build settings from environment variables.

        Invalid values are logged and replaced by their defaults.

        Args:
            environ: Mapping to read from (default: os.environ)
        """
        env = os.environ if environ is None else environ
        return cls(
            slow_threshold_ms=_env_int(
                env, "LOGGING_PERFORMANCE_SLOW_THRESHOLD_MS", DEFAULT_SLOW_THRESHOLD_MS
            ),
            log_headers=_env_bool(env, "LOGGING_REQUEST_LOG_HEADERS", False),
            log_request_body=_env_bool(env, "LOGGING_REQUEST_LOG_BODY", False),
            service_advice_enabled=_env_bool(env, "LOGGING_SERVICE_ADVICE_ENABLED", False),
            user_id_header=env.get("LOGGING_USER_ID_HEADER") or DEFAULT_USER_ID_HEADER,
            session_cookie=env.get("LOGGING_SESSION_COOKIE") or DEFAULT_SESSION_COOKIE,
        )
