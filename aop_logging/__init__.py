"""
AOP Logging
===========
Request correlation, entry/exit and performance logging around web handler
and service method calls.
"""

__version__ = "0.1.0"

# Configuration
from aop_logging.config import InterceptorSettings

# Correlation context
from aop_logging.context import (
    CorrelationContext,
    correlation_scope,
    current_context,
    generate_request_id,
)

# Request information
from aop_logging.request_info import (
    RequestSnapshot,
    RequestContextMiddleware,
    DjangoRequestContextMiddleware,
    current_request,
    resolve_client_ip,
    resolve_user_id,
    resolve_session_id,
)

# Formatting
from aop_logging.formatting import (
    simple_class_name,
    format_arguments,
    to_json_string,
    build_request_details,
)

# Performance
from aop_logging.performance import PerformanceRecord, emit_performance_record

# Interceptors
from aop_logging.interceptor import (
    Invocation,
    Interceptor,
    InterceptorChain,
    AdvancedLoggingInterceptor,
    ExceptionContextInterceptor,
    BasicLoggingInterceptor,
    ServiceLoggingInterceptor,
)

# Registry
from aop_logging.registry import (
    InterceptorRegistry,
    get_registry,
    configure_interceptors,
    rest_controller,
    service,
    repository,
)

# FastAPI integration
from aop_logging.middleware import setup_request_logging

# Logging
from aop_logging.logging import setup_logging, get_logging_config

__all__ = [
    "__version__",
    "InterceptorSettings",
    "CorrelationContext",
    "correlation_scope",
    "current_context",
    "generate_request_id",
    "RequestSnapshot",
    "RequestContextMiddleware",
    "DjangoRequestContextMiddleware",
    "current_request",
    "resolve_client_ip",
    "resolve_user_id",
    "resolve_session_id",
    "simple_class_name",
    "format_arguments",
    "to_json_string",
    "build_request_details",
    "PerformanceRecord",
    "emit_performance_record",
    "Invocation",
    "Interceptor",
    "InterceptorChain",
    "AdvancedLoggingInterceptor",
    "ExceptionContextInterceptor",
    "BasicLoggingInterceptor",
    "ServiceLoggingInterceptor",
    "InterceptorRegistry",
    "get_registry",
    "configure_interceptors",
    "rest_controller",
    "service",
    "repository",
    "setup_request_logging",
    "setup_logging",
    "get_logging_config",
]
