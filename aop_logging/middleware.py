"""
FastAPI Integration
===================
One-call setup of request correlation logging for an application.
"""

from typing import Optional

from fastapi import FastAPI
import structlog

from .config import InterceptorSettings
from .registry import InterceptorRegistry, configure_interceptors
from .request_info import RequestContextMiddleware

logger = structlog.get_logger(__name__)


def setup_request_logging(
    app: FastAPI,
    settings: Optional[InterceptorSettings] = None,
    registry: Optional[InterceptorRegistry] = None,
) -> InterceptorRegistry:
    """
    Enable interceptor logging for an application.

    Installs the middleware that exposes the current request to the
    interceptors and registers the standard interceptors.

    Args:
        app: FastAPI application instance
        settings: Interceptor options (default: read from environment)
        registry: Target registry (default: the process-wide one)

    Example:
        from aop_logging import setup_request_logging, rest_controller

        app = FastAPI()
        setup_request_logging(app)
    """
    settings = settings or InterceptorSettings.from_env()

    app.add_middleware(RequestContextMiddleware, session_cookie=settings.session_cookie)
    registry = configure_interceptors(settings, registry)

    logger.info("request_logging_configured", app=app.title)
    return registry
