"""
Component Registry
==================
Matches calls to interceptors by component tag.

Usage:
    from aop_logging import configure_interceptors, rest_controller

    configure_interceptors()

    @rest_controller
    class OrderController:
        async def get_order(self, order_id: int):
            ...
"""

import inspect
from functools import wraps
from typing import Any, Callable, Dict, List, Optional, Tuple

import structlog
from starlette.requests import Request

from .config import DEFAULT_SESSION_COOKIE, InterceptorSettings
from .exceptions import RegistrationError
from .formatting import qualified_name
from .interceptor import (
    AdvancedLoggingInterceptor,
    ExceptionContextInterceptor,
    Interceptor,
    InterceptorChain,
    Invocation,
    ServiceLoggingInterceptor,
)
from .request_info import RequestSnapshot, current_request

logger = structlog.get_logger(__name__)

CONTROLLER = "controller"
SERVICE = "service"
REPOSITORY = "repository"


class InterceptorRegistry:
    """
    Interceptors per component tag, in registration order.

    ``session_cookie`` is the cookie read for the session id when a handler
    receives the request as an argument. It is kept in step with the request
    middleware by ``configure_interceptors``.
    """

    def __init__(self, session_cookie: str = DEFAULT_SESSION_COOKIE):
        self._interceptors: Dict[str, List[Interceptor]] = {}
        self.session_cookie = session_cookie

    def register(self, tag: str, interceptor: Interceptor) -> None:
        if not isinstance(interceptor, Interceptor):
            raise RegistrationError(f"Not an interceptor: {interceptor!r}")
        self._interceptors.setdefault(tag, []).append(interceptor)
        logger.debug("interceptor_registered", tag=tag, interceptor=type(interceptor).__name__)

    def interceptors_for(self, tag: str) -> List[Interceptor]:
        return list(self._interceptors.get(tag, ()))

    def chain_for(self, tag: str) -> InterceptorChain:
        return InterceptorChain(self._interceptors.get(tag, ()))

    def clear(self, tag: Optional[str] = None) -> None:
        if tag is None:
            self._interceptors.clear()
        else:
            self._interceptors.pop(tag, None)


# Global instance
_registry = InterceptorRegistry()


def get_registry() -> InterceptorRegistry:
    """Get the process-wide registry."""
    return _registry


def configure_interceptors(
    settings: Optional[InterceptorSettings] = None,
    registry: Optional[InterceptorRegistry] = None,
) -> InterceptorRegistry:
    """
    Register the standard interceptors.

    Controllers get request correlation, performance tracking and exception
    context reporting. Services get debug tracing only when service advice
    is enabled. Calling this again replaces the previous setup.

    Args:
        settings: Interceptor options (default: read from environment)
        registry: Target registry (default: the process-wide one)

    Returns:
        The configured registry
    """
    settings = settings or InterceptorSettings.from_env()
    registry = registry if registry is not None else get_registry()

    registry.clear(CONTROLLER)
    registry.clear(SERVICE)
    registry.session_cookie = settings.session_cookie

    registry.register(CONTROLLER, AdvancedLoggingInterceptor(settings))
    registry.register(CONTROLLER, ExceptionContextInterceptor())

    if settings.service_advice_enabled:
        registry.register(SERVICE, ServiceLoggingInterceptor())

    logger.info(
        "interceptors_configured",
        slow_threshold_ms=settings.slow_threshold_ms,
        log_headers=settings.log_headers,
        log_request_body=settings.log_request_body,
        service_advice=settings.service_advice_enabled,
        session_cookie=settings.session_cookie,
    )
    return registry


# =============================================================================
# Component decorators
# =============================================================================

def _find_request(
    args: Tuple[Any, ...],
    kwargs: Dict[str, Any],
    session_cookie: str = DEFAULT_SESSION_COOKIE,
) -> Optional[RequestSnapshot]:
    for value in (*args, *kwargs.values()):
        if isinstance(value, Request):
            try:
                return RequestSnapshot.from_starlette(value, session_cookie)
            except Exception as e:
                logger.warning("request_snapshot_failed", error=str(e))
                break
    return current_request()


def _intercepted(
    func: Callable,
    tag: str,
    declaring_type: str,
    registry: Optional[InterceptorRegistry],
) -> Callable:
    def make_invocation(
        active: InterceptorRegistry, args: Tuple[Any, ...], kwargs: Dict[str, Any]
    ) -> Invocation:
        target, call_args = (args[0], args[1:]) if args else (None, ())
        return Invocation(
            declaring_type=declaring_type,
            method_name=func.__name__,
            args=tuple(call_args),
            kwargs=dict(kwargs),
            target=target,
            request=_find_request(call_args, kwargs, active.session_cookie),
        )

    if inspect.iscoroutinefunction(func):
        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            active = registry or get_registry()
            chain = active.chain_for(tag)
            if not chain:
                return await func(*args, **kwargs)
            return await chain.ainvoke(
                make_invocation(active, args, kwargs), lambda: func(*args, **kwargs)
            )

        return async_wrapper

    @wraps(func)
    def sync_wrapper(*args, **kwargs):
        active = registry or get_registry()
        chain = active.chain_for(tag)
        if not chain:
            return func(*args, **kwargs)
        return chain.invoke(
            make_invocation(active, args, kwargs), lambda: func(*args, **kwargs)
        )

    return sync_wrapper


def _tag_component(cls: Any, tag: str, registry: Optional[InterceptorRegistry]):
    def decorate(target: Any) -> Any:
        if not inspect.isclass(target):
            raise RegistrationError(f"@{tag} can only decorate classes, got {target!r}")

        declaring_type = qualified_name(target)
        for name, attr in list(vars(target).items()):
            if name.startswith("_") or not inspect.isfunction(attr):
                continue
            setattr(target, name, _intercepted(attr, tag, declaring_type, registry))

        target.__component_tag__ = tag
        return target

    if cls is None:
        return decorate
    return decorate(cls)


def rest_controller(cls: Any = None, *, registry: Optional[InterceptorRegistry] = None):
    """
    Tag a class as a request handler.

    Every public method defined on the class runs through the interceptors
    registered for ``controller``. Usable bare or as
    ``@rest_controller(registry=...)``.
    """
    return _tag_component(cls, CONTROLLER, registry)


def service(cls: Any = None, *, registry: Optional[InterceptorRegistry] = None):
    """Tag a class as a service-layer component."""
    return _tag_component(cls, SERVICE, registry)


def repository(cls: Any = None, *, registry: Optional[InterceptorRegistry] = None):
    """Tag a class as a repository component."""
    return _tag_component(cls, REPOSITORY, registry)
