"""
Method Interceptors
===================
Before/after/on-error hooks run around every intercepted handler call.

An ``InterceptorChain`` runs the hooks registered for a component tag:

    before            (registration order)
    <wrapped call>
    after_returning   (reverse order, on success)
    after_throwing    (reverse order, on failure)
    after             (reverse order, always)

The wrapped call's failure is always re-raised unchanged. A hook that
raises is logged and skipped; it never reaches the wrapped call.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Sequence, Tuple

from .config import APP_LOGGER_NAME, InterceptorSettings
from .context import (
    CLIENT_IP,
    CONTEXT_KEYS,
    REQUEST_ID,
    SESSION_ID,
    USER_ID,
    CorrelationContext,
    correlation_scope,
    current_context,
    generate_request_id,
)
from .exceptions import ContextSetupError
from .formatting import build_request_details, qualified_name, simple_class_name, to_json_string
from .performance import PerformanceRecord, emit_performance_record, performance_logger
from .request_info import RequestSnapshot, resolve_client_ip, resolve_session_id, resolve_user_id
from .results import Outcome

logger = logging.getLogger(APP_LOGGER_NAME)

Clock = Callable[[], float]


def _new_context() -> CorrelationContext:
    return CorrelationContext(parent=current_context())


@dataclass
class Invocation:
    """Description of one intercepted call (the join point)."""

    declaring_type: str
    method_name: str
    args: Tuple[Any, ...] = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)
    target: Any = None
    request: Optional[RequestSnapshot] = None
    context: CorrelationContext = field(default_factory=_new_context)
    attributes: Dict[Any, Any] = field(default_factory=dict)

    @property
    def class_name(self) -> str:
        return simple_class_name(self.declaring_type)

    @property
    def signature(self) -> str:
        return f"{self.class_name}.{self.method_name}"


class Interceptor:
    """Base class for hooks. Every hook is a no-op by default."""

    def before(self, invocation: Invocation) -> None:
        pass

    def after_returning(self, invocation: Invocation, result: Any) -> None:
        pass

    def after_throwing(self, invocation: Invocation, error: Exception) -> None:
        pass

    def after(self, invocation: Invocation) -> None:
        pass


class InterceptorChain:
    """Runs a fixed sequence of interceptors around a call."""

    def __init__(self, interceptors: Sequence[Interceptor] = ()):
        self.interceptors: Tuple[Interceptor, ...] = tuple(interceptors)

    def __len__(self) -> int:
        return len(self.interceptors)

    def _run(self, hook: str, invocation: Invocation, *args: Any, reverse: bool = False) -> None:
        interceptors = reversed(self.interceptors) if reverse else self.interceptors
        for interceptor in interceptors:
            try:
                getattr(interceptor, hook)(invocation, *args)
            except Exception as e:
                logger.warning(
                    "Interceptor %s.%s failed for %s: %s",
                    type(interceptor).__name__, hook, invocation.signature, e,
                )

    def invoke(self, invocation: Invocation, proceed: Callable[[], Any]) -> Any:
        with correlation_scope(invocation.context):
            self._run("before", invocation)
            try:
                result = proceed()
            except Exception as error:
                self._run("after_throwing", invocation, error, reverse=True)
                raise
            else:
                self._run("after_returning", invocation, result, reverse=True)
                return result
            finally:
                self._run("after", invocation, reverse=True)

    async def ainvoke(self, invocation: Invocation, proceed: Callable[[], Awaitable[Any]]) -> Any:
        with correlation_scope(invocation.context):
            self._run("before", invocation)
            try:
                result = await proceed()
            except Exception as error:
                self._run("after_throwing", invocation, error, reverse=True)
                raise
            else:
                self._run("after_returning", invocation, result, reverse=True)
                return result
            finally:
                self._run("after", invocation, reverse=True)


# =============================================================================
# Correlation context setup
# =============================================================================

def populate_context(
    context: CorrelationContext,
    request: Optional[RequestSnapshot],
    settings: InterceptorSettings,
) -> Outcome[CorrelationContext]:
    """
    Store client IP, session and user of the request in the context.

    Nothing is stored when no request is available.
    """
    if request is None:
        return Outcome.success(context)
    try:
        context.put(CLIENT_IP, resolve_client_ip(request))
        context.put(SESSION_ID, resolve_session_id(request))
        context.put(USER_ID, resolve_user_id(request, settings.user_id_header))
    except Exception as e:
        return Outcome.failure(ContextSetupError("Failed to setup full correlation context", e))
    return Outcome.success(context)


class _TimedInterceptor(Interceptor):

    def __init__(self, clock: Clock = time.perf_counter):
        self.clock = clock

    def _start(self, invocation: Invocation) -> None:
        invocation.attributes[(self, "started_at")] = self.clock()

    def _elapsed_ms(self, invocation: Invocation) -> int:
        now = self.clock()
        started_at = invocation.attributes.get((self, "started_at"), now)
        return int((now - started_at) * 1000)


# =============================================================================
# Interceptors
# =============================================================================

class AdvancedLoggingInterceptor(_TimedInterceptor):
    """
    Entry/exit logging with request correlation and performance tracking.

    For every call:
    1. Generates a request id and fills the correlation context
    2. Logs entry, and request details when enabled
    3. Emits a performance record (slow calls go out at WARNING)
    4. Logs completion or failure with the elapsed time
    5. Removes its context entries
    """

    def __init__(
        self,
        settings: Optional[InterceptorSettings] = None,
        clock: Clock = time.perf_counter,
        app_logger: logging.Logger = logger,
        perf_logger: logging.Logger = performance_logger,
    ):
        super().__init__(clock)
        self.settings = settings or InterceptorSettings()
        self.logger = app_logger
        self.performance_logger = perf_logger

    def before(self, invocation: Invocation) -> None:
        self._start(invocation)
        request_id = self._setup_context(invocation)

        self.logger.info(
            "→ [%s] Starting: %s.%s()",
            request_id, invocation.class_name, invocation.method_name,
        )

        if self.settings.log_request_details:
            self._log_request_details(invocation)

    def after_returning(self, invocation: Invocation, result: Any) -> None:
        elapsed_ms = self._elapsed_ms(invocation)
        self._log_performance(invocation, elapsed_ms, success=True)

        self.logger.info(
            "← [%s] Completed: %s.%s() in %d ms",
            invocation.context.request_id, invocation.class_name,
            invocation.method_name, elapsed_ms,
        )

    def after_throwing(self, invocation: Invocation, error: Exception) -> None:
        elapsed_ms = self._elapsed_ms(invocation)
        self._log_performance(invocation, elapsed_ms, success=False)

        self.logger.error(
            "✗ [%s] Failed: %s.%s() after %d ms - %s",
            invocation.context.request_id, invocation.class_name,
            invocation.method_name, elapsed_ms, error,
        )

    def after(self, invocation: Invocation) -> None:
        for key in CONTEXT_KEYS:
            invocation.context.remove(key)

    def _setup_context(self, invocation: Invocation) -> str:
        request_id = generate_request_id()
        invocation.context.put(REQUEST_ID, request_id)

        outcome = populate_context(invocation.context, invocation.request, self.settings)
        if not outcome.ok:
            self.logger.warning("%s", outcome.error)
        return request_id

    def _log_request_details(self, invocation: Invocation) -> None:
        if invocation.request is None:
            return

        outcome = build_request_details(invocation.request, invocation.args, self.settings)
        if not outcome.ok:
            self.logger.warning("Failed to log request details: %s", outcome.error)
            return

        self.logger.debug(
            "Request Details: %s", to_json_string(outcome.value),
            extra={"extra_data": {"request": outcome.value}},
        )

    def _log_performance(self, invocation: Invocation, elapsed_ms: int, success: bool) -> None:
        record = PerformanceRecord.build(
            class_name=invocation.class_name,
            method=invocation.method_name,
            execution_time_ms=elapsed_ms,
            success=success,
            request_id=invocation.context.request_id,
            slow_threshold_ms=self.settings.slow_threshold_ms,
        )
        emit_performance_record(record, self.performance_logger)


class ExceptionContextInterceptor(Interceptor):
    """Reports the correlation context and stack trace of a failed call."""

    def __init__(self, app_logger: logging.Logger = logger):
        self.logger = app_logger

    def after_throwing(self, invocation: Invocation, error: Exception) -> None:
        context = invocation.context
        error_context = {
            "request_id": context.get(REQUEST_ID),
            "method": invocation.signature,
            "exception_type": qualified_name(type(error)),
            "user_id": context.get(USER_ID),
            "client_ip": context.get(CLIENT_IP),
        }

        self.logger.error(
            "Exception Context: %s", to_json_string(error_context),
            extra={"extra_data": {"error_context": error_context}},
        )
        self.logger.error("Stack trace:", exc_info=(type(error), error, error.__traceback__))


class BasicLoggingInterceptor(Interceptor):
    """Plain entry/exit/exception logging without context or timing."""

    def __init__(self, app_logger: logging.Logger = logger):
        self.logger = app_logger

    def before(self, invocation: Invocation) -> None:
        self.logger.info("→ Entering: %s.%s()", invocation.class_name, invocation.method_name)

    def after_returning(self, invocation: Invocation, result: Any) -> None:
        self.logger.info("← Exiting: %s.%s()", invocation.class_name, invocation.method_name)

    def after_throwing(self, invocation: Invocation, error: Exception) -> None:
        self.logger.error(
            "✗ Exception in: %s.%s() - %s",
            invocation.class_name, invocation.method_name, error,
        )
        self.logger.error(
            "Exception thrown in %s.%s(): %s - %s",
            invocation.class_name, invocation.method_name, type(error).__name__, error,
            exc_info=(type(error), error, error.__traceback__),
        )


class ServiceLoggingInterceptor(_TimedInterceptor):
    """Debug-level tracing for service components."""

    def __init__(self, clock: Clock = time.perf_counter, app_logger: logging.Logger = logger):
        super().__init__(clock)
        self.logger = app_logger

    def before(self, invocation: Invocation) -> None:
        self._start(invocation)
        self.logger.debug("Service → %s.%s()", invocation.class_name, invocation.method_name)

    def after_returning(self, invocation: Invocation, result: Any) -> None:
        self.logger.debug(
            "Service ← %s.%s() completed in %d ms",
            invocation.class_name, invocation.method_name, self._elapsed_ms(invocation),
        )

    def after_throwing(self, invocation: Invocation, error: Exception) -> None:
        self.logger.error(
            "Service ✗ %s.%s() failed after %d ms",
            invocation.class_name, invocation.method_name, self._elapsed_ms(invocation),
        )
