"""
Log Formatting Helpers
======================
Name simplification, argument summaries, structured payload encoding and
the request detail record.
"""

import json
from typing import Any, Dict, Sequence

from .config import InterceptorSettings
from .exceptions import RequestDetailError
from .request_info import RequestSnapshot
from .results import Outcome


def simple_class_name(full_class_name: str) -> str:
    """Reduce a fully qualified type name to its last dotted segment."""
    return full_class_name.rsplit(".", 1)[-1]


def qualified_name(cls: type) -> str:
    return f"{cls.__module__}.{cls.__qualname__}"


def format_arguments(args: Sequence[Any]) -> str:
    """Summarize arguments by type name, e.g. ``[str, int, None]``."""
    if not args:
        return "[]"
    names = ["None" if arg is None else type(arg).__name__ for arg in args]
    return "[" + ", ".join(names) + "]"


def to_json_string(obj: Any) -> str:
    """
    Serialize a structured log payload, falling back to ``str(obj)``.

    Payloads nested too deeply to serialize or print come back as
    ``<type name>``.
    """
    try:
        return json.dumps(obj, separators=(",", ":"))
    except (TypeError, ValueError, RecursionError):
        pass
    try:
        return str(obj)
    except RecursionError:
        return f"<{type(obj).__name__}>"


def build_request_details(
    request: RequestSnapshot,
    args: Sequence[Any],
    settings: InterceptorSettings,
) -> Outcome[Dict[str, Any]]:
    """
    Build the request detail record.

    Headers are included only when header logging is enabled, the argument
    summary only when body logging is enabled and the call has arguments.
    """
    try:
        details: Dict[str, Any] = {
            "method": request.method,
            "uri": request.uri,
            "query_string": request.query_string,
        }
        if settings.log_headers:
            details["headers"] = dict(request.headers)
        if settings.log_request_body and args:
            details["arguments"] = format_arguments(args)
    except Exception as e:
        return Outcome.failure(RequestDetailError("Failed to build request details", e))
    return Outcome.success(details)
