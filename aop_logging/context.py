"""
Correlation Context
===================
Per-request diagnostic metadata attached to log output.

A context is created for every intercepted call and passed explicitly on
the invocation. While the call runs it is also published in a ContextVar,
so log filters and structlog processors can read it. The ContextVar is
per-thread and per-asyncio-task, so concurrent requests never see each
other's entries.
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Dict, Iterator, Optional

REQUEST_ID = "request_id"
USER_ID = "user_id"
SESSION_ID = "session_id"
CLIENT_IP = "client_ip"

CONTEXT_KEYS = (REQUEST_ID, USER_ID, SESSION_ID, CLIENT_IP)

_current_context: ContextVar[Optional["CorrelationContext"]] = ContextVar(
    "correlation_context", default=None
)


def generate_request_id() -> str:
    """Short correlation identifier: first 8 characters of a UUID4."""
    return str(uuid.uuid4())[:8]


class CorrelationContext:
    """
    Key/value store of correlation metadata for one intercepted call.

    Reads fall back to the parent context (the enclosing intercepted call of
    the same request); writes and clears only touch this context's entries.
    """

    def __init__(self, parent: Optional["CorrelationContext"] = None):
        self.parent = parent
        self._entries: Dict[str, str] = {}

    def put(self, key: str, value: Optional[str]) -> None:
        if value is None:
            self._entries.pop(key, None)
        else:
            self._entries[key] = str(value)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        if key in self._entries:
            return self._entries[key]
        if self.parent is not None:
            return self.parent.get(key, default)
        return default

    def remove(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    @property
    def entries(self) -> Dict[str, str]:
        """Entries owned by this context (parent excluded)."""
        return dict(self._entries)

    @property
    def request_id(self) -> Optional[str]:
        return self.get(REQUEST_ID)

    def as_dict(self) -> Dict[str, str]:
        """Effective entries, parent values overridden by this context's."""
        merged = self.parent.as_dict() if self.parent is not None else {}
        merged.update(self._entries)
        return merged

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"CorrelationContext({self.as_dict()!r})"


def current_context() -> Optional[CorrelationContext]:
    """Return the context published for the running call, if any."""
    return _current_context.get()


@contextmanager
def correlation_scope(context: CorrelationContext) -> Iterator[CorrelationContext]:
    """
    Publish a context for the duration of a block.

    On exit every entry of the context is removed and the previous binding
    is restored, whether the block returned or raised.
    """
    token = _current_context.set(context)
    try:
        yield context
    finally:
        context.clear()
        _current_context.reset(token)
