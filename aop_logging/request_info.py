"""
Request Information
===================
Read-only view of the inbound request, supplied by the hosting web layer,
plus the client IP / user / session resolution rules.

Usage (FastAPI / Starlette):
    app.add_middleware(RequestContextMiddleware)

Usage (Django):
    MIDDLEWARE = [..., "aop_logging.request_info.DjangoRequestContextMiddleware"]
"""

from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from starlette.requests import Request
from starlette.types import ASGIApp, Receive, Scope, Send

from .config import (
    ANONYMOUS_USER,
    CLIENT_IP_HEADERS,
    DEFAULT_SESSION_COOKIE,
    DEFAULT_USER_ID_HEADER,
    NO_SESSION,
    UNKNOWN_ADDRESS,
)

_current_request: ContextVar[Optional["RequestSnapshot"]] = ContextVar(
    "current_request", default=None
)


def normalize_header_name(name: str) -> str:
    """Case- and separator-insensitive header key."""
    return name.strip().lower().replace("_", "-")


@dataclass(frozen=True)
class RequestSnapshot:
    """The parts of an HTTP request the interceptors need."""

    method: str
    uri: str
    query_string: Optional[str] = None
    headers: Mapping[str, str] = field(default_factory=dict)
    remote_addr: Optional[str] = None
    session_id: Optional[str] = None

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(normalize_header_name(name))

    @classmethod
    def build(
        cls,
        method: str,
        uri: str,
        query_string: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
        remote_addr: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> "RequestSnapshot":
        normalized = {normalize_header_name(k): v for k, v in (headers or {}).items()}
        return cls(
            method=method,
            uri=uri,
            query_string=query_string or None,
            headers=normalized,
            remote_addr=remote_addr or None,
            session_id=session_id or None,
        )

    @classmethod
    def from_starlette(
        cls, request: Request, session_cookie: str = DEFAULT_SESSION_COOKIE
    ) -> "RequestSnapshot":
        session_id = None
        if "session" in request.scope:
            session_id = request.session.get("session_id")
        if not session_id:
            session_id = request.cookies.get(session_cookie)

        return cls.build(
            method=request.method,
            uri=request.url.path,
            query_string=request.url.query,
            headers=request.headers,
            remote_addr=request.client.host if request.client else None,
            session_id=session_id,
        )

    @classmethod
    def from_django(cls, request: Any) -> "RequestSnapshot":
        meta = request.META
        headers: Dict[str, str] = {}
        for key, value in meta.items():
            if key.startswith("HTTP_"):
                headers[key[5:]] = value
            elif key in ("CONTENT_TYPE", "CONTENT_LENGTH"):
                headers[key] = value

        session = getattr(request, "session", None)
        return cls.build(
            method=request.method,
            uri=request.path,
            query_string=meta.get("QUERY_STRING"),
            headers=headers,
            remote_addr=meta.get("REMOTE_ADDR"),
            session_id=getattr(session, "session_key", None),
        )


def current_request() -> Optional[RequestSnapshot]:
    """Snapshot of the request being handled, if a middleware published one."""
    return _current_request.get()


# =============================================================================
# Resolution rules
# =============================================================================

def resolve_client_ip(request: RequestSnapshot) -> str:
    """
    Extract the real client IP address.

    The first proxy header that is set and not "unknown" wins; only the
    first entry of a comma-separated chain is used.
    """
    for header in CLIENT_IP_HEADERS:
        ip = request.header(header)
        if ip and ip.lower() != "unknown":
            return ip.split(",")[0].strip()

    return request.remote_addr or UNKNOWN_ADDRESS


def resolve_user_id(request: RequestSnapshot, header: str = DEFAULT_USER_ID_HEADER) -> str:
    """
    Extract the user id from the request.

    Only the custom header is consulted. An authentication subsystem can be
    plugged in by replacing this function.
    """
    user_id = request.header(header)
    if user_id is not None:
        return user_id
    return ANONYMOUS_USER


def resolve_session_id(request: RequestSnapshot) -> str:
    return request.session_id or NO_SESSION


# =============================================================================
# Middleware
# =============================================================================

class RequestContextMiddleware:
    """
    ASGI middleware that publishes a snapshot of the current request.

    Pure ASGI so the ContextVar binding is visible to the endpoint.
    """

    def __init__(self, app: ASGIApp, session_cookie: str = DEFAULT_SESSION_COOKIE):
        self.app = app
        self.session_cookie = session_cookie

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        snapshot = RequestSnapshot.from_starlette(Request(scope), self.session_cookie)
        token = _current_request.set(snapshot)
        try:
            await self.app(scope, receive, send)
        finally:
            _current_request.reset(token)


class DjangoRequestContextMiddleware:
    """Django middleware that publishes a snapshot of the current request."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        token = _current_request.set(RequestSnapshot.from_django(request))
        try:
            return self.get_response(request)
        finally:
            _current_request.reset(token)
