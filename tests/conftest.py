import logging

import pytest
import structlog

from aop_logging.config import InterceptorSettings
from aop_logging.registry import InterceptorRegistry, configure_interceptors
from aop_logging.request_info import RequestSnapshot


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return InterceptorSettings()


@pytest.fixture
def registry(settings):
    return configure_interceptors(settings, InterceptorRegistry())


@pytest.fixture
def snapshot():
    return RequestSnapshot.build(
        method="GET",
        uri="/orders/7",
        query_string="expand=items",
        headers={
            "X-Forwarded-For": "1.2.3.4, 5.6.7.8",
            "X-User-Id": "u42",
            "Accept": "application/json",
        },
        remote_addr="10.0.0.9",
        session_id="sess-1",
    )


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()
