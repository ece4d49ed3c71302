import json

from aop_logging.config import InterceptorSettings
from aop_logging.exceptions import RequestDetailError
from aop_logging.formatting import (
    build_request_details,
    format_arguments,
    qualified_name,
    simple_class_name,
    to_json_string,
)
from aop_logging.request_info import RequestSnapshot


def deeply_nested(depth):
    payload = []
    for _ in range(depth):
        payload = [payload]
    return payload


class TestNames:

    def test_simple_class_name(self):
        """Should keep the last dotted segment."""
        assert simple_class_name("com.example.service.OrderService") == "OrderService"

    def test_simple_class_name_without_package(self):
        """Should return undotted names unchanged."""
        assert simple_class_name("OrderService") == "OrderService"
        assert simple_class_name("") == ""

    def test_qualified_name(self):
        """Should join module and qualified class name."""
        assert qualified_name(ValueError) == "builtins.ValueError"


class TestArguments:

    def test_type_summary(self):
        """Should list argument type names, never values."""
        assert format_arguments(["a", 1, None, {"k": "v"}]) == "[str, int, None, dict]"

    def test_empty(self):
        """Should render no arguments as empty brackets."""
        assert format_arguments([]) == "[]"
        assert format_arguments(()) == "[]"


class TestJson:

    def test_compact_json(self):
        """Should serialize without whitespace."""
        assert to_json_string({"a": 1, "b": None}) == '{"a":1,"b":null}'

    def test_falls_back_to_text(self):
        """Should never raise on unserializable payloads."""
        payload = {"value": object()}
        assert to_json_string(payload) == str(payload)

    def test_deeply_nested_payload(self):
        """Should not raise when a payload is nested past the recursion limit."""
        result = to_json_string(deeply_nested(100_000))

        assert isinstance(result, str)
        assert result


class TestRequestDetails:

    def test_minimal_record(self, snapshot):
        """Should hold method, uri and query string by default."""
        outcome = build_request_details(snapshot, ("x",), InterceptorSettings())

        assert outcome.ok
        assert outcome.value == {
            "method": "GET",
            "uri": "/orders/7",
            "query_string": "expand=items",
        }

    def test_headers_when_enabled(self, snapshot):
        """Should add headers only when header logging is on."""
        outcome = build_request_details(snapshot, (), InterceptorSettings(log_headers=True))

        assert outcome.value["headers"]["x-user-id"] == "u42"
        assert "arguments" not in outcome.value

    def test_arguments_when_enabled(self, snapshot):
        """Should add the argument summary only when there are arguments."""
        settings = InterceptorSettings(log_request_body=True)

        with_args = build_request_details(snapshot, (7, "full"), settings)
        without_args = build_request_details(snapshot, (), settings)

        assert with_args.value["arguments"] == "[int, str]"
        assert "headers" not in with_args.value
        assert "arguments" not in without_args.value
        json.loads(to_json_string(with_args.value))

    def test_failure_is_returned(self):
        """Should return a failed outcome instead of raising."""
        broken = RequestSnapshot(method="GET", uri="/", headers=None)

        outcome = build_request_details(broken, (), InterceptorSettings(log_headers=True))

        assert not outcome.ok
        assert outcome.value is None
        assert isinstance(outcome.error, RequestDetailError)
