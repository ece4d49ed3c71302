import json
import logging

from aop_logging.performance import PerformanceRecord, emit_performance_record


def _payload(record: logging.LogRecord) -> dict:
    return json.loads(record.getMessage().split(": ", 1)[1])


class TestPerformanceRecord:

    def test_slow_above_threshold(self):
        """Should flag executions above the threshold as slow."""
        record = PerformanceRecord.build("OrderController", "list", 1500, True, "abc12345")
        assert record.slow is True

    def test_not_slow_at_threshold(self):
        """Should not flag executions exactly at the threshold."""
        record = PerformanceRecord.build("OrderController", "list", 1000, True, "abc12345")
        assert record.slow is False

    def test_custom_threshold(self):
        """Should honour a custom threshold and record failures."""
        record = PerformanceRecord.build("OrderController", "list", 60, False, None, slow_threshold_ms=50)
        assert record.slow is True
        assert record.to_dict()["success"] is False


class TestEmit:

    def test_slow_goes_to_warning(self, caplog):
        """Should log slow records at warning with the JSON payload."""
        caplog.set_level(logging.INFO, logger="performance")
        record = PerformanceRecord.build("OrderController", "list", 2500, True, "abc12345")

        emit_performance_record(record)

        [log] = caplog.records
        assert log.name == "performance"
        assert log.levelno == logging.WARNING
        assert log.getMessage().startswith("SLOW METHOD DETECTED: ")
        payload = _payload(log)
        assert payload["slow"] is True
        assert payload["class"] == "OrderController"
        assert payload["execution_time_ms"] == 2500
        assert log.extra_data["performance"]["request_id"] == "abc12345"

    def test_fast_goes_to_info(self, caplog):
        """Should log regular records at info."""
        caplog.set_level(logging.INFO, logger="performance")
        record = PerformanceRecord.build("OrderController", "list", 12, True, "abc12345")

        emit_performance_record(record)

        [log] = caplog.records
        assert log.levelno == logging.INFO
        assert log.getMessage().startswith("Performance: ")
        assert _payload(log)["slow"] is False
