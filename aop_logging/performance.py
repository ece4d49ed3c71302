"""
Performance Records
===================
One record per intercepted call, written to the performance sink and
never retained.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .config import DEFAULT_SLOW_THRESHOLD_MS, PERFORMANCE_LOGGER_NAME
from .formatting import to_json_string

performance_logger = logging.getLogger(PERFORMANCE_LOGGER_NAME)


@dataclass(frozen=True)
class PerformanceRecord:
    class_name: str
    method: str
    execution_time_ms: int
    success: bool
    request_id: Optional[str]
    timestamp: str
    slow: bool

    @classmethod
    def build(
        cls,
        class_name: str,
        method: str,
        execution_time_ms: int,
        success: bool,
        request_id: Optional[str],
        slow_threshold_ms: int = DEFAULT_SLOW_THRESHOLD_MS,
    ) -> "PerformanceRecord":
        return cls(
            class_name=class_name,
            method=method,
            execution_time_ms=execution_time_ms,
            success=success,
            request_id=request_id,
            timestamp=datetime.now(timezone.utc).isoformat(),
            slow=execution_time_ms > slow_threshold_ms,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "class": self.class_name,
            "method": self.method,
            "execution_time_ms": self.execution_time_ms,
            "success": self.success,
            "request_id": self.request_id,
            "timestamp": self.timestamp,
            "slow": self.slow,
        }


def emit_performance_record(
    record: PerformanceRecord,
    logger: logging.Logger = performance_logger,
) -> None:
    """Log a record: WARNING when slow, INFO otherwise."""
    payload = record.to_dict()
    extra = {"extra_data": {"performance": payload}}

    if record.slow:
        logger.warning("SLOW METHOD DETECTED: %s", to_json_string(payload), extra=extra)
    else:
        logger.info("Performance: %s", to_json_string(payload), extra=extra)
