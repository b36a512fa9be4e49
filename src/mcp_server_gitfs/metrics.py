import asyncio
import time
from collections import defaultdict
from typing import Any, Dict, Optional


class MetricsCollector:
    """
    In-process metrics for MCP GitFS Server.
    Counts calls per operation, failures by kind and call durations.
    Safe for concurrent use from async handlers.
    """

    def __init__(self):
        self._lock = asyncio.Lock()
        self._metrics = self._empty()

    @staticmethod
    def _empty() -> Dict[str, Any]:
        return {
            "operations": defaultdict(int),
            "errors": defaultdict(int),
            "error_kinds": defaultdict(int),
            "operation_durations_ms": [],
            "startup_time": time.time(),
        }

    async def record_operation(
        self,
        operation: str,
        success: bool,
        duration_ms: Optional[float] = None,
        error_kind: Optional[str] = None,
    ):
        async with self._lock:
            self._metrics["operations"][operation] += 1
            if not success:
                self._metrics["errors"][operation] += 1
                if error_kind:
                    self._metrics["error_kinds"][error_kind] += 1
            if duration_ms is not None:
                self._metrics["operation_durations_ms"].append(duration_ms)

    async def get_metrics(self) -> Dict[str, Any]:
        async with self._lock:
            op_durations = self._metrics["operation_durations_ms"]
            avg_op_duration = sum(op_durations) / len(op_durations) if op_durations else 0
            return {
                "operations": dict(self._metrics["operations"]),
                "errors": dict(self._metrics["errors"]),
                "error_kinds": dict(self._metrics["error_kinds"]),
                "total_operations": sum(self._metrics["operations"].values()),
                "avg_operation_duration_ms": avg_op_duration,
                "max_operation_duration_ms": max(op_durations) if op_durations else 0,
                "uptime_sec": time.time() - self._metrics["startup_time"],
            }

    async def reset(self):
        async with self._lock:
            self._metrics = self._empty()


# Singleton instance for global use
global_metrics_collector = MetricsCollector()
