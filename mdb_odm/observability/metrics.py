"""
Metrics collection for MDB_ODM.

Counts and times executor operations (queries, writes, findAndModify) so an
application can see latency and error rates per collection.
"""

import logging
import threading
import time
from collections import OrderedDict
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, AsyncIterator

from ..constants import MAX_METRICS
from .logging import log_operation

logger = logging.getLogger(__name__)


@dataclass
class OperationMetrics:
    """Metrics for a single operation key."""

    operation_name: str
    count: int = 0
    total_duration_ms: float = 0.0
    max_duration_ms: float = 0.0
    error_count: int = 0
    last_execution: datetime | None = None

    @property
    def avg_duration_ms(self) -> float:
        return self.total_duration_ms / self.count if self.count > 0 else 0.0

    def record(self, duration_ms: float, success: bool = True) -> None:
        self.count += 1
        self.total_duration_ms += duration_ms
        self.max_duration_ms = max(self.max_duration_ms, duration_ms)
        if not success:
            self.error_count += 1
        self.last_execution = datetime.now()

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation_name,
            "count": self.count,
            "avg_duration_ms": round(self.avg_duration_ms, 2),
            "max_duration_ms": round(self.max_duration_ms, 2),
            "error_count": self.error_count,
            "last_execution": (self.last_execution.isoformat() if self.last_execution else None),
        }


class MetricsCollector:
    """
    Thread-safe collector of operation metrics.

    Keys combine the operation name and its tags, e.g.
    "query.one[collection=users]". The oldest key is evicted once
    `max_metrics` keys exist.
    """

    def __init__(self, max_metrics: int = MAX_METRICS):
        self._metrics: OrderedDict[str, OperationMetrics] = OrderedDict()
        self._lock = threading.Lock()
        self._max_metrics = max_metrics

    def record_operation(
        self, operation_name: str, duration_ms: float, success: bool = True, **tags: Any
    ) -> None:
        key = operation_name
        if tags:
            tag_str = ",".join(f"{k}={v}" for k, v in sorted(tags.items()))
            key = f"{operation_name}[{tag_str}]"

        with self._lock:
            if key not in self._metrics:
                if len(self._metrics) >= self._max_metrics:
                    self._metrics.popitem(last=False)
                self._metrics[key] = OperationMetrics(operation_name=operation_name)
            else:
                self._metrics.move_to_end(key)
            self._metrics[key].record(duration_ms, success)

    def get_metrics(self, operation_name: str | None = None) -> dict[str, Any]:
        with self._lock:
            metrics = {
                k: v.to_dict()
                for k, v in self._metrics.items()
                if operation_name is None or v.operation_name == operation_name
            }
        return {"timestamp": datetime.now().isoformat(), "metrics": metrics}

    def get_operation_count(self, operation_name: str) -> int:
        with self._lock:
            return sum(
                m.count for m in self._metrics.values() if m.operation_name == operation_name
            )

    def reset(self) -> None:
        with self._lock:
            self._metrics.clear()


_metrics_collector: MetricsCollector | None = None


def get_metrics_collector() -> MetricsCollector:
    """Get or create the global metrics collector."""
    global _metrics_collector
    if _metrics_collector is None:
        _metrics_collector = MetricsCollector()
    return _metrics_collector


def record_operation(
    operation_name: str, duration_ms: float, success: bool = True, **tags: Any
) -> None:
    """Record an operation in the global metrics collector."""
    get_metrics_collector().record_operation(operation_name, duration_ms, success, **tags)


@asynccontextmanager
async def timed_operation(operation_name: str, **tags: Any) -> AsyncIterator[None]:
    """
    Time the enclosed block and record it, failed if it raises.

    Usage:
        async with timed_operation("query.all", collection="users"):
            ...
    """
    start_time = time.perf_counter()
    success = True
    try:
        yield
    except BaseException:
        success = False
        raise
    finally:
        duration_ms = (time.perf_counter() - start_time) * 1000
        record_operation(operation_name, duration_ms, success, **tags)
        log_operation(
            logger,
            operation_name,
            level=logging.DEBUG if success else logging.WARNING,
            success=success,
            duration_ms=duration_ms,
            **tags,
        )
