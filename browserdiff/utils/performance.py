"""Timing collector passed explicitly through one run."""

from __future__ import annotations

import asyncio
import itertools
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Awaitable, Iterator, Optional, TypeVar

from browserdiff.errors import CaptureTimeoutError

T = TypeVar("T")


@dataclass
class PerformanceMetric:
    operation: str
    start_time: float  # ms since epoch
    end_time: Optional[float] = None
    duration: Optional[float] = None  # ms
    metadata: dict[str, Any] = field(default_factory=dict)


class PerformanceCollector:
    """Records durations of named operations for a single run."""

    def __init__(self) -> None:
        self._metrics: dict[str, PerformanceMetric] = {}
        self._ids = itertools.count(1)

    def start(self, operation: str, **metadata: Any) -> str:
        metric_id = f"{operation}-{next(self._ids)}"
        self._metrics[metric_id] = PerformanceMetric(
            operation=operation, start_time=time.time() * 1000, metadata=metadata
        )
        return metric_id

    def end(self, metric_id: str) -> PerformanceMetric | None:
        metric = self._metrics.get(metric_id)
        if metric is None:
            return None
        metric.end_time = time.time() * 1000
        metric.duration = metric.end_time - metric.start_time
        return metric

    @contextmanager
    def measure(self, operation: str, **metadata: Any) -> Iterator[str]:
        metric_id = self.start(operation, **metadata)
        try:
            yield metric_id
        finally:
            self.end(metric_id)

    def get_metrics(self, operation: str | None = None) -> list[PerformanceMetric]:
        metrics = list(self._metrics.values())
        if operation:
            return [m for m in metrics if m.operation == operation]
        return metrics

    def _completed(self, operation: str) -> list[PerformanceMetric]:
        return [m for m in self.get_metrics(operation) if m.duration is not None]

    def get_average_duration(self, operation: str) -> float:
        completed = self._completed(operation)
        if not completed:
            return 0.0
        return sum(m.duration for m in completed) / len(completed)

    def get_total_duration(self, operation: str) -> float:
        return sum(m.duration for m in self._completed(operation))

    def clear(self) -> None:
        self._metrics.clear()

    def get_report(self) -> str:
        operations = dict.fromkeys(m.operation for m in self._metrics.values())
        lines = ["Performance Report:", ""]
        for operation in operations:
            lines.append(f"{operation}:")
            lines.append(f"  Count: {len(self._completed(operation))}")
            lines.append(f"  Average: {self.get_average_duration(operation):.2f}ms")
            lines.append(f"  Total: {self.get_total_duration(operation):.2f}ms")
            lines.append("")
        return "\n".join(lines)


def format_duration(ms: float) -> str:
    if ms < 1000:
        return f"{ms:.0f}ms"
    if ms < 60000:
        return f"{ms / 1000:.2f}s"
    minutes = int(ms // 60000)
    seconds = (ms % 60000) / 1000
    return f"{minutes}m {seconds:.0f}s"


async def with_timeout(awaitable: Awaitable[T], timeout_ms: int, operation: str) -> T:
    """Race ``awaitable`` against a timeout; a timeout raises CaptureTimeoutError."""
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout_ms / 1000)
    except asyncio.TimeoutError as e:
        raise CaptureTimeoutError(
            f"{operation} timed out after {timeout_ms}ms", operation
        ) from e
