"""In-process metrics for lifecycle operations and database access."""

from dataclasses import dataclass
from threading import Lock
from typing import Any


@dataclass
class Timer:
    count: int = 0
    total_ms: float = 0.0
    max_ms: float = 0.0

    def observe(self, value_ms: float) -> None:
        self.count += 1
        self.total_ms += value_ms
        if value_ms > self.max_ms:
            self.max_ms = value_ms

    def snapshot(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "total_ms": self.total_ms,
            "max_ms": self.max_ms,
            "avg_ms": self.total_ms / self.count if self.count else 0.0,
        }


class MetricsRegistry:
    """Thread-safe counters and timers keyed by dotted names."""

    def __init__(self) -> None:
        self._lock = Lock()
        self.counters: dict[str, float] = {}
        self.timers: dict[str, Timer] = {}

    def inc_counter(self, name: str, amount: float = 1.0) -> None:
        with self._lock:
            self.counters[name] = self.counters.get(name, 0.0) + amount

    def observe(self, name: str, value_ms: float) -> None:
        with self._lock:
            self.timers.setdefault(name, Timer()).observe(value_ms)

    def record_operation(self, kind: str, action: str, outcome: str = "ok") -> None:
        """Count one engine operation, e.g. ``event.approve.ok``."""
        self.inc_counter(f"{kind}.{action}.{outcome}")

    def reset(self) -> None:
        with self._lock:
            self.counters.clear()
            self.timers.clear()

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "counters": dict(self.counters),
                "timers": {name: timer.snapshot() for name, timer in self.timers.items()},
            }


metrics = MetricsRegistry()
