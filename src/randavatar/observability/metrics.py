"""In-process metrics for the avatar service.

Tracks:
  - Tick outcomes and per-user update outcomes
  - Interaction acknowledgments (accepted / rejected)
  - Tick wall-clock latency

State lives in a process-global singleton and is exported as a plain dict
on /metrics. Everything runs on one event loop, so no locking is needed.
"""

from __future__ import annotations

import math
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from randavatar.crons.updater import TickReport

# Upper bounds in milliseconds; ticks are long-running batches
_TICK_BUCKETS_MS: tuple[float, ...] = (
    1_000, 5_000, 15_000, 30_000, 60_000, 120_000, 300_000, 900_000, float("inf"),
)


@dataclass
class Histogram:
    """Fixed-bucket latency histogram with running min/max/sum."""

    name: str
    bounds: tuple[float, ...] = _TICK_BUCKETS_MS
    counts: list[int] = field(default_factory=list)
    total: int = 0
    sum_ms: float = 0.0
    max_ms: float = 0.0

    def __post_init__(self) -> None:
        if not self.counts:
            self.counts = [0] * len(self.bounds)

    def record(self, value_ms: float) -> None:
        self.total += 1
        self.sum_ms += value_ms
        self.max_ms = max(self.max_ms, value_ms)
        for i, bound in enumerate(self.bounds):
            if value_ms <= bound:
                self.counts[i] += 1
                break

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.total,
            "mean_ms": round(self.sum_ms / self.total, 2) if self.total else 0.0,
            "max_ms": round(self.max_ms, 2),
            "buckets": {
                "+Inf" if math.isinf(b) else str(int(b)): self.counts[i]
                for i, b in enumerate(self.bounds)
            },
        }


class MetricsCollector:
    """Process-global metrics registry.

    Counters (labelled):
        ticks_total[status]          completed / failed / deadline_exceeded
        user_updates_total[outcome]  succeeded / failed / persist_failed
        interactions_total[outcome]  accepted / rejected / unauthorized

    Histograms:
        tick_latency_ms
    """

    def __init__(self) -> None:
        self._counters: dict[str, dict[str, int]] = defaultdict(lambda: defaultdict(int))
        self.tick_latency = Histogram("tick_latency_ms")
        self.last_tick: dict[str, Any] | None = None
        self._started_at = time.time()

    def increment(self, name: str, label: str = "", value: int = 1) -> None:
        self._counters[name][label] += value

    def counter(self, name: str, label: str = "") -> int:
        return self._counters.get(name, {}).get(label, 0)

    def record_tick(self, report: TickReport, duration_ms: float) -> None:
        self.increment("ticks_total", "completed")
        self.increment("user_updates_total", "succeeded", report.succeeded)
        self.increment("user_updates_total", "failed", report.failed)
        self.increment("user_updates_total", "persist_failed", report.persist_failed)
        self.tick_latency.record(duration_ms)
        self.last_tick = {**report.to_dict(), "duration_ms": round(duration_ms, 2)}

    def snapshot(self) -> dict[str, Any]:
        return {
            "uptime_s": round(time.time() - self._started_at, 1),
            "counters": {
                name: dict(labels) for name, labels in self._counters.items()
            },
            "tick_latency_ms": self.tick_latency.to_dict(),
            "last_tick": self.last_tick,
        }

    def reset(self) -> None:
        self._counters.clear()
        self.tick_latency = Histogram("tick_latency_ms")
        self.last_tick = None


_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
