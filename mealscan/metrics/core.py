"""In-memory metrics registry for the analysis service.

* Counters and sliding-window histograms keyed by name + tags.
* JSON-serializable snapshot (served by ``GET /metrics`` and read in tests).
* Thread-safe; state lives for the process only.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from threading import Lock
from typing import Deque, Dict, List, Tuple, TypedDict
import time

HISTOGRAM_WINDOW = 2000

TagKey = Tuple[str, Tuple[Tuple[str, str], ...]]  # (metric_name, sorted_tags)


def _tag_key(name: str, tags: Dict[str, str]) -> TagKey:
    return name, tuple(sorted(tags.items()))


class CounterSnap(TypedDict):
    name: str
    tags: Dict[str, str]
    value: int


class HistogramStats(TypedDict):
    count: int
    avg: float
    p95: float
    min: float
    max: float


class HistogramSnap(HistogramStats):
    name: str
    tags: Dict[str, str]


class RegistrySnapshot(TypedDict):
    counters: List[CounterSnap]
    histograms: List[HistogramSnap]
    generated_at: float


@dataclass
class Counter:
    name: str
    tags: Dict[str, str]
    _value: int = 0
    _lock: Lock = field(default_factory=Lock, repr=False)

    def inc(self, amount: int = 1) -> None:
        with self._lock:
            self._value += amount

    def value(self) -> int:
        with self._lock:
            return self._value

    def snapshot(self) -> CounterSnap:
        return {"name": self.name, "tags": dict(self.tags), "value": self.value()}


@dataclass
class Histogram:
    """Keeps the last ``window`` observations."""

    name: str
    tags: Dict[str, str]
    window: int = HISTOGRAM_WINDOW
    _values: Deque[float] = field(default_factory=deque, init=False, repr=False)
    _lock: Lock = field(default_factory=Lock, repr=False)

    def __post_init__(self) -> None:
        self._values = deque(maxlen=self.window)

    def observe(self, value: float) -> None:
        with self._lock:
            self._values.append(value)

    def stats(self) -> HistogramStats:
        with self._lock:
            vals = sorted(self._values)
        if not vals:
            return {"count": 0, "avg": 0.0, "p95": 0.0, "min": 0.0, "max": 0.0}
        count = len(vals)
        return {
            "count": count,
            "avg": sum(vals) / count,
            "p95": vals[int(0.95 * (count - 1))],
            "min": vals[0],
            "max": vals[-1],
        }

    def snapshot(self) -> HistogramSnap:
        stats = self.stats()
        return {
            "name": self.name,
            "tags": dict(self.tags),
            "count": stats["count"],
            "avg": stats["avg"],
            "p95": stats["p95"],
            "min": stats["min"],
            "max": stats["max"],
        }


class MetricsRegistry:
    """Get-or-create access to counters and histograms."""

    def __init__(self) -> None:
        self._counters: Dict[TagKey, Counter] = {}
        self._histograms: Dict[TagKey, Histogram] = {}
        self._lock = Lock()

    def counter(self, name: str, **tags: str) -> Counter:
        key = _tag_key(name, tags)
        with self._lock:
            if key not in self._counters:
                self._counters[key] = Counter(name=name, tags=tags)
            return self._counters[key]

    def histogram(self, name: str, **tags: str) -> Histogram:
        key = _tag_key(name, tags)
        with self._lock:
            if key not in self._histograms:
                self._histograms[key] = Histogram(name=name, tags=tags)
            return self._histograms[key]

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._histograms.clear()

    def snapshot(self) -> RegistrySnapshot:
        # copy references under lock, read values outside
        with self._lock:
            counters = list(self._counters.values())
            histograms = list(self._histograms.values())
        return {
            "counters": [c.snapshot() for c in counters],
            "histograms": [h.snapshot() for h in histograms],
            "generated_at": time.time(),
        }


registry = MetricsRegistry()
