"""In-process counters and timings for the crop pipeline.

Components record how often the expensive or lossy paths are taken
(corrective crop regeneration, skipped gallery assets, stale async
results). The headless CLI prints the counters next to the gallery.

Usage:
    from layout_splitter.metrics import metrics
    metrics.inc("quality_guard.regenerations")
    with metrics.timed("api.create_crops"):
        ...
    metrics.count("gallery.signing_failures")
"""

from __future__ import annotations

import time
from collections import Counter, defaultdict
from collections.abc import Iterator
from contextlib import contextmanager
from threading import RLock
from typing import Any


class _Metrics:
    def __init__(self) -> None:
        self._counters: Counter[str] = Counter()
        self._timings: dict[str, list[float]] = defaultdict(list)
        self._lock = RLock()

    def inc(self, key: str, amount: int = 1) -> None:
        with self._lock:
            self._counters[key] += int(amount)

    def count(self, key: str) -> int:
        with self._lock:
            return self._counters[key]

    def counters(self, prefix: str = "") -> dict[str, int]:
        with self._lock:
            return {k: v for k, v in sorted(self._counters.items()) if k.startswith(prefix)}

    @contextmanager
    def timed(self, key: str) -> Iterator[None]:
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - start
            with self._lock:
                self._timings[key].append(elapsed)

    def timing_stats(self, key: str) -> dict[str, float]:
        """{count, total, max} in seconds for one timed key."""
        with self._lock:
            samples = list(self._timings.get(key, ()))
        return {
            "count": float(len(samples)),
            "total": sum(samples),
            "max": max(samples, default=0.0),
        }

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "counters": dict(self._counters),
                "timings": {k: list(v) for k, v in self._timings.items()},
            }

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._timings.clear()


metrics = _Metrics()
