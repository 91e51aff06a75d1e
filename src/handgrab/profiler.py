"""Frame-budget timing for the tracking and render ticks.

The hand-tracking tick runs at camera rate (30 Hz) and the render tick at
headset rate (90 Hz). Each has a budget; the stages nested inside a tick
(classify, debounce, dispatch) are timed on their own so an overrun can be
pinned on one of them.
"""

from __future__ import annotations

import logging
import time
from collections import Counter, defaultdict, deque
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

import numpy as np

logger = logging.getLogger("handgrab.profiler")

TRACKING_TICK = "tracking"
RENDER_TICK = "render"

DEFAULT_BUDGETS_MS = {
    TRACKING_TICK: 1000.0 / 30,
    RENDER_TICK: 1000.0 / 90,
}


@dataclass
class StageStats:
    name: str
    calls: int
    mean_ms: float
    worst_ms: float
    p95_ms: float
    budget_ms: Optional[float] = None
    overruns: int = 0

    @property
    def within_budget(self) -> bool:
        return self.budget_ms is None or self.p95_ms <= self.budget_ms


class TickProfiler:
    """Rolling window of tick and stage durations, checked against budgets.

    Usage:
        profiler = TickProfiler()
        with profiler.stage(TRACKING_TICK):
            with profiler.stage("classify"):
                gesture = classifier.classify(frame)
        profiler.over_budget()
    """

    def __init__(self, window_size: int = 120, budgets: Optional[dict[str, float]] = None):
        self.window_size = window_size
        self.budgets = dict(DEFAULT_BUDGETS_MS if budgets is None else budgets)
        self.enabled = True
        self._samples: defaultdict[str, deque[float]] = defaultdict(
            lambda: deque(maxlen=self.window_size)
        )
        self._calls: Counter[str] = Counter()
        self._overruns: Counter[str] = Counter()

    @contextmanager
    def stage(self, name: str) -> Iterator[None]:
        if not self.enabled:
            yield
            return
        started = time.perf_counter()
        try:
            yield
        finally:
            self.record(name, (time.perf_counter() - started) * 1000.0)

    def record(self, name: str, elapsed_ms: float):
        self._samples[name].append(elapsed_ms)
        self._calls[name] += 1
        budget = self.budgets.get(name)
        if budget is not None and elapsed_ms > budget:
            self._overruns[name] += 1
            logger.debug("%s tick over budget: %.2f ms > %.2f ms", name, elapsed_ms, budget)

    def get_stage_stats(self, name: str) -> Optional[StageStats]:
        samples = self._samples.get(name)
        if not samples:
            return None
        window = np.fromiter(samples, dtype=np.float64)
        return StageStats(
            name=name,
            calls=self._calls[name],
            mean_ms=float(window.mean()),
            worst_ms=float(window.max()),
            p95_ms=float(np.percentile(window, 95)),
            budget_ms=self.budgets.get(name),
            overruns=self._overruns[name],
        )

    def over_budget(self) -> list[str]:
        """Budgeted ticks whose p95 in the current window exceeds the budget."""
        late = []
        for name in self.budgets:
            stats = self.get_stage_stats(name)
            if stats is not None and not stats.within_budget:
                late.append(name)
        return late

    def summary(self) -> dict[str, dict]:
        result = {}
        for name in list(self._samples):
            stats = self.get_stage_stats(name)
            if stats is None:
                continue
            entry = {
                "calls": stats.calls,
                "mean_ms": round(stats.mean_ms, 3),
                "worst_ms": round(stats.worst_ms, 3),
                "p95_ms": round(stats.p95_ms, 3),
            }
            if stats.budget_ms is not None:
                entry["budget_ms"] = round(stats.budget_ms, 3)
                entry["overruns"] = stats.overruns
            result[name] = entry
        return result

    def reset(self):
        self._samples.clear()
        self._calls.clear()
        self._overruns.clear()
