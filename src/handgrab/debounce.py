"""Asymmetric hold filter for noisy boolean predicates."""

from __future__ import annotations

from typing import Optional


class EdgeDebouncer:
    """Confirms True only after a continuous True streak of `hold_ms`.

    False propagates immediately and disarms the timer, so a single False
    sample in the middle of a streak restarts the hold. Use one instance per
    predicate and per hand; sharing an instance corrupts the hold timer.

    Usage:
        pinch_right = EdgeDebouncer(hold_ms=80)
        confirmed = pinch_right.update(gesture is Gesture.PINCH, now_ms)
    """

    def __init__(self, hold_ms: float = 80.0):
        if hold_ms < 0:
            raise ValueError(f"hold_ms must be >= 0, got {hold_ms}")
        self.hold_ms = hold_ms
        self._armed_at: Optional[float] = None

    def update(self, raw: bool, now: float) -> bool:
        if not raw:
            self._armed_at = None
            return False
        if self._armed_at is None:
            self._armed_at = now
        return now - self._armed_at >= self.hold_ms

    def reset(self):
        self._armed_at = None

    @property
    def is_armed(self) -> bool:
        return self._armed_at is not None

    @property
    def armed_at(self) -> Optional[float]:
        return self._armed_at
