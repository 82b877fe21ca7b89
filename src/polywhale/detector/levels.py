"""TrackedLevel state per (token, price, side)."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple


class LevelKey(NamedTuple):
    token_id: str
    price: float
    side: str


class LevelState(str, Enum):
    BASELINE = "BASELINE"
    TRACKING = "TRACKING"
    ALERTED = "ALERTED"


@dataclass(slots=True)
class TrackedLevel:
    """Detector memory for one level.

    previous_size is the last observed absolute size. tracked_delta > 0 exactly
    while a jump is being tracked, and delta_first_seen is set for exactly that
    span. alerted flips at most once per tracking episode.
    """

    previous_size: float
    baseline_size: float
    tracked_delta: float = 0.0
    delta_first_seen: float | None = None
    alerted: bool = False

    @property
    def state(self) -> LevelState:
        if self.tracked_delta == 0:
            return LevelState.BASELINE
        return LevelState.ALERTED if self.alerted else LevelState.TRACKING

    def start_tracking(self, baseline_size: float, delta: float, now: float) -> None:
        self.baseline_size = baseline_size
        self.tracked_delta = delta
        self.delta_first_seen = now
        self.alerted = False

    def reset(self, baseline_size: float) -> None:
        """Hard reset to BASELINE. A withdrawn order has to reappear as a new jump to alert again."""
        self.baseline_size = baseline_size
        self.tracked_delta = 0.0
        self.delta_first_seen = None
        self.alerted = False

    def age(self, now: float) -> float:
        if self.delta_first_seen is None:
            return 0.0
        return now - self.delta_first_seen
