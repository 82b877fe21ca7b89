"""Delta detector - turns level size changes into timed whale candidates.

A level is interesting when its aggregated size jumps by at least ``min_size``
in one observation and the jump is a large fraction of what was there before
(``min_impact_percent``). The jump is then tracked while the level stays
within ``delta_tolerance`` of it; once it has persisted for ``alert_age_sec``
the aging scan promotes it to an alert. The first observation of any level
only records a baseline, so bulk snapshot loads never alert.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable

import structlog

from polywhale.detector.levels import LevelKey, LevelState, TrackedLevel
from polywhale.models.alert import WhaleAlert
from polywhale.models.config import DetectorConfig
from polywhale.models.instrument import InstrumentMapping
from polywhale.orderbook.book import normalize_price

log = structlog.get_logger(__name__)


@dataclass
class DetectorStats:
    levels: int = 0
    tracking: int = 0
    alerted: int = 0


class DeltaDetector:
    """Per-level BASELINE -> TRACKING -> ALERTED state machine."""

    def __init__(
        self,
        config: DetectorConfig,
        instruments: InstrumentMapping | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config
        self._instruments: InstrumentMapping = instruments or {}
        self._clock = clock
        self._levels: dict[LevelKey, TrackedLevel] = {}

    def update_instruments(self, instruments: InstrumentMapping) -> None:
        """Swap in a new token mapping. Readers see either the old or the new one."""
        self._instruments = instruments

    @property
    def instruments(self) -> InstrumentMapping:
        return self._instruments

    def _accepts(self, token_id: str, price: float) -> bool:
        if price < self.config.min_price or price > self.config.max_price:
            return False
        return token_id in self._instruments

    def observe(
        self,
        token_id: str,
        price: float,
        side: str,
        size: float,
        now: float | None = None,
    ) -> LevelState | None:
        """Feed one absolute level size. Returns the level state afterwards, or None if filtered out."""
        price = normalize_price(price)
        if not self._accepts(token_id, price):
            return None
        now = self._clock() if now is None else now
        key = LevelKey(token_id, price, side)
        level = self._levels.get(key)
        if level is None:
            self._levels[key] = TrackedLevel(previous_size=size, baseline_size=size)
            return LevelState.BASELINE

        cfg = self.config
        delta = size - level.previous_size
        if level.tracked_delta == 0:
            impact = delta / level.previous_size if level.previous_size > 0 else 1.0
            if delta >= cfg.min_size and impact >= cfg.min_impact_percent:
                level.start_tracking(level.previous_size, delta, now)
                log.info(
                    "whale_candidate",
                    token_id=token_id,
                    price=price,
                    side=side,
                    delta=delta,
                    impact=round(impact, 3),
                    match=self._slug(token_id),
                )
        else:
            from_baseline = size - level.baseline_size
            threshold = level.tracked_delta * (1 - cfg.delta_tolerance)
            if from_baseline >= threshold:
                if from_baseline > level.tracked_delta:
                    log.debug("whale_candidate_grew", token_id=token_id, price=price, tracked_delta=from_baseline)
                    level.tracked_delta = from_baseline
            else:
                if not level.alerted:
                    log.info(
                        "whale_candidate_withdrawn",
                        token_id=token_id,
                        price=price,
                        side=side,
                        tracked_delta=level.tracked_delta,
                        size=size,
                        match=self._slug(token_id),
                    )
                level.reset(size)
        level.previous_size = size
        return level.state

    def remove_order(self, token_id: str, price: float, side: str) -> None:
        """The level was deleted (size 0). Unknown levels are ignored."""
        level = self._levels.get(LevelKey(token_id, normalize_price(price), side))
        if level is None:
            return
        if level.tracked_delta > 0 and not level.alerted:
            log.info("whale_candidate_cleared", token_id=token_id, price=price, side=side, match=self._slug(token_id))
        level.previous_size = 0.0
        level.reset(0.0)

    def check_ages(self, now: float | None = None) -> list[WhaleAlert]:
        """Promote every TRACKING level older than alert_age_sec. Each episode alerts once."""
        now = self._clock() if now is None else now
        alerts: list[WhaleAlert] = []
        for key, level in self._levels.items():
            if level.tracked_delta == 0 or level.alerted or level.delta_first_seen is None:
                continue
            age = level.age(now)
            if age < self.config.alert_age_sec:
                continue
            instrument = self._instruments.get(key.token_id)
            if instrument is None:
                continue
            alerts.append(
                WhaleAlert(
                    timestamp=datetime.fromtimestamp(now, tz=timezone.utc).isoformat(),
                    match_id=instrument.match_slug,
                    outcome_label=instrument.outcome,
                    question=instrument.question,
                    instrument_id=key.token_id,
                    price=key.price,
                    size=level.tracked_delta,
                    side=key.side,
                    age_seconds=int(age),
                )
            )
            level.alerted = True
        return alerts

    def cleanup(self, active_tokens: Iterable[str]) -> int:
        """Forget every level whose token is no longer active. Returns the number removed."""
        active = set(active_tokens)
        gone = [k for k in self._levels if k.token_id not in active]
        for key in gone:
            del self._levels[key]
        if gone:
            log.info("detector_cleanup", removed=len(gone))
        return len(gone)

    def get(self, token_id: str, price: float, side: str) -> TrackedLevel | None:
        return self._levels.get(LevelKey(token_id, normalize_price(price), side))

    def __len__(self) -> int:
        return len(self._levels)

    def stats(self) -> DetectorStats:
        stats = DetectorStats(levels=len(self._levels))
        for level in self._levels.values():
            if level.tracked_delta > 0:
                stats.tracking += 1
                if level.alerted:
                    stats.alerted += 1
        return stats

    def _slug(self, token_id: str) -> str | None:
        inst = self._instruments.get(token_id)
        return inst.match_slug if inst else None
