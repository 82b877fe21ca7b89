"""WhaleEngine - owns the book store, the detector and the active instrument mapping.

All methods are synchronous and are only ever called from the monitor's event
loop, which is what serializes feed events against the aging tick, the stale
sweep and cleanup.
"""

from __future__ import annotations

import time
from typing import Any, Callable

import structlog

from polywhale.detector.delta import DeltaDetector
from polywhale.models.alert import WhaleAlert
from polywhale.models.config import DetectorConfig
from polywhale.models.instrument import InstrumentMapping
from polywhale.models.orderbook import FeedEvent, OrderBookDelta, OrderBookSnapshot
from polywhale.orderbook.store import OrderBookStore

log = structlog.get_logger(__name__)


class WhaleEngine:
    def __init__(
        self,
        config: DetectorConfig,
        instruments: InstrumentMapping | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config
        self._clock = clock
        self._tracked_sides = frozenset(config.tracked_sides)
        self._instruments: InstrumentMapping = instruments or {}
        self.detector = DeltaDetector(config, self._instruments, clock=clock)
        self.store = OrderBookStore(depth_cap=config.depth_cap, clock=clock, listener=self._on_level)
        self.events_applied = 0
        self.events_ignored = 0

    @property
    def instruments(self) -> InstrumentMapping:
        return self._instruments

    def is_active(self, token_id: str) -> bool:
        return token_id in self._instruments

    def handle_event(self, event: FeedEvent) -> bool:
        """Apply one parsed feed event. Returns False if it was ignored."""
        if not self.is_active(event.asset_id):
            self.events_ignored += 1
            log.debug("event_for_inactive_token", asset_id=event.asset_id)
            return False
        if isinstance(event, OrderBookSnapshot):
            self.store.apply_snapshot(event.asset_id, event.bids, event.asks)
        elif isinstance(event, OrderBookDelta):
            if not self.store.apply_incremental(event.asset_id, event.price, event.side, event.size):
                self.events_ignored += 1
                return False
        else:
            log.warning("unknown_event_type", event_type=type(event).__name__)
            self.events_ignored += 1
            return False
        self.events_applied += 1
        return True

    def _on_level(self, token_id: str, price: float, side: str, size: float) -> None:
        # Buying one outcome is selling the other; tracking both sides would alert the same order twice.
        if side not in self._tracked_sides:
            return
        if size == 0:
            self.detector.remove_order(token_id, price, side)
        else:
            self.detector.observe(token_id, price, side, size)

    def update_instruments(self, instruments: InstrumentMapping) -> list[str]:
        """Swap the active mapping and drop state for tokens that left it. Returns the dropped tokens."""
        previous = set(self._instruments)
        self._instruments = instruments
        self.detector.update_instruments(instruments)
        self.cleanup(set(instruments))
        gone = sorted(previous - set(instruments))
        if gone:
            log.info("instruments_removed", count=len(gone))
        return gone

    def cleanup(self, active_tokens: set[str]) -> None:
        levels = self.detector.cleanup(active_tokens)
        books = self.store.retain(active_tokens)
        if levels or books:
            log.info("engine_cleanup", levels_removed=levels, books_removed=books)

    def sweep_stale(self) -> int:
        return self.store.sweep_stale(self.config.stale_after_sec)

    def check_ages(self, now: float | None = None) -> list[WhaleAlert]:
        return self.detector.check_ages(now)

    def stats(self) -> dict[str, Any]:
        d = self.detector.stats()
        return {
            "instruments": len(self._instruments),
            "books": len(self.store),
            "book_levels": self.store.level_count(),
            "tracked_levels": d.levels,
            "tracking": d.tracking,
            "alerted": d.alerted,
            "events_applied": self.events_applied,
            "events_ignored": self.events_ignored,
        }
