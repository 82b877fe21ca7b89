"""Per-token aggregated L2 book - absolute-size levels, depth cap, per-level timestamps."""

from __future__ import annotations

import math
from dataclasses import dataclass

from polywhale.models.orderbook import PriceLevel

BUY = "BUY"
SELL = "SELL"


def normalize_price(price: float) -> float:
    """Canonical price key. Feed prices are decimal strings; rounding folds float noise."""
    return round(float(price), 6)


@dataclass(slots=True)
class BookLevel:
    size: float
    updated_at: float


class OrderBook:
    """In-memory aggregated book for one token. Only one level per price per side, never a zero size."""

    __slots__ = ("token_id", "bids", "asks", "depth_cap")

    def __init__(self, token_id: str, depth_cap: int = 50) -> None:
        self.token_id = token_id
        # price -> level (bids: higher is better, asks: lower is better)
        self.bids: dict[float, BookLevel] = {}
        self.asks: dict[float, BookLevel] = {}
        self.depth_cap = depth_cap

    def _side(self, side: str) -> dict[float, BookLevel]:
        return self.bids if side == BUY else self.asks

    def set_level(self, side: str, price: float, size: float, now: float) -> None:
        """Set the absolute size at price; 0 removes. A new level beyond the depth cap is cut at once."""
        levels = self._side(side)
        price = normalize_price(price)
        if size == 0:
            levels.pop(price, None)
            return
        level = levels.get(price)
        if level is None:
            levels[price] = BookLevel(size=size, updated_at=now)
            self._truncate(side)
        else:
            level.size = size
            level.updated_at = now

    def replace(self, bids: list[PriceLevel], asks: list[PriceLevel], now: float) -> None:
        """Replace both sides wholesale. Zero sizes are dropped; a repeated price keeps the last size."""
        self.bids = {normalize_price(lev.price): BookLevel(lev.size, now) for lev in bids if lev.size > 0}
        self.asks = {normalize_price(lev.price): BookLevel(lev.size, now) for lev in asks if lev.size > 0}
        self._truncate(BUY)
        self._truncate(SELL)

    def _truncate(self, side: str) -> None:
        levels = self._side(side)
        if len(levels) <= self.depth_cap:
            return
        keep = sorted(levels, reverse=(side == BUY))[: self.depth_cap]
        kept = {p: levels[p] for p in keep}
        if side == BUY:
            self.bids = kept
        else:
            self.asks = kept

    def drop_older_than(self, cutoff: float) -> int:
        """Remove levels last updated before cutoff. Returns the number removed."""
        removed = 0
        for levels in (self.bids, self.asks):
            stale = [p for p, lev in levels.items() if lev.updated_at < cutoff]
            for p in stale:
                del levels[p]
            removed += len(stale)
        return removed

    def size_at(self, side: str, price: float) -> float:
        level = self._side(side).get(normalize_price(price))
        return level.size if level else 0.0

    def sorted_bids(self) -> list[tuple[float, float]]:
        return [(p, lev.size) for p, lev in sorted(self.bids.items(), reverse=True)]

    def sorted_asks(self) -> list[tuple[float, float]]:
        return [(p, lev.size) for p, lev in sorted(self.asks.items())]

    @property
    def level_count(self) -> int:
        return len(self.bids) + len(self.asks)


def valid_size(size: float) -> bool:
    return isinstance(size, (int, float)) and math.isfinite(size) and size >= 0
