"""OrderBookStore - one OrderBook per token, fed by incremental updates and snapshots."""

from __future__ import annotations

import time
from typing import Callable, Iterable

import structlog

from polywhale.models.orderbook import PriceLevel
from polywhale.orderbook.book import BUY, SELL, OrderBook, normalize_price, valid_size

log = structlog.get_logger(__name__)

# (token_id, price, side, absolute_size)
LevelListener = Callable[[str, float, str, float], None]


class OrderBookStore:
    """Holds OrderBook per token and reports every feed-driven level change to a listener.

    Incremental updates carry absolute sizes, so replaying or duplicating an
    update is harmless. Depth-cap truncation and stale sweeps are evictions,
    not observations, and are not reported.
    """

    def __init__(
        self,
        depth_cap: int = 50,
        clock: Callable[[], float] = time.time,
        listener: LevelListener | None = None,
    ) -> None:
        self.depth_cap = depth_cap
        self._clock = clock
        self._listener = listener
        self._books: dict[str, OrderBook] = {}

    def _book(self, token_id: str) -> OrderBook:
        book = self._books.get(token_id)
        if book is None:
            book = OrderBook(token_id, depth_cap=self.depth_cap)
            self._books[token_id] = book
        return book

    def _emit(self, token_id: str, price: float, side: str, size: float) -> None:
        if self._listener is not None:
            self._listener(token_id, price, side, size)

    def apply_incremental(self, token_id: str, price: float, side: str, size: float) -> bool:
        """Upsert the level to the given absolute size; 0 removes it. Returns False if rejected."""
        if side not in (BUY, SELL):
            log.warning("orderbook_bad_side", token_id=token_id, side=side)
            return False
        if not valid_size(size):
            log.warning("orderbook_bad_size", token_id=token_id, price=price, side=side, size=size)
            return False
        price = normalize_price(price)
        book = self._book(token_id)
        book.set_level(side, price, size, self._clock())
        # A level cut by the depth cap is not in the book, so nobody observes it.
        # A delete for a level we never stored still reaches the listener, which treats it as a no-op.
        if size == 0 or book.size_at(side, price) == size:
            self._emit(token_id, price, side, size)
        return True

    def apply_snapshot(self, token_id: str, bids: Iterable[PriceLevel], asks: Iterable[PriceLevel]) -> None:
        """Replace the whole book for token_id, then report every level it now holds."""
        book = self._book(token_id)
        book.replace(list(bids), list(asks), self._clock())
        for price, size in book.sorted_bids():
            self._emit(token_id, price, BUY, size)
        for price, size in book.sorted_asks():
            self._emit(token_id, price, SELL, size)

    def sweep_stale(self, max_age: float) -> int:
        """Drop levels not updated within max_age seconds. Bounds drift from missed deletes."""
        cutoff = self._clock() - max_age
        total = 0
        for token_id, book in self._books.items():
            removed = book.drop_older_than(cutoff)
            if removed:
                log.debug("orderbook_stale_levels_removed", token_id=token_id, removed=removed)
            total += removed
        if total:
            log.info("orderbook_stale_sweep", removed=total)
        return total

    def retain(self, active_tokens: set[str]) -> int:
        """Drop books for tokens outside active_tokens. Returns the number dropped."""
        gone = [t for t in self._books if t not in active_tokens]
        for token_id in gone:
            del self._books[token_id]
        return len(gone)

    def get(self, token_id: str) -> OrderBook | None:
        return self._books.get(token_id)

    def tokens(self) -> list[str]:
        return list(self._books)

    def __len__(self) -> int:
        return len(self._books)

    def level_count(self) -> int:
        return sum(b.level_count for b in self._books.values())
