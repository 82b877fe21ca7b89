"""OrderBookSnapshot, OrderBookDelta - canonical feed events."""

from __future__ import annotations

from typing import Union

from pydantic import BaseModel, Field


class PriceLevel(BaseModel):
    """Single aggregated price level (price -> size)."""

    price: float = Field(..., ge=0, le=1)
    size: float = Field(..., ge=0)


class OrderBookSnapshot(BaseModel):
    """Full book for one token. Authoritative over any earlier incremental state."""

    asset_id: str = Field(..., min_length=1)
    market_id: str | None = None  # condition ID, informational
    bids: list[PriceLevel] = Field(default_factory=list)
    asks: list[PriceLevel] = Field(default_factory=list)
    exchange_ts: int | None = None  # ms epoch
    ingest_ts: int | None = None


class OrderBookDelta(BaseModel):
    """Incremental level update (price_change). size is the new absolute size; 0 removes."""

    asset_id: str = Field(..., min_length=1)
    market_id: str | None = None
    side: str = Field(..., pattern="^(BUY|SELL)$")
    price: float = Field(..., ge=0, le=1)
    size: float = Field(..., ge=0)
    exchange_ts: int | None = None
    ingest_ts: int | None = None


FeedEvent = Union[OrderBookSnapshot, OrderBookDelta]
