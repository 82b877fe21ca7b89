"""Canonical schema (Pydantic) - feed events, instruments, alerts."""

from polywhale.models.activity import TradeActivity
from polywhale.models.alert import WhaleAlert
from polywhale.models.config import DetectorConfig
from polywhale.models.instrument import Instrument, InstrumentMapping, LiveMatch, build_instrument_map
from polywhale.models.orderbook import FeedEvent, OrderBookDelta, OrderBookSnapshot, PriceLevel

__all__ = [
    "DetectorConfig",
    "FeedEvent",
    "Instrument",
    "InstrumentMapping",
    "LiveMatch",
    "OrderBookDelta",
    "OrderBookSnapshot",
    "PriceLevel",
    "TradeActivity",
    "WhaleAlert",
    "build_instrument_map",
]
