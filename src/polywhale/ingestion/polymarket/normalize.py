"""Polymarket market-channel message -> canonical OrderBookSnapshot / OrderBookDelta.

Nothing in here raises on bad input: malformed messages or entries are logged
and dropped so one broken frame never stalls the feed.
"""

from __future__ import annotations

import math
from typing import Any

import structlog
from pydantic import ValidationError

from polywhale.models.orderbook import FeedEvent, OrderBookDelta, OrderBookSnapshot, PriceLevel

log = structlog.get_logger(__name__)


def _float(s: str | float | None) -> float | None:
    if s is None or isinstance(s, bool):
        return None
    try:
        value = float(s)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def _timestamp(payload: dict[str, Any]) -> int | None:
    ts = payload.get("timestamp")
    try:
        return int(ts) if ts is not None else None
    except (TypeError, ValueError):
        return None


def _levels(raw: Any, asset_id: str, side: str) -> list[PriceLevel]:
    out = []
    for lev in raw or []:
        if not isinstance(lev, dict):
            log.warning("book_level_malformed", asset_id=asset_id, side=side, level=lev)
            continue
        p, s = _float(lev.get("price")), _float(lev.get("size"))
        if p is None or s is None or not (0 <= p <= 1) or s < 0:
            log.warning("book_level_malformed", asset_id=asset_id, side=side, level=lev)
            continue
        out.append(PriceLevel(price=p, size=s))
    return out


def parse_book_message(payload: dict[str, Any]) -> OrderBookSnapshot | None:
    """Convert a 'book' message to OrderBookSnapshot. Uses 'bids'/'asks' or 'buys'/'sells'."""
    if payload.get("event_type") != "book":
        return None
    asset_id = str(payload.get("asset_id") or "").strip()
    if not asset_id:
        log.warning("book_missing_asset_id", market=payload.get("market"))
        return None
    bids = _levels(payload.get("bids") or payload.get("buys"), asset_id, "BUY")
    asks = _levels(payload.get("asks") or payload.get("sells"), asset_id, "SELL")
    market_id = payload.get("market") or payload.get("market_id")
    return OrderBookSnapshot(
        asset_id=asset_id,
        market_id=str(market_id) if market_id else None,
        bids=bids,
        asks=asks,
        exchange_ts=_timestamp(payload),
    )


def _delta(pc: dict[str, Any], asset_id: str, market_id: str | None, exchange_ts: int | None) -> OrderBookDelta | None:
    if not asset_id:
        log.warning("price_change_missing_asset_id", market=market_id)
        return None
    side = str(pc.get("side") or "").upper()
    price = _float(pc.get("price"))
    size = _float(pc.get("size"))
    if side not in ("BUY", "SELL") or price is None or size is None:
        log.warning("price_change_malformed", asset_id=asset_id, entry=pc)
        return None
    try:
        return OrderBookDelta(
            asset_id=asset_id,
            market_id=market_id,
            side=side,
            price=price,
            size=size,
            exchange_ts=exchange_ts,
        )
    except ValidationError as e:
        log.warning("price_change_invalid", asset_id=asset_id, entry=pc, error=str(e))
        return None


def parse_price_change_message(payload: dict[str, Any]) -> list[OrderBookDelta]:
    """Convert a 'price_change' message to one OrderBookDelta per change entry.

    Handles the current shape (``price_changes`` entries each carrying
    ``asset_id``) and the older one (top-level ``asset_id`` with ``changes``).
    """
    if payload.get("event_type") != "price_change":
        return []
    market = payload.get("market") or payload.get("market_id")
    market_id = str(market) if market else None
    exchange_ts = _timestamp(payload)
    out = []
    if "price_changes" in payload:
        changes = payload.get("price_changes") or []
        default_asset = ""
    else:
        changes = payload.get("changes") or []
        default_asset = str(payload.get("asset_id") or "").strip()
    if not isinstance(changes, list):
        log.warning("price_change_malformed", market=market_id)
        return []
    for pc in changes:
        if not isinstance(pc, dict):
            log.warning("price_change_malformed", market=market_id, entry=pc)
            continue
        asset_id = str(pc.get("asset_id") or default_asset).strip()
        delta = _delta(pc, asset_id, market_id, exchange_ts)
        if delta is not None:
            out.append(delta)
    return out


def parse_market_message(payload: Any, ingest_ts: int | None = None) -> list[FeedEvent]:
    """Parse one decoded WS frame (a message or a list of messages) into feed events."""
    if isinstance(payload, list):
        events: list[FeedEvent] = []
        for item in payload:
            events.extend(parse_market_message(item, ingest_ts))
        return events
    if not isinstance(payload, dict):
        log.debug("ws_frame_ignored", frame_type=type(payload).__name__)
        return []
    event_type = payload.get("event_type")
    events = []
    if event_type == "book":
        try:
            snap = parse_book_message(payload)
        except ValidationError as e:
            log.warning("book_invalid", asset_id=payload.get("asset_id"), error=str(e))
            snap = None
        if snap is not None:
            events.append(snap)
    elif event_type == "price_change":
        events.extend(parse_price_change_message(payload))
    # last_trade_price, tick_size_change etc. carry no book state
    for ev in events:
        ev.ingest_ts = ingest_ts
    return events
