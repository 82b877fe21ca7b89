"""Polymarket data-api client - a wallet's recent trades."""

from __future__ import annotations

from datetime import datetime
from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from polywhale.models.activity import TradeActivity

log = structlog.get_logger(__name__)

DATA_API_BASE = "https://data-api.polymarket.com"


def _timestamp_ms(value: Any) -> int | None:
    """The activity feed sends epoch seconds; older payloads carried ISO strings."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value * 1000) if value < 1e12 else int(value)
    try:
        return _timestamp_ms(float(value))
    except ValueError:
        pass
    try:
        return int(datetime.fromisoformat(str(value).replace("Z", "+00:00")).timestamp() * 1000)
    except ValueError:
        return None


def parse_activity(raw: dict[str, Any]) -> TradeActivity | None:
    """One activity row -> TradeActivity. Non-trade rows (redeems, merges...) and malformed rows give None."""
    kind = raw.get("type")
    if kind is not None and str(kind).upper() != "TRADE":
        return None
    ts = _timestamp_ms(raw.get("timestamp"))
    if ts is None:
        log.warning("activity_malformed", tx=raw.get("transactionHash"), field="timestamp")
        return None
    try:
        return TradeActivity(
            tx_hash=str(raw.get("transactionHash") or ""),
            timestamp=ts,
            side=str(raw.get("side") or "").upper(),
            size=float(raw.get("size") or 0),
            usdc_size=float(raw.get("usdcSize") or 0),
            price=float(raw.get("price") or 0),
            title=str(raw.get("title") or ""),
            outcome=str(raw.get("outcome") or ""),
            event_slug=str(raw.get("slug") or raw.get("eventSlug") or ""),
            pseudonym=str(raw.get("pseudonym") or ""),
            asset=str(raw.get("asset") or ""),
        )
    except (TypeError, ValueError, ValidationError) as e:
        log.warning("activity_malformed", tx=raw.get("transactionHash"), error=str(e))
        return None


async def fetch_activity(
    client: httpx.AsyncClient,
    wallet: str,
    base_url: str = DATA_API_BASE,
    limit: int = 10,
) -> list[TradeActivity]:
    """Newest-first trades of wallet. Raises httpx.HTTPError / ValueError on transport or body errors."""
    url = base_url.rstrip("/") + "/activity"
    params = {"user": wallet, "limit": limit, "sortBy": "TIMESTAMP", "sortDirection": "DESC"}
    resp = await client.get(url, params=params)
    resp.raise_for_status()
    data = resp.json()
    if not isinstance(data, list):
        raise ValueError(f"expected JSON list, got {type(data).__name__}")
    trades = []
    for row in data:
        if isinstance(row, dict):
            trade = parse_activity(row)
            if trade is not None:
                trades.append(trade)
    return trades
