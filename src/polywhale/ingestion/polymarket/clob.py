"""Polymarket CLOB REST client - order book hydration for freshly subscribed tokens."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

import httpx
import structlog
from pydantic import ValidationError

from polywhale.ingestion.polymarket.normalize import parse_book_message
from polywhale.ingestion.rate_limit import TokenBucket
from polywhale.models.orderbook import OrderBookSnapshot

log = structlog.get_logger(__name__)

CLOB_API_BASE = "https://clob.polymarket.com"


def parse_rest_book(token_id: str, data: dict[str, Any]) -> OrderBookSnapshot | None:
    """The REST /book body has the same shape as a WS 'book' message minus event_type."""
    payload = dict(data)
    payload["event_type"] = "book"
    payload.setdefault("asset_id", token_id)
    try:
        return parse_book_message(payload)
    except ValidationError as e:
        log.warning("rest_book_invalid", token_id=token_id, error=str(e))
        return None


async def fetch_order_book(client: httpx.AsyncClient, token_id: str, base_url: str = CLOB_API_BASE) -> OrderBookSnapshot | None:
    """GET /book for one token. None when the token has no book (404) or the request fails."""
    url = base_url.rstrip("/") + "/book"
    try:
        resp = await client.get(url, params={"token_id": token_id})
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        data = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        log.warning("rest_book_fetch_failed", token_id=token_id, error=str(e))
        return None
    if not isinstance(data, dict):
        log.warning("rest_book_unexpected_body", token_id=token_id)
        return None
    return parse_rest_book(token_id, data)


async def hydrate_order_books(
    token_ids: list[str],
    on_snapshot: Callable[[OrderBookSnapshot], Awaitable[None]],
    *,
    base_url: str = CLOB_API_BASE,
    batch_size: int = 20,
    rate_per_sec: float = 20.0,
    timeout: float = 15.0,
    client: httpx.AsyncClient | None = None,
) -> int:
    """Fetch books for token_ids in paced batches and hand each snapshot to on_snapshot. Returns count loaded."""
    bucket = TokenBucket(rate=rate_per_sec, capacity=batch_size)
    loaded = 0
    own_client = client is None
    http = client or httpx.AsyncClient(timeout=timeout)
    try:
        for i in range(0, len(token_ids), batch_size):
            batch = token_ids[i : i + batch_size]
            await bucket.acquire(len(batch))
            books = await asyncio.gather(*(fetch_order_book(http, t, base_url) for t in batch))
            for snap in books:
                if snap is not None:
                    await on_snapshot(snap)
                    loaded += 1
            if i + batch_size < len(token_ids):
                log.debug("rest_books_progress", loaded=min(i + batch_size, len(token_ids)), total=len(token_ids))
    finally:
        if own_client:
            await http.aclose()
    log.info("rest_books_loaded", loaded=loaded, requested=len(token_ids))
    return loaded
