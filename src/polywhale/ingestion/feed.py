"""MarketDataFeed - WebSocket + REST hydration pushing parsed events into one bounded queue."""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from polywhale.ingestion.polymarket.clob import hydrate_order_books
from polywhale.ingestion.polymarket.normalize import parse_market_message
from polywhale.ingestion.polymarket.ws import run_ws_ingestion
from polywhale.models.orderbook import FeedEvent, OrderBookSnapshot

log = structlog.get_logger(__name__)


class MarketDataFeed:
    """Producer side of the event queue. Owns reconnect/backoff; never touches engine state.

    A full queue applies back-pressure to the socket reader instead of
    dropping book updates.
    """

    def __init__(
        self,
        ws_url: str,
        queue: asyncio.Queue[FeedEvent],
        *,
        clob_api_base: str = "https://clob.polymarket.com",
        reconnect_base_delay_sec: float = 1.0,
        reconnect_max_delay_sec: float = 60.0,
        reconnect_max_retries: int = 0,
        hydration_batch_size: int = 20,
        hydration_rate_per_sec: float = 20.0,
        hydrate: bool = True,
    ) -> None:
        self.ws_url = ws_url
        self.queue = queue
        self.clob_api_base = clob_api_base
        self.reconnect_base_delay_sec = reconnect_base_delay_sec
        self.reconnect_max_delay_sec = reconnect_max_delay_sec
        self.reconnect_max_retries = reconnect_max_retries
        self.hydration_batch_size = hydration_batch_size
        self.hydration_rate_per_sec = hydration_rate_per_sec
        self.hydrate = hydrate
        self._asset_ids: list[str] = []
        self._resubscribe = asyncio.Event()
        self._hydration_tasks: set[asyncio.Task[Any]] = set()
        self.msg_count = 0
        self.connects = 0

    @property
    def asset_ids(self) -> list[str]:
        return list(self._asset_ids)

    def update_assets(self, asset_ids: list[str]) -> list[str]:
        """Set the subscription list. Returns tokens that were not subscribed before."""
        new_list = list(dict.fromkeys(asset_ids))
        old = set(self._asset_ids)
        added = [t for t in new_list if t not in old]
        removed = old - set(new_list)
        if not added and not removed:
            return []
        self._asset_ids = new_list
        log.info("feed_assets_updated", total=len(new_list), added=len(added), removed=len(removed))
        self._resubscribe.set()
        if added and self.hydrate:
            self._start_hydration(added)
        return added

    def _start_hydration(self, token_ids: list[str]) -> None:
        task = asyncio.create_task(
            hydrate_order_books(
                token_ids,
                self._put_snapshot,
                base_url=self.clob_api_base,
                batch_size=self.hydration_batch_size,
                rate_per_sec=self.hydration_rate_per_sec,
            )
        )
        self._hydration_tasks.add(task)
        task.add_done_callback(self._hydration_done)

    def _hydration_done(self, task: asyncio.Task[Any]) -> None:
        self._hydration_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            log.warning("rest_hydration_failed", error=str(task.exception()))

    async def _put_snapshot(self, snap: OrderBookSnapshot) -> None:
        await self.queue.put(snap)

    async def _on_message(self, payload: Any, ingest_ts: int) -> None:
        self.msg_count += 1
        for event in parse_market_message(payload, ingest_ts):
            await self.queue.put(event)

    def _on_connect(self) -> None:
        self.connects += 1
        if self.connects > 1:
            # The server replays 'book' snapshots after subscribe; tracking state is left alone.
            log.info("feed_reconnected", connects=self.connects)

    async def run(self, stop_event: asyncio.Event) -> None:
        try:
            await run_ws_ingestion(
                self.ws_url,
                lambda: self._asset_ids,
                self._on_message,
                resubscribe=self._resubscribe,
                on_connect=self._on_connect,
                reconnect_base_delay_sec=self.reconnect_base_delay_sec,
                reconnect_max_delay_sec=self.reconnect_max_delay_sec,
                reconnect_max_retries=self.reconnect_max_retries,
                stop_event=stop_event,
            )
        finally:
            for task in list(self._hydration_tasks):
                task.cancel()
            if self._hydration_tasks:
                await asyncio.gather(*self._hydration_tasks, return_exceptions=True)
            log.info("feed_stopped", total_messages=self.msg_count)
