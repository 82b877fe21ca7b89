"""AlertDispatcher - bounded hand-off from the aging tick to the (slow) alert sink."""

from __future__ import annotations

import asyncio

import structlog

from polywhale.alerts.manager import AlertSink
from polywhale.models.alert import WhaleAlert

log = structlog.get_logger(__name__)


class AlertDispatcher:
    """submit() never blocks the caller; a single worker drains the queue into the sink."""

    def __init__(self, sink: AlertSink, maxsize: int = 1000) -> None:
        self.sink = sink
        self.queue: asyncio.Queue[WhaleAlert] = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0
        self.delivered = 0

    def submit(self, alert: WhaleAlert) -> bool:
        try:
            self.queue.put_nowait(alert)
            return True
        except asyncio.QueueFull:
            self.dropped += 1
            log.warning("alert_queue_full", dropped=self.dropped, key=alert.dedup_key)
            return False

    async def _deliver(self, alert: WhaleAlert) -> None:
        try:
            if await self.sink.handle(alert):
                self.delivered += 1
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log.exception("alert_delivery_failed", key=alert.dedup_key, error=str(e))

    async def drain(self) -> None:
        """Deliver everything currently queued."""
        while not self.queue.empty():
            alert = self.queue.get_nowait()
            await self._deliver(alert)
            self.queue.task_done()

    async def run(self, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                alert = await asyncio.wait_for(self.queue.get(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            await self._deliver(alert)
            self.queue.task_done()
        await self.drain()
        log.info("alert_dispatcher_stopped", delivered=self.delivered, dropped=self.dropped)
