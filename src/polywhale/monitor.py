"""WhaleMonitor - wires directory, feed, engine, aging and alert delivery on one event loop."""

from __future__ import annotations

import asyncio
import time
from typing import Any

import structlog

from polywhale.alerts.dispatcher import AlertDispatcher
from polywhale.alerts.manager import AlertManager, AlertSink
from polywhale.alerts.telegram import TelegramNotifier
from polywhale.config.settings import Settings
from polywhale.detector.aging import AgingScheduler, run_periodic
from polywhale.engine import WhaleEngine
from polywhale.ingestion.feed import MarketDataFeed
from polywhale.ingestion.polymarket.gamma import InstrumentDirectory
from polywhale.models.config import DetectorConfig
from polywhale.models.instrument import InstrumentMapping, build_instrument_map
from polywhale.models.orderbook import FeedEvent

log = structlog.get_logger(__name__)


class WhaleMonitor:
    """Runs the whole pipeline until stop_event is set.

    Only the consumer task and the periodic tasks touch the engine, all from
    this loop; network I/O (Gamma, CLOB REST, WebSocket, Telegram, DuckDB)
    happens in other tasks or threads.
    """

    def __init__(
        self,
        config: DetectorConfig,
        directory: InstrumentDirectory,
        feed: MarketDataFeed,
        sink: AlertSink,
        *,
        queue: asyncio.Queue[FeedEvent] | None = None,
        age_check_interval_sec: float = 1.0,
        stale_sweep_interval_sec: float = 60.0,
        directory_refresh_interval_sec: float = 300.0,
        status_interval_sec: float = 30.0,
        alert_queue_size: int = 1000,
    ) -> None:
        self.engine = WhaleEngine(config)
        self.directory = directory
        self.feed = feed
        self.queue = queue if queue is not None else feed.queue
        self.dispatcher = AlertDispatcher(sink, maxsize=alert_queue_size)
        self.aging = AgingScheduler(self.engine.detector, self.dispatcher.submit, interval_sec=age_check_interval_sec)
        self.stale_sweep_interval_sec = stale_sweep_interval_sec
        self.directory_refresh_interval_sec = directory_refresh_interval_sec
        self.status_interval_sec = status_interval_sec
        self._start_ts: float | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> WhaleMonitor:
        queue: asyncio.Queue[FeedEvent] = asyncio.Queue(maxsize=settings.event_queue_size)
        feed = MarketDataFeed(
            settings.clob_ws_url,
            queue,
            clob_api_base=settings.clob_api_base,
            reconnect_base_delay_sec=settings.reconnect_base_delay_sec,
            reconnect_max_delay_sec=settings.reconnect_max_delay_sec,
            reconnect_max_retries=settings.reconnect_max_retries,
            hydration_batch_size=settings.hydration_batch_size,
            hydration_rate_per_sec=settings.hydration_rate_per_sec,
        )
        directory = InstrumentDirectory(
            base_url=settings.gamma_api_base,
            league_prefixes=settings.league_prefixes,
            limit=settings.directory_limit,
        )
        notifier = None
        if settings.telegram_enabled:
            token, chat_id = settings.telegram_bot_token, settings.telegram_chat_id
            if token and chat_id:
                notifier = TelegramNotifier(token, chat_id)
            else:
                log.info("telegram_not_configured", msg="Set TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID to enable.")
        sink = AlertManager(
            settings.alerts_db_path,
            dedup_window_hours=settings.dedup_window_hours,
            notifier=notifier,
        )
        return cls(
            settings.detector_config(),
            directory,
            feed,
            sink,
            queue=queue,
            age_check_interval_sec=settings.age_check_interval_sec,
            stale_sweep_interval_sec=settings.stale_sweep_interval_sec,
            directory_refresh_interval_sec=settings.directory_refresh_interval_sec,
            status_interval_sec=settings.status_interval_sec,
            alert_queue_size=settings.alert_queue_size,
        )

    def apply_instruments(self, mapping: InstrumentMapping) -> None:
        """Publish a new active set to the engine and the feed. An empty result keeps the current set."""
        if not mapping:
            log.warning("no_live_matches", msg="Keeping current subscriptions; will check again.")
            return
        self.engine.update_instruments(mapping)
        self.feed.update_assets(list(mapping))

    async def refresh_directory(self) -> None:
        matches = await asyncio.to_thread(self.directory.find_live_matches)
        self.apply_instruments(build_instrument_map(matches))

    async def consume(self, stop_event: asyncio.Event) -> None:
        """The single mutation loop: apply queued feed events in order."""
        while not stop_event.is_set():
            try:
                event = await asyncio.wait_for(self.queue.get(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            try:
                self.engine.handle_event(event)
            except Exception as e:
                log.exception("event_apply_failed", asset_id=getattr(event, "asset_id", None), error=str(e))
            finally:
                self.queue.task_done()

    def status(self) -> dict[str, Any]:
        status = self.engine.stats()
        elapsed = (time.time() - self._start_ts) if self._start_ts else 0
        status.update(
            queue_depth=self.queue.qsize(),
            ws_messages=self.feed.msg_count,
            alerts_delivered=self.dispatcher.delivered,
            alerts_dropped=self.dispatcher.dropped,
            uptime_sec=round(elapsed, 1),
        )
        sink = self.dispatcher.sink
        for name in ("sent", "duplicates"):
            if hasattr(sink, name):
                status[f"alerts_{name}"] = getattr(sink, name)
        return status

    async def log_status(self) -> dict[str, Any]:
        """One status line, with alert history totals when the sink keeps them."""
        status = self.status()
        history_stats = getattr(self.dispatcher.sink, "history_stats", None)
        if history_stats is not None:
            status.update(await asyncio.to_thread(history_stats))
        log.info("status", **status)
        return status

    def sweep(self) -> None:
        self.engine.sweep_stale()

    async def run(self, stop_event: asyncio.Event | None = None) -> None:
        stop = stop_event or asyncio.Event()
        self._start_ts = time.time()
        log.info(
            "monitor_starting",
            min_size=self.engine.config.min_size,
            price_band=(self.engine.config.min_price, self.engine.config.max_price),
            alert_age_sec=self.engine.config.alert_age_sec,
        )
        await self.refresh_directory()
        tasks = [
            asyncio.create_task(self.feed.run(stop), name="feed"),
            asyncio.create_task(self.consume(stop), name="consume"),
            asyncio.create_task(self.aging.run(stop), name="aging"),
            asyncio.create_task(self.dispatcher.run(stop), name="alerts"),
            asyncio.create_task(
                run_periodic("stale_sweep", self.stale_sweep_interval_sec, self.sweep, stop), name="stale_sweep"
            ),
            asyncio.create_task(
                run_periodic("directory", self.directory_refresh_interval_sec, self.refresh_directory, stop),
                name="directory",
            ),
            asyncio.create_task(run_periodic("status", self.status_interval_sec, self.log_status, stop), name="status"),
        ]
        try:
            await stop.wait()
        finally:
            stop.set()
            results = await asyncio.gather(*tasks, return_exceptions=True)
            for task, result in zip(tasks, results):
                if isinstance(result, BaseException) and not isinstance(result, asyncio.CancelledError):
                    log.error("task_failed", task=task.get_name(), error=str(result))
            await self.log_status()
            log.info("monitor_stopped")

    def close(self) -> None:
        close = getattr(self.dispatcher.sink, "close", None)
        if close is not None:
            close()
