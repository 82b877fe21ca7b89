"""AlertManager - the default alert sink: dedup, history, log line, Telegram."""

from __future__ import annotations

import asyncio
import threading
import time
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import duckdb
import structlog

from polywhale.alerts.telegram import TelegramNotifier
from polywhale.models.alert import WhaleAlert
from polywhale.storage.alerts import alert_stats, append_alert, claim_dedup_key, prune_sent_keys
from polywhale.storage.db import open_or_recreate

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

log = structlog.get_logger(__name__)


class AlertSink(Protocol):
    async def handle(self, alert: WhaleAlert) -> bool: ...


class AlertManager:
    """Deduplicates by (instrument, price) within a rolling window, then records and notifies."""

    def __init__(
        self,
        db_path: str | Path,
        *,
        dedup_window_hours: float = 48.0,
        notifier: TelegramNotifier | None = None,
    ) -> None:
        self.db_path = Path(db_path)
        self.dedup_window_ms = int(dedup_window_hours * 3600 * 1000)
        self.notifier = notifier
        self._conn: DuckDBPyConnection | None = None
        self._lock = threading.Lock()
        self.sent = 0
        self.duplicates = 0

    def _get_conn(self) -> DuckDBPyConnection:
        if self._conn is None:
            self._conn = open_or_recreate(self.db_path)
            removed = prune_sent_keys(self._conn, self.dedup_window_ms)
            if removed:
                log.info("dedup_keys_expired", removed=removed)
        return self._conn

    def _record(self, alert: WhaleAlert) -> bool:
        """Claim the dedup key and append to history. False for a duplicate. Runs in a worker thread."""
        now_ms = int(time.time() * 1000)
        with self._lock:
            try:
                conn = self._get_conn()
                prune_sent_keys(conn, self.dedup_window_ms, now_ms)
                if not claim_dedup_key(conn, alert.dedup_key, now_ms):
                    return False
                append_alert(conn, alert, now_ms)
            except duckdb.Error as e:
                # Losing history must not lose the alert itself.
                log.warning("alert_persist_failed", error=str(e), key=alert.dedup_key)
                self._reset_conn()
            return True

    def _reset_conn(self) -> None:
        if self._conn is not None:
            try:
                self._conn.close()
            except duckdb.Error:
                pass
            self._conn = None

    async def handle(self, alert: WhaleAlert) -> bool:
        """Deliver one alert. Returns False if it was a duplicate."""
        fresh = await asyncio.to_thread(self._record, alert)
        if not fresh:
            self.duplicates += 1
            log.info("alert_duplicate_skipped", key=alert.dedup_key, outcome=alert.outcome_label, price=alert.price)
            return False
        self.sent += 1
        log.warning(
            "WHALE_ALERT",
            match=alert.match_id,
            outcome=alert.outcome_label,
            side=alert.side,
            size=alert.size,
            price=alert.price,
            notional=round(alert.notional, 2),
            age_seconds=alert.age_seconds,
            token_id=alert.instrument_id[:20],
            url=alert.event_url,
        )
        if self.notifier is not None:
            await self.notifier.send(alert)
        return True

    def history_stats(self) -> dict[str, int]:
        """Alert history totals for the status line. Runs in a worker thread."""
        with self._lock:
            try:
                stats = alert_stats(self._get_conn())
            except duckdb.Error as e:
                log.warning("alert_stats_failed", error=str(e))
                self._reset_conn()
                return {}
        return {"alerts_24h": stats["alerts_24h"], "alerts_total": stats["total_alerts"]}

    def close(self) -> None:
        with self._lock:
            self._reset_conn()
