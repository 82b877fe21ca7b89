"""AccountTracker - polls one wallet's trade activity and alerts on new sports trades."""

from __future__ import annotations

import asyncio
import threading
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

import duckdb
import httpx
import structlog

from polywhale.alerts.telegram import TelegramNotifier, format_trade
from polywhale.config.settings import DEFAULT_LEAGUE_PREFIXES, Settings
from polywhale.detector.aging import run_periodic
from polywhale.ingestion.polymarket.activity import DATA_API_BASE, fetch_activity
from polywhale.models.activity import TradeActivity
from polywhale.storage.accounts import append_trade, get_last_tx, prune_trades, save_last_tx, trade_stats
from polywhale.storage.db import open_or_recreate

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

log = structlog.get_logger(__name__)


class AccountTracker:
    """Follows a single wallet through the data-api activity feed.

    The first successful poll only remembers the newest transaction. After
    that, every sports trade newer than the remembered one is logged, and
    alerted unless a similar trade (same outcome, price within a few percent)
    was seen shortly before.
    """

    def __init__(
        self,
        wallet: str,
        db_path: str | Path,
        *,
        base_url: str = DATA_API_BASE,
        league_prefixes: list[str] | None = None,
        notifier: TelegramNotifier | None = None,
        limit: int = 10,
        similar_price_pct: float = 0.05,
        similar_window_sec: float = 300.0,
        retention_hours: float = 48.0,
        poll_interval_sec: float = 1.0,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.wallet = wallet.lower()
        self.db_path = Path(db_path)
        self.base_url = base_url
        self.league_prefixes = [p.lower() for p in (league_prefixes or DEFAULT_LEAGUE_PREFIXES)]
        self.notifier = notifier
        self.limit = limit
        self.similar_price_pct = similar_price_pct
        self.similar_window_sec = similar_window_sec
        self.retention_ms = int(retention_hours * 3600 * 1000)
        self.poll_interval_sec = poll_interval_sec
        self.timeout = timeout
        self._transport = transport
        self._clock = clock
        self._conn: DuckDBPyConnection | None = None
        self._lock = threading.Lock()
        self._last_tx: str | None = None
        self._loaded = False
        self._recent: list[tuple[TradeActivity, float]] = []
        self.polls = 0
        self.poll_errors = 0
        self.alerted = 0
        self.similar_skipped = 0

    @classmethod
    def from_settings(cls, settings: Settings, wallet: str) -> AccountTracker:
        notifier = None
        if settings.telegram_enabled:
            token, chat_id = settings.telegram_bot_token, settings.telegram_chat_id
            if token and chat_id:
                notifier = TelegramNotifier(token, chat_id)
            else:
                log.info("telegram_not_configured", msg="Set TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID to enable.")
        return cls(
            wallet,
            settings.account_db_path,
            base_url=settings.data_api_base,
            league_prefixes=settings.league_prefixes,
            notifier=notifier,
            limit=settings.account_activity_limit,
            similar_price_pct=settings.account_similar_price_pct,
            similar_window_sec=settings.account_similar_window_sec,
            retention_hours=settings.account_retention_hours,
            poll_interval_sec=settings.account_poll_interval_sec,
        )

    # --- storage (worker thread) ---

    def _get_conn(self) -> DuckDBPyConnection:
        if self._conn is None:
            self._conn = open_or_recreate(self.db_path)
            removed = prune_trades(self._conn, self.retention_ms, self._now_ms())
            if removed:
                log.info("account_trades_expired", removed=removed)
        return self._conn

    def _reset_conn(self) -> None:
        if self._conn is not None:
            try:
                self._conn.close()
            except duckdb.Error:
                pass
            self._conn = None

    def _load_last_tx(self) -> str | None:
        with self._lock:
            try:
                return get_last_tx(self._get_conn(), self.wallet)
            except duckdb.Error as e:
                log.warning("account_state_unreadable", error=str(e))
                self._reset_conn()
                return None

    def _persist(self, last_tx: str | None, logged: list[tuple[TradeActivity, bool]]) -> None:
        now_ms = self._now_ms()
        with self._lock:
            try:
                conn = self._get_conn()
                if last_tx is not None:
                    save_last_tx(conn, self.wallet, last_tx, now_ms)
                for trade, alerted in logged:
                    append_trade(conn, self.wallet, trade, alerted, now_ms)
                if logged:
                    prune_trades(conn, self.retention_ms, now_ms)
            except duckdb.Error as e:
                # In-memory state still moves on, so a broken file cannot cause repeat alerts.
                log.warning("account_persist_failed", error=str(e), wallet=self.wallet)
                self._reset_conn()

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    # --- polling ---

    def is_sports(self, slug: str) -> bool:
        lower = (slug or "").lower()
        return any(lower.startswith(p) for p in self.league_prefixes)

    def is_duplicate(self, trade: TradeActivity) -> bool:
        """Same outcome at a similar price seen within the window."""
        cutoff = self._clock() - self.similar_window_sec
        for seen, seen_at in self._recent:
            if seen_at <= cutoff or seen.outcome != trade.outcome:
                continue
            if abs(seen.price - trade.price) / max(seen.price, 0.01) < self.similar_price_pct:
                return True
        return False

    async def check(self, client: httpx.AsyncClient) -> list[TradeActivity]:
        """One poll. Returns the trades that were alerted."""
        if not self._loaded:
            self._last_tx = await asyncio.to_thread(self._load_last_tx)
            self._loaded = True
        self.polls += 1
        try:
            activities = await fetch_activity(client, self.wallet, self.base_url, self.limit)
        except (httpx.HTTPError, ValueError) as e:
            self.poll_errors += 1
            log.debug("account_poll_failed", wallet=self.wallet, error=str(e))
            return []
        activities = [a for a in activities if a.tx_hash]
        if not activities:
            return []

        newest = activities[0].tx_hash
        if self._last_tx is None:
            self._last_tx = newest
            await asyncio.to_thread(self._persist, newest, [])
            log.info("account_first_poll", wallet=self.wallet, last_tx=newest[:10])
            return []

        fresh: list[TradeActivity] = []
        for activity in activities:
            if activity.tx_hash == self._last_tx:
                break
            fresh.append(activity)
        if not fresh:
            return []
        self._last_tx = newest

        alerted: list[TradeActivity] = []
        logged: list[tuple[TradeActivity, bool]] = []
        for trade in reversed(fresh):
            if not self.is_sports(trade.event_slug):
                continue
            duplicate = self.is_duplicate(trade)
            self._recent.append((trade, self._clock()))
            logged.append((trade, not duplicate))
            if duplicate:
                self.similar_skipped += 1
                log.info("account_trade_similar", wallet=self.wallet, outcome=trade.outcome, price=trade.price)
                continue
            alerted.append(trade)
        self._expire_recent()
        await asyncio.to_thread(self._persist, newest, logged)

        for trade in alerted:
            self.alerted += 1
            log.warning(
                "TRADER_ALERT",
                wallet=self.wallet,
                trader=trade.pseudonym or None,
                side=trade.side,
                outcome=trade.outcome,
                size=trade.size,
                price=trade.price,
                usdc=round(trade.usdc_size, 2),
                url=trade.event_url,
            )
            if self.notifier is not None:
                await self.notifier.send_text(format_trade(trade, self.wallet))
        return alerted

    def _expire_recent(self) -> None:
        cutoff = self._clock() - self.similar_window_sec
        self._recent = [(t, seen_at) for t, seen_at in self._recent if seen_at > cutoff]

    def stats(self) -> dict[str, Any]:
        """Counters for this run plus the logged-trade totals."""
        status: dict[str, Any] = {
            "wallet": self.wallet,
            "polls": self.polls,
            "poll_errors": self.poll_errors,
            "alerted": self.alerted,
            "similar_skipped": self.similar_skipped,
        }
        with self._lock:
            try:
                status.update(trade_stats(self._get_conn(), self.wallet))
            except duckdb.Error as e:
                log.warning("account_stats_failed", error=str(e))
                self._reset_conn()
        return status

    async def run(self, stop_event: asyncio.Event | None = None) -> None:
        stop = stop_event or asyncio.Event()
        log.info("account_watch_starting", wallet=self.wallet, interval_sec=self.poll_interval_sec)
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:

            async def poll() -> None:
                await self.check(client)

            await run_periodic("account_poll", self.poll_interval_sec, poll, stop, run_immediately=True)
        log.info("account_watch_stopped", **await asyncio.to_thread(self.stats))

    def close(self) -> None:
        with self._lock:
            self._reset_conn()
