"""Watched-wallet tracking against a mocked activity feed and a temp DuckDB file."""

import asyncio
import json

import httpx

from polywhale.account import AccountTracker
from polywhale.alerts.telegram import TelegramNotifier, format_trade
from polywhale.ingestion.polymarket.activity import parse_activity
from polywhale.models import TradeActivity
from polywhale.storage.accounts import list_trades
from polywhale.storage.db import get_connection

WALLET = "0x" + "ab" * 20


def _row(tx, **kw):
    raw = {
        "type": "TRADE",
        "transactionHash": tx,
        "timestamp": kw.pop("ts", 1_762_718_400),
        "side": kw.pop("side", "BUY"),
        "size": kw.pop("size", 5000),
        "usdcSize": kw.pop("usdc", 2500),
        "price": kw.pop("price", 0.5),
        "title": "Rockets vs. Bucks",
        "outcome": kw.pop("outcome", "Rockets"),
        "slug": kw.pop("slug", "nba-hou-mil-2025-11-09"),
        "pseudonym": "Big-Fish",
        "asset": "tok-a",
    }
    raw.update(kw)
    return raw


class Feed:
    """Serves whatever rows are current, newest first, and records the query."""

    def __init__(self):
        self.rows = []
        self.status = 200
        self.params = None

    def __call__(self, request):
        self.params = dict(request.url.params)
        return httpx.Response(self.status, json=self.rows)


def _tracker(tmp_path, clock, notifier=None):
    return AccountTracker(
        WALLET,
        tmp_path / "accounts.duckdb",
        base_url="https://data.test",
        league_prefixes=["nba-", "epl-"],
        notifier=notifier,
        clock=clock,
    )


def _check(tracker, feed):
    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(feed)) as client:
            return await tracker.check(client)

    return asyncio.run(go())


def test_first_poll_remembers_newest_without_alerting(tmp_path, clock):
    feed = Feed()
    feed.rows = [_row("0x3"), _row("0x2"), _row("0x1")]
    tracker = _tracker(tmp_path, clock)
    assert _check(tracker, feed) == []
    assert feed.params == {"user": WALLET, "limit": "10", "sortBy": "TIMESTAMP", "sortDirection": "DESC"}
    # nothing new since
    assert _check(tracker, feed) == []
    assert tracker.alerted == 0
    tracker.close()


def test_new_trades_alert_oldest_first(tmp_path, clock):
    feed = Feed()
    feed.rows = [_row("0x1")]
    tracker = _tracker(tmp_path, clock)
    _check(tracker, feed)

    feed.rows = [
        _row("0x3", outcome="Bucks", price=0.4),
        _row("0x2", outcome="Rockets", price=0.6),
        _row("0x1"),
    ]
    alerted = _check(tracker, feed)
    assert [t.tx_hash for t in alerted] == ["0x2", "0x3"]
    assert tracker.alerted == 2
    tracker.close()


def test_non_sports_trades_are_ignored(tmp_path, clock):
    feed = Feed()
    feed.rows = [_row("0x1")]
    tracker = _tracker(tmp_path, clock)
    _check(tracker, feed)

    feed.rows = [_row("0x2", slug="will-it-rain-tomorrow"), _row("0x1")]
    assert _check(tracker, feed) == []
    tracker.close()
    conn = get_connection(tmp_path / "accounts.duckdb", read_only=True)
    try:
        assert list_trades(conn, WALLET) == []
    finally:
        conn.close()


def test_similar_trade_is_logged_but_not_alerted(tmp_path, clock):
    feed = Feed()
    feed.rows = [_row("0x1")]
    tracker = _tracker(tmp_path, clock)
    _check(tracker, feed)

    feed.rows = [_row("0x2", price=0.50), _row("0x1")]
    assert len(_check(tracker, feed)) == 1
    clock.advance(60)
    # 0.51 is within 5% of 0.50, same outcome
    feed.rows = [_row("0x3", price=0.51), _row("0x2", price=0.50), _row("0x1")]
    assert _check(tracker, feed) == []
    assert tracker.similar_skipped == 1
    # outside the window it alerts again
    clock.advance(400)
    feed.rows = [_row("0x4", price=0.51), _row("0x3", price=0.51)]
    assert [t.tx_hash for t in _check(tracker, feed)] == ["0x4"]

    stats = tracker.stats()
    assert stats["trades_logged"] == 3
    assert stats["trades_alerted"] == 2
    tracker.close()


def test_state_survives_restart(tmp_path, clock):
    feed = Feed()
    feed.rows = [_row("0x1")]
    first = _tracker(tmp_path, clock)
    _check(first, feed)
    first.close()

    feed.rows = [_row("0x2"), _row("0x1")]
    second = _tracker(tmp_path, clock)
    assert [t.tx_hash for t in _check(second, feed)] == ["0x2"]
    second.close()


def test_poll_errors_are_counted_not_raised(tmp_path, clock):
    feed = Feed()
    feed.status = 503
    tracker = _tracker(tmp_path, clock)
    assert _check(tracker, feed) == []
    assert tracker.poll_errors == 1
    tracker.close()


def test_alert_goes_to_telegram(tmp_path, clock):
    sent = []

    def telegram(request):
        sent.append(json.loads(request.content))
        return httpx.Response(200, json={"ok": True})

    notifier = TelegramNotifier("tok", "chat", base_url="https://tg.test", transport=httpx.MockTransport(telegram))
    feed = Feed()
    feed.rows = [_row("0x1")]
    tracker = _tracker(tmp_path, clock, notifier)
    _check(tracker, feed)
    feed.rows = [_row("0x2"), _row("0x1")]
    _check(tracker, feed)
    assert len(sent) == 1
    assert "TRADER ALERT" in sent[0]["text"]
    assert "Houston Rockets" in sent[0]["text"]
    tracker.close()


def test_parse_activity_rows():
    trade = parse_activity(_row("0xabc", ts=1_762_718_400))
    assert trade.timestamp == 1_762_718_400_000
    assert trade.event_slug == "nba-hou-mil-2025-11-09"
    assert parse_activity(_row("0xabc", ts=1_762_718_400_000)).timestamp == 1_762_718_400_000
    assert parse_activity(_row("0xabc", ts="2025-11-09T20:00:00Z")).timestamp == 1_762_718_400_000
    assert parse_activity(_row("0xabc", type="REDEEM")) is None
    assert parse_activity(_row("0xabc", side="HOLD")) is None
    assert parse_activity(_row("0xabc", ts=None)) is None
    assert parse_activity(_row("")) is None


def test_format_trade():
    trade = TradeActivity(
        tx_hash="0x1",
        timestamp=0,
        side="SELL",
        size=12500,
        usdc_size=5000,
        price=0.4,
        title="Kings vs. Oilers",
        outcome="Kings",
        event_slug="nhl-la-edm-2025-11-09",
    )
    text = format_trade(trade, WALLET)
    assert "`0xabab...abab` sold *Los Angeles Kings*" in text
    assert "12.5k shares @ 40¢" in text
    assert "$5,000" in text
    assert text.endswith("https://polymarket.com/event/nhl-la-edm-2025-11-09")
