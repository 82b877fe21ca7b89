"""Alert delivery: dedup + history, dispatcher queue, Telegram formatting."""

import asyncio
import json

import httpx
import pytest

from polywhale.alerts import AlertDispatcher, AlertManager, TelegramNotifier
from polywhale.alerts.teams import full_team_name
from polywhale.alerts.telegram import format_alert, market_name, sport_emoji
from polywhale.models import WhaleAlert
from polywhale.storage.alerts import alert_stats, claim_dedup_key, list_alerts, prune_sent_keys
from polywhale.storage.db import get_connection, init_schema


def _alert(**kw):
    base = dict(
        timestamp="2025-11-09T20:00:00+00:00",
        match_id="nba-hou-mil-2025-11-09",
        outcome_label="Rockets",
        question="Rockets vs. Bucks",
        instrument_id="tok-a",
        price=0.5,
        size=11000,
        side="BUY",
        age_seconds=120,
    )
    base.update(kw)
    return WhaleAlert(**base)


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "alerts.duckdb"


def test_manager_dedups_by_instrument_and_price(db_path):
    mgr = AlertManager(db_path)

    async def scenario():
        return [
            await mgr.handle(_alert()),
            await mgr.handle(_alert(size=20000, price=0.501)),  # same key at 2 decimals
            await mgr.handle(_alert(price=0.52)),
        ]

    assert asyncio.run(scenario()) == [True, False, True]
    assert mgr.sent == 2
    assert mgr.duplicates == 1
    mgr.close()

    conn = get_connection(db_path, read_only=True)
    try:
        rows = list_alerts(conn)
        assert [r["price"] for r in rows] == [0.52, 0.5]
        stats = alert_stats(conn)
        assert stats["total_alerts"] == 2
        assert stats["dedup_keys"] == 2
        assert stats["by_match"] == [{"match_id": "nba-hou-mil-2025-11-09", "count": 2}]
    finally:
        conn.close()


def test_dedup_survives_restart(db_path):
    first = AlertManager(db_path)
    assert asyncio.run(first.handle(_alert()))
    first.close()
    second = AlertManager(db_path)
    assert not asyncio.run(second.handle(_alert()))
    second.close()


def test_dedup_window_expires(db_path):
    conn = get_connection(db_path)
    init_schema(conn)
    try:
        assert claim_dedup_key(conn, "tok-a_0.50", now_ms=1_000)
        assert not claim_dedup_key(conn, "tok-a_0.50", now_ms=2_000)
        assert prune_sent_keys(conn, window_ms=5_000, now_ms=5_500) == 0
        assert prune_sent_keys(conn, window_ms=5_000, now_ms=6_001) == 1
        assert claim_dedup_key(conn, "tok-a_0.50", now_ms=6_001)
    finally:
        conn.close()


def test_corrupt_database_moved_aside(db_path):
    db_path.write_bytes(b"this is not a duckdb file" * 100)
    mgr = AlertManager(db_path)
    assert asyncio.run(mgr.handle(_alert()))
    mgr.close()
    assert list(db_path.parent.glob("alerts.duckdb.corrupt-*"))


def test_manager_notifies_telegram(db_path):
    sent = []

    def handler(request: httpx.Request) -> httpx.Response:
        sent.append(json.loads(request.content))
        return httpx.Response(200, json={"ok": True})

    notifier = TelegramNotifier("T", "42", transport=httpx.MockTransport(handler))
    mgr = AlertManager(db_path, notifier=notifier)
    asyncio.run(mgr.handle(_alert()))
    asyncio.run(mgr.handle(_alert()))
    mgr.close()
    assert len(sent) == 1
    assert sent[0]["chat_id"] == "42"
    assert sent[0]["parse_mode"] == "Markdown"


def test_telegram_failure_is_reported():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, text="bad request")

    notifier = TelegramNotifier("T", "42", transport=httpx.MockTransport(handler))
    assert asyncio.run(notifier.send(_alert())) is False


def test_format_alert():
    text = format_alert(_alert())
    assert "WHALE ALERT" in text
    assert "11.0k shares @ 50¢" in text
    assert "$5.5k" in text
    assert text.count("\U0001F4B5") == 3
    assert text.endswith("https://polymarket.com/event/nba-hou-mil-2025-11-09")


def test_market_name_and_emoji():
    prop = _alert(outcome_label="Yes", question="Will Arsenal win on 2025-11-09?")
    assert market_name(prop) == "Arsenal win: Yes"
    assert market_name(_alert()) == "Houston Rockets"
    assert "*Houston Rockets*" in format_alert(_alert())
    assert sport_emoji("epl-ars-che-2025-11-09") == "⚽"
    assert sport_emoji("nba-hou-mil-2025-11-09") == "\U0001F3C0"


class _Sink:
    def __init__(self, fail=False):
        self.alerts = []
        self.fail = fail

    async def handle(self, alert):
        if self.fail:
            raise RuntimeError("sink down")
        self.alerts.append(alert)
        return True


def test_dispatcher_drops_when_full():
    async def scenario():
        disp = AlertDispatcher(_Sink(), maxsize=2)
        results = [disp.submit(_alert(price=p)) for p in (0.1, 0.2, 0.3)]
        return disp, results

    disp, results = asyncio.run(scenario())
    assert results == [True, True, False]
    assert disp.dropped == 1


def test_dispatcher_delivers_and_survives_sink_errors():
    async def scenario(sink):
        disp = AlertDispatcher(sink)
        stop = asyncio.Event()
        task = asyncio.create_task(disp.run(stop))
        disp.submit(_alert())
        disp.submit(_alert(price=0.6))
        await asyncio.sleep(0.05)
        stop.set()
        await asyncio.wait_for(task, timeout=5)
        return disp

    ok = _Sink()
    disp = asyncio.run(scenario(ok))
    assert disp.delivered == 2
    assert len(ok.alerts) == 2

    disp = asyncio.run(scenario(_Sink(fail=True)))
    assert disp.delivered == 0


def test_full_team_name_uses_league():
    assert full_team_name("Kings", "nba-sac-lal-2025-11-09") == "Sacramento Kings"
    assert full_team_name("Kings", "nhl-lak-sjs-2025-11-09") == "Los Angeles Kings"
    assert full_team_name("Jets", "nfl-nyj-ne-2025-11-09") == "New York Jets"
    assert full_team_name("Arsenal", "epl-ars-che-2025-11-09") == "Arsenal"
    assert full_team_name("Draw", "nba-hou-mil-2025-11-09") == "Draw"
