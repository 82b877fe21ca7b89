"""Live match discovery from Gamma markets."""

import json
from datetime import datetime, timezone

import httpx

from polywhale.ingestion.polymarket.gamma import InstrumentDirectory, group_live_matches, is_match_slug
from polywhale.models import build_instrument_map

NOW = datetime(2025, 11, 9, 20, 0, tzinfo=timezone.utc)
PREFIXES = ["nba-", "epl-"]


def _market(slug, **kw):
    raw = {
        "slug": slug,
        "question": kw.pop("question", "Rockets vs. Bucks"),
        "gameStartTime": kw.pop("start", "2025-11-09T19:00:00Z"),
        "clobTokenIds": json.dumps(kw.pop("tokens", ["t1", "t2"])),
        "outcomes": json.dumps(kw.pop("outcomes", ["Rockets", "Bucks"])),
        "acceptingOrders": kw.pop("accepting", True),
        "conditionId": "0xc",
    }
    raw.update(kw)
    return raw


def test_is_match_slug():
    assert is_match_slug("nba-hou-mil-2025-11-09", PREFIXES)
    assert not is_match_slug("nba-champion-2026", PREFIXES)
    assert not is_match_slug("nfl-kc-buf-2025-11-09", PREFIXES)


def test_group_live_matches_filters_and_groups():
    markets = [
        _market("nba-hou-mil-2025-11-09"),
        _market("nba-hou-mil-2025-11-09", tokens=["t2", "t3"], outcomes=["Yes", "No"], question="Spread"),
        _market("nba-lal-bos-2025-11-09", start="2025-11-09T23:00:00Z"),  # not started
        _market("epl-ars-che-2025-11-09", accepting=False),
        _market("nba-finals-winner"),
        _market("epl-liv-mun-2025-11-09", tokens=["x1"], outcomes=[]),
    ]
    matches = group_live_matches(markets, PREFIXES, now=NOW)
    by_slug = {m.slug: m for m in matches}
    assert set(by_slug) == {"nba-hou-mil-2025-11-09", "epl-liv-mun-2025-11-09"}
    assert by_slug["nba-hou-mil-2025-11-09"].token_ids == ["t1", "t2", "t3"]
    assert by_slug["epl-liv-mun-2025-11-09"].instruments[0].outcome == "Outcome 1"


def test_directory_refresh_over_http():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json=[_market("nba-hou-mil-2025-11-09", start="2000-01-01T00:00:00Z")])

    directory = InstrumentDirectory(
        base_url="https://gamma.test", league_prefixes=PREFIXES, transport=httpx.MockTransport(handler)
    )
    mapping = build_instrument_map(directory.find_live_matches())
    assert set(mapping) == {"t1", "t2"}
    assert mapping["t1"].outcome == "Rockets"
    assert mapping["t1"].match_slug == "nba-hou-mil-2025-11-09"
    assert seen["params"]["order"] == "gameStartTime"
    assert seen["params"]["closed"] == "false"


def test_directory_error_yields_empty():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    directory = InstrumentDirectory(base_url="https://gamma.test", transport=httpx.MockTransport(handler))
    assert directory.find_live_matches() == []
