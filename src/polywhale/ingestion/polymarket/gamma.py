"""Polymarket Gamma API client - live sports match discovery."""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from typing import Any

import httpx
import structlog

from polywhale.config.settings import DEFAULT_LEAGUE_PREFIXES
from polywhale.models import Instrument, LiveMatch

log = structlog.get_logger(__name__)

GAMMA_API_BASE = "https://gamma-api.polymarket.com"

_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}")


def _json_list(value: str | list[Any] | None) -> list[Any]:
    """Gamma returns some list fields as JSON-encoded strings."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    parsed = json.loads(value) if value else []
    if not isinstance(parsed, list):
        raise ValueError(f"expected JSON list, got {type(parsed).__name__}")
    return parsed


def _parse_time(s: str | None) -> datetime | None:
    if not s:
        return None
    try:
        dt = datetime.fromisoformat(str(s).replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def is_match_slug(slug: str, prefixes: list[str]) -> bool:
    """A real match slug starts with a league prefix and carries a YYYY-MM-DD date."""
    lower = (slug or "").lower()
    if not any(lower.startswith(p) for p in prefixes):
        return False
    return bool(_DATE_RE.search(lower))


def is_live(raw: dict[str, Any], now: datetime) -> bool:
    """Started (gameStartTime not in the future) and still accepting orders."""
    start = _parse_time(raw.get("gameStartTime"))
    if start is not None and start > now:
        return False
    if raw.get("acceptingOrders") is False:
        return False
    return True


def group_live_matches(
    markets: list[dict[str, Any]],
    prefixes: list[str],
    now: datetime | None = None,
) -> list[LiveMatch]:
    """Filter raw Gamma markets to live matches and group their tokens by slug."""
    now = now or datetime.now(timezone.utc)
    by_slug: dict[str, LiveMatch] = {}
    for raw in markets:
        slug = str(raw.get("slug") or "")
        if not is_match_slug(slug, prefixes) or not is_live(raw, now):
            continue
        if not raw.get("clobTokenIds"):
            continue
        try:
            token_ids = [str(t) for t in _json_list(raw.get("clobTokenIds"))]
            outcomes = [str(o) for o in _json_list(raw.get("outcomes"))]
        except (ValueError, TypeError) as e:
            log.warning("skip_market", slug=slug, error=str(e))
            continue
        match = by_slug.get(slug)
        if match is None:
            match = LiveMatch(slug=slug, question=str(raw.get("question") or ""))
            by_slug[slug] = match
        seen = set(match.token_ids)
        for i, token_id in enumerate(token_ids):
            if not token_id or token_id in seen:
                continue
            seen.add(token_id)
            match.instruments.append(
                Instrument(
                    token_id=token_id,
                    match_slug=slug,
                    outcome=outcomes[i] if i < len(outcomes) and outcomes[i] else f"Outcome {i + 1}",
                    question=str(raw.get("question") or ""),
                    condition_id=raw.get("conditionId"),
                )
            )
    return [m for m in by_slug.values() if m.instruments]


def fetch_sports_markets(
    base_url: str = GAMMA_API_BASE,
    limit: int = 500,
    timeout: float = 30.0,
    client: httpx.Client | None = None,
) -> list[dict[str, Any]]:
    """Raw open markets ordered by gameStartTime (only sports markets carry it)."""
    url = base_url.rstrip("/") + "/markets"
    params = {
        "active": "true",
        "closed": "false",
        "limit": limit,
        "order": "gameStartTime",
        "ascending": "true",
    }
    own_client = client is None
    http = client or httpx.Client(timeout=timeout)
    try:
        resp = http.get(url, params=params)
        resp.raise_for_status()
        data = resp.json()
    finally:
        if own_client:
            http.close()
    if not isinstance(data, list):
        data = data.get("data", []) if isinstance(data, dict) else []
    return [row for row in data if isinstance(row, dict)]


class InstrumentDirectory:
    """Periodically resolves which tokens to watch and what match/outcome each belongs to."""

    def __init__(
        self,
        base_url: str = GAMMA_API_BASE,
        league_prefixes: list[str] | None = None,
        limit: int = 500,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self.league_prefixes = [p.lower() for p in (league_prefixes or DEFAULT_LEAGUE_PREFIXES)]
        self.limit = limit
        self.timeout = timeout
        self._transport = transport
        self._known: set[str] = set()

    def find_live_matches(self) -> list[LiveMatch]:
        """One Gamma poll. Errors are logged and yield an empty list."""
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                raw = fetch_sports_markets(self.base_url, limit=self.limit, client=client)
        except (httpx.HTTPError, ValueError) as e:
            log.warning("directory_fetch_failed", error=str(e))
            return []
        matches = group_live_matches(raw, self.league_prefixes)
        for m in matches:
            if m.slug not in self._known:
                self._known.add(m.slug)
                log.info("new_match", slug=m.slug, question=m.question, outcomes=[i.outcome for i in m.instruments])
        log.info("directory_refreshed", markets=len(raw), matches=len(matches))
        return matches
