"""Telegram delivery for whale alerts."""

from __future__ import annotations

import httpx
import structlog

from polywhale.alerts.teams import full_team_name
from polywhale.models.activity import TradeActivity
from polywhale.models.alert import WhaleAlert

log = structlog.get_logger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org"
DEFAULT_TIMEOUT = 10.0

_SPORT_EMOJI = {
    "nba": "\U0001F3C0",
    "cbb": "\U0001F3C0",
    "nhl": "\U0001F3D2",
    "nfl": "\U0001F3C8",
    "cfb": "\U0001F3C8",
    "mlb": "⚾",
    "dota": "\U0001F3AE",
    "dota2": "\U0001F3AE",
    "val": "\U0001F3AE",
    "cs2": "\U0001F3AE",
    "csgo": "\U0001F3AE",
    "lol": "\U0001F3AE",
}
_SOCCER = "⚽"
_DEFAULT_EMOJI = "\U0001F3AF"
_SOCCER_PREFIXES = {
    "epl", "elc", "lal", "es2", "bun", "bl2", "sea", "itsb", "ere", "por", "tur", "rus",
    "den", "nor", "scop", "arg", "bra", "mex", "lib", "cde", "kor", "jap", "ja2", "mls",
}


def sport_emoji(match_slug: str) -> str:
    prefix = match_slug.split("-", 1)[0].lower()
    if prefix in _SOCCER_PREFIXES:
        return _SOCCER
    return _SPORT_EMOJI.get(prefix, _DEFAULT_EMOJI)


def _compact(n: float) -> str:
    return f"{n / 1000:.1f}k" if n >= 1000 else f"{n:.0f}"


def market_name(alert: WhaleAlert) -> str:
    """Team name for moneyline outcomes, '<question>: Yes/No' for binary props."""
    if alert.outcome_label in ("Yes", "No") and alert.question:
        q = alert.question.strip()
        if q.lower().startswith("will "):
            q = q[5:]
        q = q.rstrip("?")
        parts = q.rsplit(" on ", 1)
        if len(parts) == 2 and len(parts[1]) == 10 and parts[1][4] == "-":
            q = parts[0]
        return f"{q}: {alert.outcome_label}"
    return full_team_name(alert.outcome_label, alert.match_id)


def format_alert(alert: WhaleAlert) -> str:
    """Markdown message body."""
    notional = alert.notional
    dollars = f"${notional / 1000:.1f}k" if notional >= 1000 else f"${notional:.0f}"
    # one bill per $2k, between 1 and 10
    bills = "\U0001F4B5" * min(10, max(1, -(-int(notional) // 2000)))
    return (
        f"\U0001F40B *WHALE ALERT* {sport_emoji(alert.match_id)}\n\n"
        f"\U0001F4CA *{market_name(alert)}*\n"
        f"\U0001F4B0 `{_compact(alert.size)} shares @ {alert.price * 100:.0f}¢`\n"
        f"{bills} *{dollars}*\n\n"
        f"{alert.event_url}"
    )


def format_trade(trade: TradeActivity, wallet: str) -> str:
    """Markdown message body for a watched-wallet trade."""
    who = trade.pseudonym or f"{wallet[:6]}...{wallet[-4:]}"
    verb = "bought" if trade.side == "BUY" else "sold"
    outcome = full_team_name(trade.outcome, trade.event_slug) if trade.outcome else "?"
    return (
        f"\U0001F464 *TRADER ALERT* {sport_emoji(trade.event_slug)}\n\n"
        f"`{who}` {verb} *{outcome}*\n"
        f"\U0001F4CA {trade.title}\n"
        f"\U0001F4B0 `{_compact(trade.size)} shares @ {trade.price * 100:.0f}¢` (${trade.usdc_size:,.0f})\n\n"
        f"{trade.event_url}"
    )


class TelegramNotifier:
    def __init__(
        self,
        token: str,
        chat_id: str,
        *,
        base_url: str = TELEGRAM_API_BASE,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.token = token
        self.chat_id = chat_id
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def send(self, alert: WhaleAlert) -> bool:
        """Post the alert. Failures are logged and reported as False."""
        return await self.send_text(format_alert(alert))

    async def send_text(self, text: str) -> bool:
        url = f"{self.base_url}/bot{self.token}/sendMessage"
        payload = {
            "chat_id": self.chat_id,
            "text": text[:4096],
            "parse_mode": "Markdown",
            "disable_web_page_preview": True,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(url, json=payload)
        except httpx.HTTPError as e:
            log.warning("telegram_send_failed", error=str(e))
            return False
        if resp.status_code != 200:
            log.warning("telegram_api_error", status=resp.status_code, body=resp.text[:200])
            return False
        return True
