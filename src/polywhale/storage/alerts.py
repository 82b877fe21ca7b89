"""Alert history and dedup-key persistence."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

from polywhale.models.alert import WhaleAlert

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

_ALERT_COLUMNS = [
    "id", "created_at", "alert_ts", "match_id", "outcome_label", "question",
    "instrument_id", "price", "size", "side", "age_seconds",
]


def append_alert(conn: DuckDBPyConnection, alert: WhaleAlert, created_at: int | None = None) -> None:
    """Append one alert row."""
    conn.execute(
        """
        INSERT INTO alerts (created_at, alert_ts, match_id, outcome_label, question, instrument_id, price, size, side, age_seconds)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        [
            created_at or int(time.time() * 1000),
            alert.timestamp,
            alert.match_id,
            alert.outcome_label,
            alert.question,
            alert.instrument_id,
            alert.price,
            alert.size,
            alert.side,
            alert.age_seconds,
        ],
    )


def prune_sent_keys(conn: DuckDBPyConnection, window_ms: int, now_ms: int | None = None) -> int:
    """Forget dedup keys older than the window. Returns how many were removed."""
    now_ms = now_ms or int(time.time() * 1000)
    cutoff = now_ms - window_ms
    removed = conn.execute("SELECT COUNT(*) FROM sent_alerts WHERE sent_at < ?", [cutoff]).fetchone()[0]
    if removed:
        conn.execute("DELETE FROM sent_alerts WHERE sent_at < ?", [cutoff])
    return int(removed)


def claim_dedup_key(conn: DuckDBPyConnection, key: str, now_ms: int | None = None) -> bool:
    """Record key as sent. False if it was already there (duplicate)."""
    now_ms = now_ms or int(time.time() * 1000)
    row = conn.execute("SELECT 1 FROM sent_alerts WHERE dedup_key = ?", [key]).fetchone()
    if row is not None:
        return False
    conn.execute("INSERT INTO sent_alerts (dedup_key, sent_at) VALUES (?, ?)", [key, now_ms])
    return True


def list_alerts(conn: DuckDBPyConnection, limit: int = 50, match_id: str | None = None) -> list[dict[str, Any]]:
    """Most recent alerts first."""
    where = "WHERE match_id = ?" if match_id else ""
    params: list[Any] = [match_id] if match_id else []
    params.append(limit)
    rows = conn.execute(
        f"SELECT {', '.join(_ALERT_COLUMNS)} FROM alerts {where} ORDER BY id DESC LIMIT ?",
        params,
    ).fetchall()
    return [dict(zip(_ALERT_COLUMNS, r)) for r in rows]


def alert_stats(conn: DuckDBPyConnection, now_ms: int | None = None) -> dict[str, Any]:
    """Total alerts, alerts in the last 24h, dedup keys held, top matches by alert count."""
    now_ms = now_ms or int(time.time() * 1000)
    total = conn.execute("SELECT COUNT(*) FROM alerts").fetchone()[0]
    last_day = conn.execute(
        "SELECT COUNT(*) FROM alerts WHERE created_at >= ?", [now_ms - 24 * 3600 * 1000]
    ).fetchone()[0]
    keys = conn.execute("SELECT COUNT(*) FROM sent_alerts").fetchone()[0]
    by_match = conn.execute(
        "SELECT match_id, COUNT(*) AS cnt FROM alerts GROUP BY match_id ORDER BY cnt DESC LIMIT 10"
    ).fetchall()
    return {
        "total_alerts": total,
        "alerts_24h": last_day,
        "dedup_keys": keys,
        "by_match": [{"match_id": r[0], "count": r[1]} for r in by_match],
    }
