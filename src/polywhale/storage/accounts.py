"""Watched-wallet state and trade log persistence."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

from polywhale.models.activity import TradeActivity

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

_TRADE_COLUMNS = [
    "id", "logged_at", "wallet", "tx_hash", "trade_ts", "event_slug", "title",
    "outcome", "side", "price", "size", "usdc_size", "alerted",
]


def get_last_tx(conn: DuckDBPyConnection, wallet: str) -> str | None:
    row = conn.execute("SELECT last_tx_hash FROM account_state WHERE wallet = ?", [wallet]).fetchone()
    return row[0] if row else None


def save_last_tx(conn: DuckDBPyConnection, wallet: str, tx_hash: str, now_ms: int | None = None) -> None:
    """Upsert the newest seen transaction for wallet."""
    conn.execute(
        """
        INSERT INTO account_state (wallet, last_tx_hash, updated_at)
        VALUES (?, ?, ?)
        ON CONFLICT (wallet) DO UPDATE SET
            last_tx_hash = excluded.last_tx_hash,
            updated_at = excluded.updated_at
        """,
        [wallet, tx_hash, now_ms or int(time.time() * 1000)],
    )


def append_trade(
    conn: DuckDBPyConnection,
    wallet: str,
    trade: TradeActivity,
    alerted: bool,
    now_ms: int | None = None,
) -> None:
    conn.execute(
        """
        INSERT INTO account_trades (logged_at, wallet, tx_hash, trade_ts, event_slug, title, outcome, side, price, size, usdc_size, alerted)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        [
            now_ms or int(time.time() * 1000),
            wallet,
            trade.tx_hash,
            trade.timestamp,
            trade.event_slug,
            trade.title,
            trade.outcome,
            trade.side,
            trade.price,
            trade.size,
            trade.usdc_size,
            alerted,
        ],
    )


def prune_trades(conn: DuckDBPyConnection, retention_ms: int, now_ms: int | None = None) -> int:
    """Drop logged trades older than the retention. Returns how many were removed."""
    now_ms = now_ms or int(time.time() * 1000)
    cutoff = now_ms - retention_ms
    removed = conn.execute("SELECT COUNT(*) FROM account_trades WHERE logged_at < ?", [cutoff]).fetchone()[0]
    if removed:
        conn.execute("DELETE FROM account_trades WHERE logged_at < ?", [cutoff])
    return int(removed)


def list_trades(conn: DuckDBPyConnection, wallet: str, limit: int = 20) -> list[dict[str, Any]]:
    """Most recently logged trades of wallet first."""
    rows = conn.execute(
        f"SELECT {', '.join(_TRADE_COLUMNS)} FROM account_trades WHERE wallet = ? ORDER BY id DESC LIMIT ?",
        [wallet, limit],
    ).fetchall()
    return [dict(zip(_TRADE_COLUMNS, r)) for r in rows]


def trade_stats(conn: DuckDBPyConnection, wallet: str) -> dict[str, int]:
    logged, alerted = conn.execute(
        "SELECT COUNT(*), COUNT(*) FILTER (WHERE alerted) FROM account_trades WHERE wallet = ?",
        [wallet],
    ).fetchone()
    return {"trades_logged": int(logged), "trades_alerted": int(alerted or 0)}
