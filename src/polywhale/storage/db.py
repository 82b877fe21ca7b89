"""DuckDB connection and schema init for the alert history and watched-wallet state."""

from __future__ import annotations

import time
from pathlib import Path
from typing import TYPE_CHECKING

import duckdb
import structlog

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

log = structlog.get_logger(__name__)

SCHEMA_SQL = """
CREATE SEQUENCE IF NOT EXISTS alert_seq START 1;

-- Every alert that passed deduplication (append-only)
CREATE TABLE IF NOT EXISTS alerts (
    id              BIGINT PRIMARY KEY DEFAULT nextval('alert_seq'),
    created_at      BIGINT NOT NULL,
    alert_ts        VARCHAR NOT NULL,
    match_id        VARCHAR NOT NULL,
    outcome_label   VARCHAR NOT NULL,
    question        VARCHAR,
    instrument_id   VARCHAR NOT NULL,
    price           DOUBLE NOT NULL,
    size            DOUBLE NOT NULL,
    side            VARCHAR NOT NULL,
    age_seconds     INTEGER NOT NULL
);

-- Dedup keys (instrument + price) with the time they were first sent
CREATE TABLE IF NOT EXISTS sent_alerts (
    dedup_key       VARCHAR PRIMARY KEY,
    sent_at         BIGINT NOT NULL
);

CREATE SEQUENCE IF NOT EXISTS account_trade_seq START 1;

-- Newest transaction already seen per watched wallet
CREATE TABLE IF NOT EXISTS account_state (
    wallet          VARCHAR PRIMARY KEY,
    last_tx_hash    VARCHAR NOT NULL,
    updated_at      BIGINT NOT NULL
);

-- Every trade seen from a watched wallet, alerted or not
CREATE TABLE IF NOT EXISTS account_trades (
    id              BIGINT PRIMARY KEY DEFAULT nextval('account_trade_seq'),
    logged_at       BIGINT NOT NULL,
    wallet          VARCHAR NOT NULL,
    tx_hash         VARCHAR NOT NULL,
    trade_ts        BIGINT NOT NULL,
    event_slug      VARCHAR,
    title           VARCHAR,
    outcome         VARCHAR,
    side            VARCHAR NOT NULL,
    price           DOUBLE NOT NULL,
    size            DOUBLE NOT NULL,
    usdc_size       DOUBLE NOT NULL,
    alerted         BOOLEAN NOT NULL
);
"""


def get_connection(db_path: str | Path, read_only: bool = False) -> DuckDBPyConnection:
    """Return a DuckDB connection. Caller must close or use as context manager."""
    path = Path(db_path)
    if not read_only:
        path.parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(str(path), read_only=read_only)


def init_schema(conn: DuckDBPyConnection) -> None:
    """Create tables and sequences if they do not exist."""
    for stmt in SCHEMA_SQL.split(";"):
        stmt = stmt.strip()
        if stmt:
            try:
                conn.execute(stmt)
            except duckdb.Error as e:
                if "already exists" not in str(e).lower():
                    raise


def open_or_recreate(db_path: str | Path) -> DuckDBPyConnection:
    """Open the alert database with schema. An unreadable file is moved aside and started fresh."""
    path = Path(db_path)
    try:
        conn = get_connection(path)
        init_schema(conn)
        return conn
    except duckdb.Error as e:
        aside = path.with_name(f"{path.name}.corrupt-{int(time.time())}")
        log.warning("alert_db_unreadable", path=str(path), moved_to=str(aside), error=str(e))
        if path.exists():
            path.rename(aside)
        wal = path.with_name(path.name + ".wal")
        if wal.exists():
            wal.unlink()
        conn = get_connection(path)
        init_schema(conn)
        return conn
