"""CLI smoke tests against a temp config and alert database."""

import asyncio

from typer.testing import CliRunner

from polywhale.alerts import AlertManager
from polywhale.cli.app import app
from polywhale.models import TradeActivity, WhaleAlert
from polywhale.storage.accounts import append_trade
from polywhale.storage.db import get_connection, init_schema

runner = CliRunner()


def _config_dir(tmp_path, db_path):
    cfg = tmp_path / "config"
    cfg.mkdir()
    (cfg / "default.toml").write_text(f'[alerts]\ndb_path = "{db_path.as_posix()}"\n\n[logging]\nlevel = "WARNING"\n')
    return cfg


def test_alerts_list_and_stats(tmp_path):
    db_path = tmp_path / "alerts.duckdb"
    mgr = AlertManager(db_path)
    alert = WhaleAlert(
        timestamp="2025-11-09T20:00:00+00:00",
        match_id="nba-hou-mil-2025-11-09",
        outcome_label="Rockets",
        instrument_id="tok-a",
        price=0.5,
        size=11000,
        side="BUY",
        age_seconds=120,
    )
    assert asyncio.run(mgr.handle(alert))
    mgr.close()
    cfg = _config_dir(tmp_path, db_path)

    result = runner.invoke(app, ["--config-dir", str(cfg), "alerts", "list"])
    assert result.exit_code == 0, result.output
    assert "nba-hou-mil-2025-11-09" in result.output
    assert "Shown: 1" in result.output

    result = runner.invoke(app, ["--config-dir", str(cfg), "alerts", "stats"])
    assert result.exit_code == 0, result.output
    assert "Total alerts: 1" in result.output


def test_alerts_list_without_database(tmp_path):
    cfg = _config_dir(tmp_path, tmp_path / "missing.duckdb")
    result = runner.invoke(app, ["--config-dir", str(cfg), "alerts", "list"])
    assert result.exit_code == 1
    assert "No alert database" in result.output


def test_account_trades_lists_logged_trades(tmp_path):
    db_path = tmp_path / "accounts.duckdb"
    wallet = "0x" + "cd" * 20
    conn = get_connection(db_path)
    init_schema(conn)
    trade = TradeActivity(
        tx_hash="0x1",
        timestamp=1_762_718_400_000,
        side="BUY",
        size=5000,
        price=0.5,
        outcome="Rockets",
        event_slug="nba-hou-mil-2025-11-09",
    )
    append_trade(conn, wallet, trade, alerted=True)
    conn.close()
    cfg = tmp_path / "config"
    cfg.mkdir()
    (cfg / "default.toml").write_text(f'[account]\ndb_path = "{db_path.as_posix()}"\n\n[logging]\nlevel = "WARNING"\n')

    result = runner.invoke(app, ["--config-dir", str(cfg), "account", "trades", wallet.upper().replace("0X", "0x")])
    assert result.exit_code == 0, result.output
    assert "2025-11-09 20:00:00" in result.output
    assert "Shown: 1" in result.output


def test_account_rejects_bad_wallet(tmp_path):
    cfg = _config_dir(tmp_path, tmp_path / "alerts.duckdb")
    result = runner.invoke(app, ["--config-dir", str(cfg), "account", "trades", "0x123"])
    assert result.exit_code == 2
    assert "Not a wallet address" in result.output
