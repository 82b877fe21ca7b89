"""Alerts subcommand: list, stats."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import typer

from polywhale.storage.alerts import alert_stats, list_alerts
from polywhale.storage.db import get_connection

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

app = typer.Typer(help="Alert history")


def _open(ctx: typer.Context) -> DuckDBPyConnection:
    settings = ctx.obj["settings"]
    path = Path(settings.alerts_db_path)
    if not path.exists():
        typer.echo(f"No alert database at {path}. Run: polywhale monitor start")
        raise typer.Exit(1)
    return get_connection(path, read_only=True)


@app.command("list")
def list_cmd(
    ctx: typer.Context,
    limit: int = typer.Option(20, "--limit", "-n", help="How many alerts to show"),
    match: str | None = typer.Option(None, "--match", "-m", help="Filter by match slug"),
) -> None:
    """Most recent alerts first."""
    conn = _open(ctx)
    try:
        rows = list_alerts(conn, limit=limit, match_id=match)
        for r in rows:
            typer.echo(
                f"{r['alert_ts'][:19]}  {r['match_id'][:36]:<36}  {r['outcome_label'][:20]:<20}  "
                f"{r['side']} {r['size']:>10,.0f} @ {r['price']:.2f}  ({r['age_seconds']}s)"
            )
        typer.echo(f"Shown: {len(rows)}")
    finally:
        conn.close()


@app.command("stats")
def stats(ctx: typer.Context) -> None:
    """Alert counts and the busiest matches."""
    conn = _open(ctx)
    try:
        s = alert_stats(conn)
        typer.echo(f"Total alerts: {s['total_alerts']}")
        typer.echo(f"Last 24h: {s['alerts_24h']}")
        typer.echo(f"Dedup keys held: {s['dedup_keys']}")
        if s["by_match"]:
            typer.echo("Top matches:")
            for row in s["by_match"]:
                typer.echo(f"  {row['match_id']}  {row['count']}")
    finally:
        conn.close()
