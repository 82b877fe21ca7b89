"""Account subcommand: watch, trades."""

from __future__ import annotations

import asyncio
import re
import signal
import sys
from datetime import datetime, timezone
from pathlib import Path

import typer

from polywhale.account import AccountTracker
from polywhale.storage.accounts import list_trades
from polywhale.storage.db import get_connection

app = typer.Typer(help="Follow a single trader's wallet")

_WALLET_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def _wallet(value: str) -> str:
    if not _WALLET_RE.match(value):
        typer.echo(f"Not a wallet address: {value}")
        raise typer.Exit(2)
    return value.lower()


@app.command("watch")
def watch(
    ctx: typer.Context,
    wallet: str = typer.Argument(..., help="Proxy wallet address (0x...)"),
    interval: float | None = typer.Option(None, "--interval", "-i", help="Seconds between polls (overrides config)"),
) -> None:
    """Poll the wallet's activity and alert on its new sports trades."""
    settings = ctx.obj["settings"]
    wallet = _wallet(wallet)
    if interval is not None:
        settings.account["poll_interval_sec"] = interval

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    tracker = AccountTracker.from_settings(settings, wallet)
    stop_event = asyncio.Event()

    def shutdown() -> None:
        stop_event.set()

    if sys.platform != "win32":
        loop.add_signal_handler(signal.SIGINT, shutdown)
        loop.add_signal_handler(signal.SIGTERM, shutdown)
    try:
        typer.echo(f"Watching {wallet} every {tracker.poll_interval_sec:g}s (Ctrl+C to stop)...")
        loop.run_until_complete(tracker.run(stop_event=stop_event))
    except KeyboardInterrupt:
        pass
    finally:
        tracker.close()
        loop.close()
    typer.echo("Stopped.")


@app.command("trades")
def trades(
    ctx: typer.Context,
    wallet: str = typer.Argument(..., help="Proxy wallet address (0x...)"),
    limit: int = typer.Option(20, "--limit", "-n", help="How many trades to show"),
) -> None:
    """Trades logged for the wallet, most recent first."""
    settings = ctx.obj["settings"]
    wallet = _wallet(wallet)
    path = Path(settings.account_db_path)
    if not path.exists():
        typer.echo(f"No account database at {path}. Run: polywhale account watch <wallet>")
        raise typer.Exit(1)
    conn = get_connection(path, read_only=True)
    try:
        rows = list_trades(conn, wallet, limit=limit)
        for r in rows:
            ts = datetime.fromtimestamp(r["trade_ts"] / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
            mark = "*" if r["alerted"] else " "
            typer.echo(
                f"{mark} {ts}  {(r['event_slug'] or '')[:36]:<36}  {(r['outcome'] or '')[:20]:<20}  "
                f"{r['side']} {r['size']:>10,.0f} @ {r['price']:.2f}"
            )
        typer.echo(f"Shown: {len(rows)}")
    finally:
        conn.close()
