"""Monitor subcommand: start."""

from __future__ import annotations

import asyncio
import signal
import sys

import typer

from polywhale.monitor import WhaleMonitor

app = typer.Typer(help="Run the whale order monitor")


@app.command("start")
def start(
    ctx: typer.Context,
    min_size: float | None = typer.Option(None, "--min-size", help="Minimum jump in shares (overrides config)"),
    alert_age: float | None = typer.Option(None, "--alert-age", help="Seconds a jump must persist (overrides config)"),
) -> None:
    """Discover live matches, stream their books and alert on persistent large bids."""
    settings = ctx.obj["settings"]
    if min_size is not None:
        settings.monitor["min_size"] = min_size
    if alert_age is not None:
        settings.monitor["alert_age_sec"] = alert_age
    cfg = settings.detector_config()
    typer.echo(f"Min size: {cfg.min_size:,.0f} shares")
    typer.echo(f"Price range: ${cfg.min_price:.2f} - ${cfg.max_price:.2f}")
    typer.echo(f"Alert age: {cfg.alert_age_sec:.0f}s  tolerance: {cfg.delta_tolerance:.0%}  impact: {cfg.min_impact_percent:.0%}")

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    monitor = WhaleMonitor.from_settings(settings)
    stop_event = asyncio.Event()

    def shutdown() -> None:
        stop_event.set()

    if sys.platform != "win32":
        loop.add_signal_handler(signal.SIGINT, shutdown)
        loop.add_signal_handler(signal.SIGTERM, shutdown)
    try:
        typer.echo("Starting monitor (Ctrl+C to stop)...")
        loop.run_until_complete(monitor.run(stop_event=stop_event))
    except KeyboardInterrupt:
        pass
    finally:
        monitor.close()
        loop.close()
    typer.echo("Stopped.")
