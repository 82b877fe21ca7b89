"""Matches subcommand: list."""

from __future__ import annotations

import typer

from polywhale.ingestion.polymarket.gamma import InstrumentDirectory

app = typer.Typer(help="Live match discovery")


@app.command("list")
def list_matches(ctx: typer.Context) -> None:
    """Show the live matches (and their outcome tokens) the monitor would watch right now."""
    settings = ctx.obj["settings"]
    directory = InstrumentDirectory(
        base_url=settings.gamma_api_base,
        league_prefixes=settings.league_prefixes,
        limit=settings.directory_limit,
    )
    matches = directory.find_live_matches()
    for m in matches:
        typer.echo(f"{m.slug}  ({len(m.instruments)} tokens)")
        for inst in m.instruments:
            typer.echo(f"    {inst.outcome:<30} {inst.token_id[:24]}...")
    typer.echo(f"Total: {len(matches)} live matches")
