"""Root CLI app - entry point and command registration."""

from pathlib import Path

import typer

from polywhale import __version__
from polywhale.config import get_settings
from polywhale.config.settings import configure_logging

app = typer.Typer(
    name="polywhale",
    help="polywhale - spot large resting buy orders on live Polymarket sports books.",
    no_args_is_help=True,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"polywhale {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit"
    ),
    config_dir: Path | None = typer.Option(
        None, "--config-dir", "-C", help="Config directory (default: ./config or package config)"
    ),
    profile: str | None = typer.Option(
        None, "--profile", "-p", help="Config profile (e.g. dev) to overlay on default.toml"
    ),
) -> None:
    """Configure logging and store options in context."""
    settings = get_settings(profile, config_dir)
    configure_logging(settings)
    ctx.obj = {"settings": settings, "config_dir": config_dir, "profile": profile}


# Subcommands registered from other modules
from polywhale.cli import account, alerts, matches, monitor  # noqa: E402

app.add_typer(monitor.app, name="monitor")
app.add_typer(matches.app, name="matches")
app.add_typer(alerts.app, name="alerts")
app.add_typer(account.app, name="account")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
