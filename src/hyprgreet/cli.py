"""hypr-greeter CLI Entry Point.

This module provides the command-line interface used by greetd to launch
the greeter, plus helpers to inspect the configuration.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import structlog
import typer

from hyprgreet.core.config import ConfigurationError, find_config_file, get_settings
from hyprgreet.core.log import configure_logging
from hyprgreet.greetd.client import resolve_socket_path

log = structlog.get_logger()

_loaded_config: Optional[Path] = None

app = typer.Typer(
    name="hypr-greeter",
    help="hypr-greeter - terminal login greeter for greetd",
    no_args_is_help=True,
)


def load_config_callback(
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to configuration file", is_eager=True
    ),
) -> Optional[Path]:
    """Load configuration (explicit file or search paths) and set up logging."""
    global _loaded_config

    if config and not config.exists():
        typer.echo(f"Error: Config file '{config}' not found", err=True)
        raise typer.Exit(code=1)

    try:
        settings = get_settings(force_reload=True, config_path=config)
    except ConfigurationError as e:
        typer.echo(f"Error loading config: {e}", err=True)
        raise typer.Exit(code=1)

    _loaded_config = config or find_config_file()
    configure_logging(settings.logging)
    if config:
        log.info("config_loaded", path=str(config))
    return config


@app.callback()
def main(
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        callback=load_config_callback,
        is_eager=True,
        help="Path to configuration file",
    ),
) -> None:
    """hypr-greeter CLI."""
    pass


@app.command()
def run() -> None:
    """Show the login screen."""
    from hyprgreet.tui.app import run_greeter

    outcome = run_greeter(get_settings())
    if outcome is None:
        log.info("greeter_quit")
    else:
        log.info("greeter_finished", success=outcome.success)


@app.command()
def sessions() -> None:
    """List the configured sessions in display order."""
    for index, entry in enumerate(get_settings().sessions):
        typer.echo(f"{index}: {entry.name} -> {entry.command}")


@app.command()
def check() -> None:
    """Show the effective config file and greetd socket, and verify the socket exists."""
    settings = get_settings()
    socket_path = resolve_socket_path(settings.greetd.socket_path)

    typer.echo(f"Config file: {_loaded_config or 'none (defaults)'}")
    typer.echo(f"greetd socket: {socket_path}")
    typer.echo(f"Sessions: {len(settings.sessions)}")

    if not socket_path.exists():
        typer.echo("Error: greetd socket not found", err=True)
        raise typer.Exit(code=1)
    typer.echo("greetd socket found")


if __name__ == "__main__":
    app()
