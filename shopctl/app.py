"""Main Typer application for shopctl.

This module contains the main Typer app instance and registers all commands.
It provides the entry point for the CLI and handles global options like
profile, output directory, logging verbosity and output formatting.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.traceback import install

from . import __version__
from .cmds.common import console as err_console
from .config import ConfigManager
from .exceptions import ConfigError
from .render import FORMATS, OutputFormatter

# Install rich traceback handler for better error display
install(show_locals=False)

app = typer.Typer(
    name="shopctl",
    help="Sync a Shopify store's themes and content with a local directory",
    context_settings={"help_option_names": ["-h", "--help"]},
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"shopctl {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool = False, debug: bool = False) -> None:
    """Route the package loggers to a Rich handler on stderr.

    WARNING by default, INFO with ``--verbose`` and DEBUG with ``--debug``.
    """
    level = logging.DEBUG if debug else logging.INFO if verbose else logging.WARNING
    logger = logging.getLogger("shopctl")
    logger.setLevel(level)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(console=err_console, show_time=debug, show_path=debug, markup=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
    logger.propagate = False


@app.callback()
def main(
    ctx: typer.Context,
    profile: Optional[str] = typer.Option(
        None,
        "--profile",
        "-p",
        help="Configuration profile to use",
    ),
    output_dir: Path = typer.Option(
        Path("."),
        "--output-dir",
        help="Location of the local store files",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every action"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug output"),
    output_format: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format (table, json, yaml)",
    ),
    max_workers: int = typer.Option(8, "--max-workers", min=1, help="Concurrent API calls per batch"),
    config_dir: Optional[Path] = typer.Option(
        None,
        "--config-dir",
        help="Configuration directory (default: ~/.shopctl)",
        hidden=True,
    ),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """shopctl - sync a Shopify store with a local directory.

    Themes, pages, blogs, menus, redirects and script tags are mirrored
    into the output directory so they can be versioned and edited locally.

    Examples:
        # Pull the published theme and all content
        shopctl pull

        # Push local theme edits to an unpublished theme
        shopctl push assets --theme staging

        # Live-sync theme edits to a development theme
        shopctl serve
    """
    if output_format and output_format.lower() not in FORMATS:
        raise typer.BadParameter(f"Choose one of: {', '.join(FORMATS)}", param_hint="--output")

    configure_logging(verbose, debug)

    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["output_format"] = output_format
    ctx.obj["output_dir"] = output_dir
    ctx.obj["max_workers"] = max_workers
    ctx.obj["profile_name"] = profile
    ctx.obj["console"] = console
    try:
        ctx.obj["config_manager"] = ConfigManager(config_dir)
    except ConfigError as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    ctx.obj["output_formatter"] = OutputFormatter(console)

    if debug:
        err_console.print("[dim]Debug mode enabled[/dim]")


def register_commands() -> None:
    """Register all commands with the main app."""
    from .cmds import config_app, init, list_resources, publish, pull, push, serve

    app.command("list")(list_resources)
    app.command()(pull)
    app.command()(push)
    app.command()(init)
    app.command()(publish)
    app.command()(serve)
    app.add_typer(config_app, name="config", help="Manage configuration")


register_commands()


def cli():
    """Entry point for the CLI."""
    try:
        app()
    except KeyboardInterrupt:
        err_console.print("\n[yellow]Operation cancelled by user[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    cli()
