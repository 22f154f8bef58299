"""Helpers shared by the command modules."""

import functools
from datetime import datetime
from typing import Callable, List, Optional

import click
import typer
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn

from ..client import ShopifyClient
from ..exceptions import ConfigError, ShopCtlError, format_error_for_user
from ..models import parse_timestamp
from ..store import ShopifyStore
from ..sync import SyncOptions, SyncRegistry, SyncReport

console = Console(stderr=True)


def handle_exceptions(func: Callable) -> Callable:
    """Decorator to handle common exceptions in commands."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ShopCtlError as e:
            ctx = click.get_current_context(silent=True)
            debug = ctx.obj.get("debug", False) if ctx and ctx.obj else False
            console.print(f"[red]{escape(format_error_for_user(e, debug))}[/red]")
            if not debug and not isinstance(e, ConfigError):
                console.print("[dim]Use --debug for more details[/dim]")
            raise typer.Exit(1)
        except KeyboardInterrupt:
            console.print("\n[yellow]Operation cancelled by user[/yellow]")
            raise typer.Exit(130)

    return wrapper


def get_store(ctx: typer.Context) -> ShopifyStore:
    """Build the store accessors for the selected profile, once per run."""
    if ctx.obj.get("store") is None:
        profile = ctx.obj["config_manager"].resolve_profile(ctx.obj.get("profile_name"))
        if ctx.obj.get("debug"):
            console.print(f"[dim]Using profile: {profile.name} ({profile.host})[/dim]")
        client = ShopifyClient(profile=profile)
        ctx.obj["store"] = ShopifyStore(client, max_workers=ctx.obj["max_workers"])
    return ctx.obj["store"]


def get_registry(ctx: typer.Context) -> SyncRegistry:
    if ctx.obj.get("registry") is None:
        ctx.obj["registry"] = SyncRegistry(get_store(ctx))
    return ctx.obj["registry"]


def parse_filter_created(value: Optional[str]) -> Optional[datetime]:
    """Parse the ``--filter-created`` timestamp."""
    if not value:
        return None
    created_before = parse_timestamp(value)
    if created_before is None:
        raise typer.BadParameter(f"Not an ISO timestamp: {value}", param_hint="--filter-created")
    return created_before


def build_options(
    ctx: typer.Context,
    theme: Optional[str] = None,
    force: bool = False,
    dry_run: bool = False,
    created_before: Optional[datetime] = None,
) -> SyncOptions:
    return SyncOptions(
        output_dir=ctx.obj["output_dir"],
        theme=theme,
        force=force,
        dry_run=dry_run,
        created_before=created_before,
        max_workers=ctx.obj["max_workers"],
    )


def show_reports(ctx: typer.Context, reports: List[SyncReport], title: str) -> None:
    """Print one summary row per resource kind."""
    rows = [report.summary() for report in reports]
    if reports and reports[0].dry_run:
        title = f"{title} (dry run)"
    ctx.obj["output_formatter"].render(
        rows,
        format=ctx.obj.get("output_format"),
        columns=["kind", "saved", "created", "updated", "deleted", "skipped", "failed"],
        title=title,
    )


def with_spinner(description: str, func: Callable, *args, **kwargs):
    """Run ``func`` behind a transient spinner on stderr."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        transient=True,
        console=console,
    ) as progress:
        progress.add_task(description, total=None)
        return func(*args, **kwargs)
