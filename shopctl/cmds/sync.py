"""Store sync commands for shopctl.

This module provides the top-level commands that list, pull and push store
resources, publish themes, rebuild history into git and live-sync a
development theme.
"""

import getpass
import signal
import socket
import threading
from typing import List, Optional

import typer
from rich.console import Console

from ..exceptions import ThemeOperationError
from ..sync import LiveSyncWatcher, ResourceKind, get_change_sets, raise_for_failures, replay
from ..utils.git import GitRepo
from .common import (
    build_options,
    get_registry,
    get_store,
    handle_exceptions,
    parse_filter_created,
    show_reports,
    with_spinner,
)

console = Console()

KINDS_HELP = "Resource kinds (assets, menus, pages, blogs, redirects, scripts, products); all when omitted"


def _kind_values(kinds: Optional[List[ResourceKind]]) -> List[str]:
    return [kind.value for kind in kinds or []]


@handle_exceptions
def list_resources(
    ctx: typer.Context,
    kinds: Optional[List[ResourceKind]] = typer.Argument(None, help=KINDS_HELP, show_default=False),
    theme: Optional[str] = typer.Option(None, "--theme", help="Theme to list assets from (default: published)"),
) -> None:
    """List themes, or the keys of the given resource kinds.

    Examples:
        # List themes, marking the published one
        shopctl list

        # List the assets of a theme
        shopctl list assets --theme dawn
    """
    store = get_store(ctx)
    if not kinds and not theme:
        for item in store.list_themes():
            console.print(f"{item.handle or item.name}{' (ACTIVE)' if item.is_main else ''}", markup=False)
        return

    registry = get_registry(ctx)
    options = build_options(ctx, theme=theme)
    for keys in registry.list_keys(_kind_values(kinds), options).values():
        for key in keys:
            console.print(key, markup=False, highlight=False)


@handle_exceptions
def pull(
    ctx: typer.Context,
    kinds: Optional[List[ResourceKind]] = typer.Argument(None, help=KINDS_HELP, show_default=False),
    force: bool = typer.Option(False, "--force", help="Download every file, even unchanged ones"),
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="Show what would change without writing files"),
    theme: Optional[str] = typer.Option(None, "--theme", help="Theme to pull assets from (default: published)"),
    filter_created: Optional[str] = typer.Option(
        None,
        "--filter-created",
        help="Only pull the state present at this ISO timestamp",
    ),
) -> None:
    """Pull remote store changes into the output directory.

    Examples:
        # Pull everything from the published theme
        shopctl pull

        # Pull pages and blogs without writing anything
        shopctl pull pages blogs --dry-run

        # Rebuild the theme as it was on a given day
        shopctl pull assets --filter-created 2021-03-01T00:00:00Z
    """
    options = build_options(ctx, theme, force, dry_run, parse_filter_created(filter_created))
    reports = with_spinner("Pulling...", get_registry(ctx).pull, _kind_values(kinds), options)
    show_reports(ctx, reports, "Pull")
    raise_for_failures(reports)


@handle_exceptions
def push(
    ctx: typer.Context,
    kinds: Optional[List[ResourceKind]] = typer.Argument(None, help=KINDS_HELP, show_default=False),
    force: bool = typer.Option(False, "--force", help="Upload every file, even unchanged ones"),
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="Show what would change without calling the API"),
    theme: Optional[str] = typer.Option(None, "--theme", help="Theme to push assets to; created if missing"),
) -> None:
    """Push local changes up to the store.

    Examples:
        # Push everything to the published theme
        shopctl push

        # Push assets to a new unpublished theme
        shopctl push assets --theme "Summer sale"
    """
    options = build_options(ctx, theme, force, dry_run)
    reports = with_spinner("Pushing...", get_registry(ctx).push, _kind_values(kinds), options)
    show_reports(ctx, reports, "Push")
    raise_for_failures(reports)


@handle_exceptions
def publish(
    ctx: typer.Context,
    theme: str = typer.Option(..., "--theme", help="Theme to publish"),
) -> None:
    """Publish (make active) a theme."""
    published = get_store(ctx).publish_theme(theme)
    console.print(f"[green]Published theme '{published.name}'[/green]")


@handle_exceptions
def init(
    ctx: typer.Context,
    theme: str = typer.Argument(..., help="Theme whose history to rebuild"),
    kinds: Optional[List[ResourceKind]] = typer.Argument(None, help=KINDS_HELP, show_default=False),
    simple: bool = typer.Option(False, "--simple", help="Print one line per change set"),
    details: bool = typer.Option(False, "--details", help="Print every change in every change set"),
    git: bool = typer.Option(True, "--git/--no-git", help="Commit each change set to the output git repository"),
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="Only calculate the change sets"),
) -> None:
    """Rebuild a theme's change history in a local git repository.

    The output directory must already be a git work tree. Each change set
    is pulled and committed with its original timestamp, then the current
    state is pulled and committed.

    Examples:
        # Show the reconstructed history
        shopctl init dawn --simple --no-git

        # Replay the history into the current repository
        shopctl init dawn
    """
    store = get_store(ctx)
    kind_values = _kind_values(kinds)

    console.print("Initializing Local Environment...")
    target = store.get_theme(theme)
    if target is None:
        raise ThemeOperationError(f'Theme "{theme}" not found', theme_name=theme, operation="init")

    change_set = get_change_sets(store, target, kind_values)
    console.print(f"Calculating Change Sets: {len(change_set)}")
    if details:
        ctx.obj["output_formatter"].render(change_set.to_dict(), format=ctx.obj.get("output_format") or "yaml")
    elif simple:
        for bucket in change_set:
            console.print(f"{bucket.key} ({len(bucket.changes)})")

    if not git or dry_run:
        return

    repo = GitRepo(ctx.obj["output_dir"])
    if repo.current_branch() is None:
        console.print(f"[yellow]{ctx.obj['output_dir']} is not a git work tree; skipping history replay[/yellow]")
        return

    reports = replay(get_registry(ctx), change_set, target, build_options(ctx), repo, kind_values)
    raise_for_failures(reports)
    console.print(f"[green]Committed {len(change_set) + 1} snapshots[/green]")


def _dev_theme_name(ctx: typer.Context, git: bool) -> str:
    name = f"[DEV] {getpass.getuser()}@{socket.gethostname()}"
    if git:
        branch = GitRepo(ctx.obj["output_dir"]).current_branch()
        if branch:
            name = f"{name}/{branch}"
    return name


@handle_exceptions
def serve(
    ctx: typer.Context,
    theme: Optional[str] = typer.Option(None, "--theme", help="Development theme name"),
    git: bool = typer.Option(True, "--git/--no-git", help="Include the git branch in the theme name"),
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="Log uploads without calling the API"),
) -> None:
    """Live-sync local theme files to a development theme.

    The theme is created if needed, filled with a full push, and kept in
    sync while files change. A theme created here is deleted on exit.

    Examples:
        # Develop on "[DEV] user@host/branch"
        shopctl serve

        # Develop on a named theme
        shopctl serve --theme "Summer sale"
    """
    store = get_store(ctx)
    name = theme or _dev_theme_name(ctx, git)

    console.print("Initializing Local Environment:")
    existed = store.get_theme(name) is not None
    if not existed:
        console.print(f'... creating "{name}"', markup=False)
    dev_theme = store.create_theme(name)
    if dev_theme.is_main:
        raise ThemeOperationError(
            "Developing on a published theme is not supported",
            theme_name=name,
            operation="serve",
        )

    options = build_options(ctx, dry_run=dry_run)
    watcher = LiveSyncWatcher(get_registry(ctx).assets, dev_theme, options)

    stop = threading.Event()
    previous = {sig: signal.signal(sig, lambda *_: stop.set()) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        console.print(f"... watching {ctx.obj['output_dir']}")
        report = watcher.start()
        if report.failures:
            console.print(f"[yellow]{len(report.failures)} file(s) failed to upload[/yellow]")
        console.print(f"... preview: https://{store.host}/?preview_theme_id={dev_theme.id}")
        console.print("Press ^C to exit.")
        while not stop.wait(0.5):
            pass
    finally:
        watcher.stop()
        for sig, handler in previous.items():
            signal.signal(sig, handler)
        if not existed:
            console.print(f'... cleanup "{name}"', markup=False)
            store.delete_theme(dev_theme)
    console.print("Done.")
