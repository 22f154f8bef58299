"""Configuration management commands for shopctl.

This module provides commands for managing store configuration profiles
including initialization, validation, and profile management.
"""

import os
from typing import Optional

import typer
from rich.console import Console
from rich.prompt import Confirm, Prompt
from rich.table import Table

from ..client import ShopifyClient
from ..config import (
    DEFAULT_API_VERSION,
    ENV_ACCESS_TOKEN,
    ENV_HOST,
    ENV_KEY,
    ENV_PASSWORD,
    ENV_PROFILE,
    ENV_STOREFRONT_TOKEN,
    Profile,
)
from ..exceptions import ConfigError

app = typer.Typer()
console = Console()


def check_connection(profile: Profile) -> int:
    """Fetch the theme list with a profile and return the theme count."""
    client = ShopifyClient(profile=profile)
    client.retry_manager.max_retries = 0
    return len((client.get_themes() or {}).get("themes", []))


@app.command()
def init(
    ctx: typer.Context,
    profile_name: str = typer.Option("default", "--profile", help="Profile name"),
    host: Optional[str] = typer.Option(None, "--host", help="Store domain, e.g. example.myshopify.com"),
    access_token: Optional[str] = typer.Option(None, "--access-token", help="Admin API access token"),
    key: Optional[str] = typer.Option(None, "--key", help="Private app API key"),
    password: Optional[str] = typer.Option(None, "--password", help="Private app password"),
    storefront_token: Optional[str] = typer.Option(None, "--storefront-token", help="Storefront API access token"),
    api_version: str = typer.Option(DEFAULT_API_VERSION, "--api-version", help="Admin API version"),
    interactive: bool = typer.Option(True, "--interactive/--no-interactive", help="Interactive setup"),
    force: bool = typer.Option(False, "--force", help="Overwrite existing profile"),
) -> None:
    """Initialize a new configuration profile.

    Examples:
        # Interactive setup
        shopctl config init

        # Non-interactive setup
        shopctl config init --no-interactive --host example.myshopify.com --access-token shpat_xxx

        # Create a named profile
        shopctl config init --profile staging --host staging.myshopify.com
    """
    config_manager = ctx.obj["config_manager"]

    try:
        existing = {p["name"] for p in config_manager.list_profiles()}
        if profile_name in existing:
            if not force:
                console.print(f"[red]Profile '{profile_name}' already exists. Use --force to overwrite.[/red]")
                raise typer.Exit(1)
            config_manager.delete_profile(profile_name)

        if interactive:
            console.print(f"[bold blue]Setting up profile: {profile_name}[/bold blue]")
            console.print()

            if not host:
                host = Prompt.ask("Store domain", default="your-store.myshopify.com")

            if not access_token and not (key and password):
                if Confirm.ask("Do you have an Admin API access token?", default=True):
                    access_token = Prompt.ask("Admin API access token", password=True, show_default=False)
                else:
                    key = Prompt.ask("Private app API key")
                    password = Prompt.ask("Private app password", password=True, show_default=False)

        if not host:
            console.print("[red]Store domain is required[/red]")
            raise typer.Exit(1)

        profile = Profile(
            name=profile_name,
            host=host,
            key=key,
            password=password,
            access_token=access_token,
            storefront_token=storefront_token,
            api_version=api_version,
        )

        console.print("\n[blue]Testing connection...[/blue]")
        try:
            count = check_connection(profile)
            console.print(f"[green]✓ Connection successful ({count} themes)[/green]")
        except Exception as e:
            console.print(f"[yellow]⚠ Connection test failed: {e}[/yellow]")
            if interactive and not Confirm.ask("Save profile anyway?", default=True):
                console.print("[yellow]Profile creation cancelled[/yellow]")
                raise typer.Exit(1)

        config_manager.create_profile(
            name=profile.name,
            host=profile.host,
            key=profile.key,
            password=profile.password,
            access_token=profile.access_token,
            storefront_token=profile.storefront_token,
            api_version=profile.api_version,
        )
        if config_manager.get_active_profile() == profile_name:
            console.print(f"[green]Profile '{profile_name}' saved and set as default![/green]")
        else:
            console.print(f"[green]Profile '{profile_name}' saved![/green]")

    except ValueError as e:
        console.print(f"[red]Invalid profile: {e}[/red]")
        raise typer.Exit(1)
    except ConfigError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def validate(
    ctx: typer.Context,
    profile_name: Optional[str] = typer.Option(None, "--profile", help="Profile to validate (default: all)"),
) -> None:
    """Check that profiles can reach their store.

    Examples:
        # Validate all profiles
        shopctl config validate

        # Validate one profile
        shopctl config validate --profile production
    """
    config_manager = ctx.obj["config_manager"]

    try:
        if profile_name:
            profiles = [config_manager.get_profile(profile_name)]
        else:
            profiles = [config_manager.get_profile(p["name"]) for p in config_manager.list_profiles()]
    except ConfigError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        raise typer.Exit(1)

    if not profiles:
        console.print("[yellow]No profiles found to validate[/yellow]")
        return

    failed = 0
    for profile in profiles:
        try:
            count = check_connection(profile.with_environment())
            console.print(f"  [green]✓ {profile.name}: {profile.host} ({count} themes)[/green]")
        except Exception as e:
            failed += 1
            console.print(f"  [red]✗ {profile.name}: {e}[/red]")

    console.print(f"\n[bold]Valid profiles: {len(profiles) - failed}/{len(profiles)}[/bold]")
    if failed:
        raise typer.Exit(1)


@app.command("list-profiles")
def list_profiles(ctx: typer.Context) -> None:
    """List all configuration profiles.

    Examples:
        # List profiles in JSON format
        shopctl --output json config list-profiles
    """
    config_manager = ctx.obj["config_manager"]
    formatter = ctx.obj["output_formatter"]

    profiles = config_manager.list_profiles()
    if not profiles:
        console.print("[yellow]No profiles configured. Run 'shopctl config init' to create one.[/yellow]")
        return

    if ctx.obj["output_format"] in ["json", "yaml"]:
        formatter.render(profiles, format=ctx.obj["output_format"])
        return

    table = Table(title="Configuration Profiles")
    table.add_column("Name", style="bold")
    table.add_column("Host", style="cyan")
    table.add_column("Version", style="dim")
    table.add_column("Auth", style="green")
    table.add_column("Default", style="yellow")

    for profile in profiles:
        table.add_row(
            profile["name"],
            profile["host"],
            profile["api_version"],
            "private app" if profile.get("key") else "access token",
            "✓" if profile["active"] else "",
        )

    console.print(table)


@app.command("set-default")
def set_default(
    ctx: typer.Context,
    profile_name: str = typer.Argument(..., help="Profile name to set as default"),
) -> None:
    """Set the default profile."""
    try:
        ctx.obj["config_manager"].set_active_profile(profile_name)
        console.print(f"[green]Profile '{profile_name}' set as default![/green]")
    except ConfigError as e:
        console.print(f"[red]Error setting default profile: {e}[/red]")
        raise typer.Exit(1)


@app.command("delete")
def delete_profile(
    ctx: typer.Context,
    profile_name: str = typer.Argument(..., help="Profile name to delete"),
    force: bool = typer.Option(False, "--force", help="Delete without confirmation"),
) -> None:
    """Delete a configuration profile.

    Examples:
        # Force delete without confirmation
        shopctl config delete old-profile --force
    """
    config_manager = ctx.obj["config_manager"]

    try:
        profile = config_manager.get_profile(profile_name)
        is_default = config_manager.get_active_profile() == profile_name

        if not force:
            console.print("[yellow]About to delete profile:[/yellow]")
            console.print(f"  Name: {profile.name}")
            console.print(f"  Host: {profile.host}")
            console.print(f"  Default: {'Yes' if is_default else 'No'}")

            if not typer.confirm(f"Are you sure you want to delete profile '{profile_name}'?"):
                console.print("[yellow]Delete cancelled[/yellow]")
                return

        config_manager.delete_profile(profile_name)
        console.print(f"[green]Profile '{profile_name}' deleted successfully![/green]")

        if is_default:
            console.print("[yellow]Note: You may want to set a new default profile[/yellow]")

    except ConfigError as e:
        console.print(f"[red]Error deleting profile: {e}[/red]")
        raise typer.Exit(1)


@app.command("show")
def show_config(ctx: typer.Context) -> None:
    """Show configuration file location and environment overrides."""
    config_manager = ctx.obj["config_manager"]
    formatter = ctx.obj["output_formatter"]

    config_file = config_manager.config_file
    env_vars = {
        ENV_PROFILE: os.getenv(ENV_PROFILE),
        ENV_HOST: os.getenv(ENV_HOST),
        ENV_KEY: "set" if os.getenv(ENV_KEY) else None,
        ENV_PASSWORD: "set" if os.getenv(ENV_PASSWORD) else None,
        ENV_ACCESS_TOKEN: "set" if os.getenv(ENV_ACCESS_TOKEN) else None,
        ENV_STOREFRONT_TOKEN: "set" if os.getenv(ENV_STOREFRONT_TOKEN) else None,
    }

    if ctx.obj["output_format"] in ["json", "yaml"]:
        formatter.render({
            "config_file": str(config_file),
            "config_exists": config_file.exists(),
            "active_profile": config_manager.get_active_profile(),
            "environment_variables": env_vars,
        }, format=ctx.obj["output_format"])
        return

    table = Table(title="Configuration Status")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="bold")

    table.add_row("Config File", str(config_file))
    table.add_row("Exists", "✓ Yes" if config_file.exists() else "✗ No")
    table.add_row("Active Profile", config_manager.get_active_profile() or "[dim]none[/dim]")
    table.add_row("", "")
    table.add_row("[bold]Environment Variables[/bold]", "")
    for var, value in env_vars.items():
        table.add_row(var, value or "[dim]not set[/dim]")

    console.print(table)
