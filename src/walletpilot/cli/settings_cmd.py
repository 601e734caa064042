"""CLI commands for inspecting and validating walletpilot settings."""

from __future__ import annotations

import json

import typer
from rich.console import Console

settings_app = typer.Typer(help="Inspect and validate walletpilot configuration.")
console = Console()


@settings_app.command("show")
def show_settings() -> None:
    """Display the currently resolved settings (secrets masked)."""
    from walletpilot.settings import get_settings

    settings = get_settings()
    console.print_json(json.dumps(settings.model_dump(mode="json"), indent=2, default=str))


@settings_app.command("validate")
def validate_settings() -> None:
    """Validate settings and report any issues."""
    from walletpilot.settings import get_settings

    try:
        settings = get_settings()
    except Exception as e:
        console.print(f"[red]✗[/red] Settings validation failed: {e}")
        raise typer.Exit(code=1)

    console.print("[green]✓[/green] Settings are valid.")
    console.print(f"  Environment:  {settings.env}")
    console.print(f"  API:          {settings.api.host}:{settings.api.port}")
    console.print(f"  CDP port:     {settings.browser.cdp_port}")
    console.print(f"  Profile dir:  {settings.user_data_dir}")
    console.print(f"  Extension:    {settings.extension.path or '(none)'}")
    if settings.extension.path and not settings.extension.password:
        console.print("[yellow]![/yellow] Extension configured without a password; the wallet will not be unlocked.")
