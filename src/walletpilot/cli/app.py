"""Unified CLI entry point for walletpilot.

Config precedence: settings.default.toml -> settings.local.toml -> env vars (WALLETPILOT_* with double underscores) -> CLI flags.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx
import typer
from rich.console import Console
from rich.table import Table

from walletpilot import __version__
from walletpilot.cli.network_cmd import DEFAULT_SERVER, network_app
from walletpilot.cli.settings_cmd import settings_app

APP_HELP = (
    "walletpilot — drive a browser wallet extension from an HTTP control API. "
    "Config precedence: settings.default.toml -> settings.local.toml -> env vars (WALLETPILOT_* with __) -> CLI flags."
)

app = typer.Typer(add_completion=True, help=APP_HELP)
console = Console()
logger = logging.getLogger(__name__)

app.add_typer(settings_app, name="settings")
app.add_typer(network_app, name="network")


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context, version: bool = typer.Option(False, "--version", help="Show version and exit.")) -> None:
    """Show help when no subcommand is provided."""
    if version:
        typer.echo(f"walletpilot {__version__}")
        raise typer.Exit()
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@app.command("serve")
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default from settings)."),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="API port (default from settings)."),
    headless: Optional[bool] = typer.Option(
        None, "--headless/--headed", help="Browser mode; ignored when an extension is loaded."
    ),
) -> None:
    """Launch the browser, bootstrap the wallet and serve the control API."""
    import uvicorn

    from walletpilot.api.app import create_app
    from walletpilot.logging_setup import configure_logging
    from walletpilot.settings import get_settings

    try:
        settings = get_settings()
    except Exception as e:
        console.print(f"[red]✗[/red] Invalid settings: {e}")
        raise typer.Exit(code=1)

    if port is not None:
        settings.api.port = port
    if host is not None:
        settings.api.host = host
    if headless is not None:
        settings.browser.headless = headless
    if settings.api.port == settings.browser.cdp_port:
        console.print("[red]✗[/red] API port and CDP port must be different")
        raise typer.Exit(code=1)

    configure_logging(settings.log_level, settings.log_format)
    console.print(f"[bold]walletpilot[/bold] {__version__} on http://{settings.api.host}:{settings.api.port}")

    try:
        uvicorn.run(create_app(), host=settings.api.host, port=settings.api.port, log_config=None)
    except Exception:
        logger.exception("Server crashed")
        raise typer.Exit(code=1)


@app.command("status")
def status(
    server: str = typer.Option(DEFAULT_SERVER, "--server", "-s", help="Base URL of a running server."),
) -> None:
    """Show server and wallet status of a running server."""
    try:
        with httpx.Client(base_url=server, timeout=10.0) as client:
            info = client.get("/").json()
            wallet = client.get("/wallet/status").json()
            pages = client.get("/pages").json()
    except httpx.HTTPError as e:
        console.print(f"[red]✗[/red] Cannot reach {server}: {e}")
        raise typer.Exit(code=1)

    table = Table(title="walletpilot")
    table.add_column("Field")
    table.add_column("Value")
    table.add_row("CDP endpoint", info.get("wsEndpoint", ""))
    table.add_row("Extension id", wallet.get("extensionId") or "—")
    table.add_row("Wallet state", str(wallet.get("state", "")))
    table.add_row("Locked", str(wallet.get("isLocked")))
    table.add_row("Initialized", str(wallet.get("walletInitialized")))
    table.add_row("Pages", ", ".join(pages.get("names", [])) or "—")
    console.print(table)


if __name__ == "__main__":
    app()
