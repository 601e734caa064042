"""CLI commands that add or switch networks on a running server."""

from __future__ import annotations

from typing import Any, Optional

import httpx
import typer
from rich.console import Console

network_app = typer.Typer(help="Manage custom networks through a running walletpilot server.")
console = Console()

DEFAULT_SERVER = "http://127.0.0.1:9222"
# add-network waits on the extension's RPC validation; allow for it.
REQUEST_TIMEOUT = 120.0


def _post(server: str, path: str, payload: dict[str, Any]) -> dict[str, Any]:
    try:
        resp = httpx.post(f"{server.rstrip('/')}{path}", json=payload, timeout=REQUEST_TIMEOUT)
    except httpx.HTTPError as e:
        console.print(f"[red]✗[/red] Cannot reach {server}: {e}")
        raise typer.Exit(code=1)
    body = resp.json()
    if resp.status_code != 200 or not body.get("success"):
        console.print(f"[red]✗[/red] {body.get('error', resp.text)}")
        raise typer.Exit(code=1)
    return body


def _print_steps(body: dict[str, Any]) -> None:
    for step in body.get("steps", []):
        mark = {"succeeded": "[green]✓[/green]", "skipped": "[dim]-[/dim]"}.get(step["status"], "[red]✗[/red]")
        reason = f" ({step['reason']})" if step.get("reason") else ""
        console.print(f"  {mark} {step['step']}{reason}")


@network_app.command("add")
def add_network(
    name: str = typer.Option(..., "--name", help="Network display name."),
    rpc: str = typer.Option(..., "--rpc", help="JSON-RPC URL."),
    chain_id: int = typer.Option(..., "--chain-id", help="Numeric chain id."),
    symbol: str = typer.Option("ETH", "--symbol", help="Native currency symbol."),
    explorer: Optional[str] = typer.Option(None, "--explorer", help="Block explorer URL."),
    switch: bool = typer.Option(False, "--switch", help="Switch to the network after adding it."),
    server: str = typer.Option(DEFAULT_SERVER, "--server", "-s", help="Base URL of a running server."),
) -> None:
    """Add a custom network to the wallet."""
    payload: dict[str, Any] = {"name": name, "rpcUrl": rpc, "chainId": chain_id, "symbol": symbol}
    if explorer:
        payload["blockExplorerUrl"] = explorer

    console.print(f"Adding network [bold]{name}[/bold] (chain {chain_id})...")
    _print_steps(_post(server, "/wallet/add-network", payload))
    console.print(f"[green]✓[/green] Network {name} added")

    if switch:
        _print_steps(_post(server, "/wallet/switch-network", {"networkName": name}))
        console.print(f"[green]✓[/green] Switched to {name}")


@network_app.command("switch")
def switch_network(
    name: str = typer.Argument(..., help="Network display name."),
    server: str = typer.Option(DEFAULT_SERVER, "--server", "-s", help="Base URL of a running server."),
) -> None:
    """Switch the wallet to an already-added network."""
    _print_steps(_post(server, "/wallet/switch-network", {"networkName": name}))
    console.print(f"[green]✓[/green] Switched to {name}")
