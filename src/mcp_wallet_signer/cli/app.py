"""CLI for MCP Wallet Signer - let agents request wallet actions you approve in the browser."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

app = typer.Typer(
    name="mcp-wallet-signer",
    help="Bridge an agent's wallet requests to your browser wallet for approval.",
    no_args_is_help=True,
)
# stdout carries the MCP protocol when serving; keep all human output on stderr.
console = Console(stderr=True)

_config_path: Path | None = None
_verbose = False


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        console.print(f"mcp-wallet-signer {version('mcp-wallet-signer')}")
        raise typer.Exit()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


@app.callback()
def main(
    config: Path = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a YAML config file",
        envvar="MCP_WALLET_SIGNER_CONFIG",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
):
    """Bridge an agent's wallet requests to your browser wallet for approval."""
    global _config_path, _verbose
    _config_path = config
    _verbose = verbose
    _setup_logging(verbose)


def _load():
    """Load the effective configuration or exit with a readable error."""
    from mcp_wallet_signer.config import load_config

    try:
        return load_config(_config_path)
    except FileNotFoundError as e:
        console.print(f"[red]Config file not found:[/red] {e.filename}")
        raise typer.Exit(1)
    except (ValidationError, yaml.YAMLError) as e:
        console.print(Panel(str(e), title="[red]Invalid configuration[/red]"))
        raise typer.Exit(1)


# ------------------------------------------------------------------
# serve
# ------------------------------------------------------------------


@app.command()
def serve():
    """Run the MCP server over stdio (the HTTP bridge starts on first use)."""
    from mcp_wallet_signer.mcp_server import run_server

    config = _load()
    asyncio.run(run_server(config, log_level="debug" if _verbose else "warning"))


# ------------------------------------------------------------------
# bridge
# ------------------------------------------------------------------


@app.command()
def bridge(
    port: int = typer.Option(None, "--port", "-p", help="Port to serve on (defaults to config)"),
    host: str = typer.Option(None, "--host", help="Loopback host to bind to (defaults to config)"),
    test_endpoints: bool = typer.Option(
        False, "--test-endpoints", help="Expose /api/test/* to create requests over HTTP"
    ),
):
    """Run only the HTTP bridge, e.g. for browser end-to-end testing."""
    from mcp_wallet_signer.bridge.server import run_bridge
    from mcp_wallet_signer.config import ServerConfig
    from mcp_wallet_signer.pending.store import PendingStore

    config = _load()
    try:
        server = ServerConfig(
            host=host or config.server.host,
            port=config.server.port if port is None else port,
            web_dist_dir=config.server.web_dist_dir,
            enable_test_endpoints=test_endpoints or config.server.enable_test_endpoints,
        )
    except ValidationError as e:
        console.print(Panel(str(e), title="[red]Invalid bridge options[/red]"))
        raise typer.Exit(1)

    console.print(f"[bold green]Starting bridge at http://{server.host}:{server.port}[/bold green]")
    run_bridge(
        PendingStore(timeout_seconds=config.request_timeout_seconds),
        host=server.host,
        port=server.port,
        web_dist_dir=server.web_dist_dir,
        enable_test_endpoints=server.enable_test_endpoints,
        log_level="debug" if _verbose else "info",
    )


# ------------------------------------------------------------------
# chains
# ------------------------------------------------------------------


@app.command()
def chains():
    """List the built-in chains."""
    from mcp_wallet_signer.chains import CHAINS

    config = _load()
    table = Table(title="Supported Chains")
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Name")
    table.add_column("Symbol")
    table.add_column("RPC URL", style="dim")
    table.add_column("Explorer", style="dim")

    for chain_id, chain in CHAINS.items():
        name = chain.name
        if chain_id == config.default_chain_id:
            name += " [green](default)[/green]"
        table.add_row(
            str(chain_id),
            name,
            chain.native_symbol,
            config.rpc_urls.get(chain_id, chain.rpc_url),
            chain.explorer_url or "-",
        )
    console.print(table)


# ------------------------------------------------------------------
# config helpers
# ------------------------------------------------------------------


@app.command("show-config")
def show_config():
    """Print the effective configuration (file + environment overrides)."""
    config = _load()
    source = str(_config_path) if _config_path else "defaults"
    console.print(Panel(
        yaml.dump(config.model_dump(mode="python"), default_flow_style=False, sort_keys=False).rstrip(),
        title=f"Configuration ({source})",
    ))


@app.command("init-config")
def init_config(
    path: Path = typer.Argument(help="Where to write the config file"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
):
    """Write a default configuration file."""
    from mcp_wallet_signer.config import SignerConfig, save_config

    if path.exists() and not force:
        console.print(f"[yellow]{path} already exists.[/yellow] Use --force to overwrite.")
        raise typer.Exit(1)

    save_config(SignerConfig(), path)
    console.print(f"[green]Wrote default configuration to {path}[/green]")


if __name__ == "__main__":
    app()
