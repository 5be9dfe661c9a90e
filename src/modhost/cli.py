"""
ModHost CLI - Command-line interface for the module lifecycle host.

Usage:
    modhost --base-url http://localhost:8080 configs
    modhost --base-url http://localhost:8080 remotes
    modhost --base-url http://localhost:8080 boot --remote billing=./remotes/billing
"""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Dict, Optional, Tuple

import click
import httpx
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .config import ConfigLoader
from .errors import RemotesError
from .lifecycle import HostContext, PHASE_ORDER
from .manager import DEFAULT_ENTRY_PATH, ModuleLifecycle
from .remotes import ImportRemoteLoader, fetch_remotes

_console: Optional[Console] = None


def get_console() -> Console:
    """Get or create the console."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def build_client(base_url: str) -> httpx.AsyncClient:
    """Create the HTTP client used for config and remotes endpoints."""
    return httpx.AsyncClient(base_url=base_url, timeout=30.0)


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def parse_remote_options(values: Tuple[str, ...]) -> Dict[str, str]:
    remotes = {}
    for value in values:
        name, sep, entry = value.partition("=")
        if not name or not sep or not entry:
            raise click.BadParameter(f"expected NAME=ENTRY, got {value!r}", param_hint="--remote")
        remotes[name] = entry
    return remotes


def read_remotes_file(path: Path) -> Dict[str, str]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise click.BadParameter(f"cannot read {path}: {e}", param_hint="--remotes-file")
    if not isinstance(data, dict):
        raise click.BadParameter(f"{path} must map remote names to entries", param_hint="--remotes-file")
    return {str(name): str(entry) for name, entry in data.items()}


@click.group()
@click.option("--base-url", "-u", envvar="MODHOST_BASE_URL", default="http://localhost:8080",
              show_default=True, help="Base URL serving config and remotes manifests")
@click.option("--config-path", envvar="MODHOST_CONFIG_PATH", default="/config",
              show_default=True, help="Path of the config directory on the server")
@click.option("--log-level", envvar="MODHOST_LOG_LEVEL", default="warning",
              type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
              show_default=True)
@click.pass_context
def main(ctx, base_url, config_path, log_level):
    """ModHost - Remote module lifecycle host."""
    setup_logging(log_level)
    ctx.ensure_object(dict)
    ctx.obj["base_url"] = base_url
    ctx.obj["config_path"] = config_path
    ctx.obj["console"] = get_console()


@main.command()
@click.pass_context
def configs(ctx):
    """List enabled module configurations."""
    console = ctx.obj["console"]

    async def _configs():
        async with build_client(ctx.obj["base_url"]) as client:
            return await ConfigLoader(client, ctx.obj["config_path"]).load_module_configs()

    module_configs = asyncio.run(_configs())

    if not module_configs:
        console.print("[yellow]No enabled modules found[/yellow]")
        return

    table = Table(title="Module Configurations")
    table.add_column("ID", style="cyan")
    table.add_column("Remote", style="green")
    table.add_column("Settings")

    for config in module_configs:
        table.add_row(config.id, config.remote_name, json.dumps(dict(config.extra)))

    console.print(table)


@main.command()
@click.option("--remotes-path", default="/remotes.json", show_default=True,
              help="Path of the remotes manifest on the server")
@click.pass_context
def remotes(ctx, remotes_path):
    """List remotes published by the server."""
    console = ctx.obj["console"]

    async def _remotes():
        async with build_client(ctx.obj["base_url"]) as client:
            return await fetch_remotes(client, remotes_path)

    try:
        manifest = asyncio.run(_remotes())
    except RemotesError as e:
        console.print(f"[red]✗ {e}[/red]")
        sys.exit(1)

    table = Table(title="Remotes")
    table.add_column("Name", style="cyan")
    table.add_column("Entry", style="green")

    for name, entry in sorted(manifest.items()):
        table.add_row(name, entry)

    console.print(table)


@main.command()
@click.option("--remote", "-r", "remote_opts", multiple=True, metavar="NAME=ENTRY",
              help="Register a remote locally (repeatable)")
@click.option("--remotes-file", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="Local JSON file mapping remote names to entries")
@click.option("--fetch-remotes/--no-fetch-remotes", "fetch_server_remotes", default=False,
              help="Also register the server's remotes manifest")
@click.option("--remotes-path", default="/remotes.json", show_default=True)
@click.option("--entry-path", default=DEFAULT_ENTRY_PATH, show_default=True,
              help="Module path loaded from every remote")
@click.option("--hook-timeout", type=float, envvar="MODHOST_HOOK_TIMEOUT",
              help="Seconds before a hook call is reported as failed")
@click.pass_context
def boot(ctx, remote_opts, remotes_file, fetch_server_remotes, remotes_path, entry_path, hook_timeout):
    """Load all enabled modules and run every lifecycle phase."""
    console = ctx.obj["console"]

    remote_loader = ImportRemoteLoader()
    if remotes_file:
        remote_loader.register_remotes(read_remotes_file(remotes_file))
    remote_loader.register_remotes(parse_remote_options(remote_opts))

    async def _boot():
        async with build_client(ctx.obj["base_url"]) as client:
            if fetch_server_remotes:
                remote_loader.register_remotes(await fetch_remotes(client, remotes_path))

            lifecycle = ModuleLifecycle(
                ConfigLoader(client, ctx.obj["config_path"]),
                remote_loader,
                entry_path=entry_path,
                hook_timeout=hook_timeout,
            )
            report = await lifecycle.initialize(HostContext())
            return lifecycle, report

    try:
        lifecycle, report = asyncio.run(_boot())
    except RemotesError as e:
        console.print(f"[red]✗ {e}[/red]")
        sys.exit(1)

    if not report:
        console.print("[yellow]No modules were loaded, lifecycle skipped[/yellow]")
        return

    table = Table(title="Module Lifecycle")
    table.add_column("Module", style="cyan")
    for phase in PHASE_ORDER:
        table.add_column(phase.value)

    failures = 0
    for module_id in lifecycle.registered_modules:
        cells = []
        for phase in PHASE_ORDER:
            result = report[phase][module_id]
            if result.success:
                cells.append("[green]✓[/green]")
            else:
                failures += 1
                cells.append(f"[red]✗ {result.error}[/red]")
        table.add_row(module_id, *cells)

    console.print(table)
    console.print(Panel.fit(
        f"Modules: [cyan]{len(lifecycle.registered_modules)}[/cyan]  "
        f"Failed hooks: [red]{failures}[/red]  "
        f"Last phase: [green]{lifecycle.current_phase.value}[/green]",
        title="ModHost",
        border_style="cyan"
    ))


if __name__ == "__main__":
    main()
