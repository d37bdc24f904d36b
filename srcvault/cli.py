"""CLI commands for srcvault."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import click
import httpx
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from srcvault.archive import PersistentArchiveCache
from srcvault.exceptions import SrcVaultError
from srcvault.logging_config import setup_logging
from srcvault.models.config import ServerConfig
from srcvault.service import SrcVault

console = Console()


def _format_bytes(size: int) -> str:
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024:
            return f"{size:.1f} {unit}" if unit != "B" else f"{size} B"
        size /= 1024
    return f"{size:.1f} TB"


def load_config(ctx: click.Context) -> ServerConfig:
    """Load the configuration, exiting with status 1 if it is incomplete."""
    config_file: Path | None = ctx.obj["config_file"]
    try:
        return ServerConfig.load(config_file)
    except SrcVaultError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)


def get_vault(ctx: click.Context) -> SrcVault:
    config = load_config(ctx)
    setup_logging(config.log_level)
    return SrcVault(config)


@click.group()
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML config file (environment variables take precedence)",
)
@click.pass_context
def main(ctx: click.Context, config_file: Path | None) -> None:
    """srcvault - serve archives of a git working copy."""
    load_dotenv()
    ctx.ensure_object(dict)
    ctx.obj["config_file"] = config_file


@main.command()
@click.option("--host", default=None, help="Host to bind (default: HOST or 127.0.0.1)")
@click.option("--port", "-p", type=int, default=None, help="Port to bind (default: PORT or 3000)")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Start the HTTP server."""
    import uvicorn

    from srcvault.api import create_app

    config = load_config(ctx)
    setup_logging(config.log_level)

    host = host or config.host
    port = port if port is not None else config.port
    app = create_app(config)

    console.print(f"[green]Server running on http://{host}:{port}[/green]")
    uvicorn.run(app, host=host, port=port, log_config=None)


@main.command()
@click.pass_context
def build(ctx: click.Context) -> None:
    """Sync the working copy and build (or reuse) the archive for its revision."""
    vault = get_vault(ctx)
    if not isinstance(vault.cache, PersistentArchiveCache):
        console.print("[yellow]Transient policy keeps no archives.[/yellow]")
        return

    with console.status("Syncing and archiving..."):
        try:
            archive = asyncio.run(vault.prepare_archive())
        except SrcVaultError as e:
            console.print(f"[red]{e}[/red]")
            sys.exit(1)

    console.print(f"[green]Revision:[/green] {archive.revision.full}")
    console.print(f"[green]Archive:[/green]  {archive.path}")
    console.print(f"[green]Size:[/green]     {_format_bytes(archive.size)}")


@main.command()
@click.pass_context
def archives(ctx: click.Context) -> None:
    """List cached archives."""
    vault = get_vault(ctx)
    if not isinstance(vault.cache, PersistentArchiveCache):
        console.print("[yellow]Transient policy keeps no archives.[/yellow]")
        return

    paths = vault.cache.list_archives()
    if not paths:
        console.print("[yellow]No cached archives.[/yellow]")
        return

    table = Table(title=f"Archives in {vault.cache.archive_dir}")
    table.add_column("File", style="cyan")
    table.add_column("Size", justify="right", style="green")
    for path in paths:
        table.add_row(path.name, _format_bytes(path.stat().st_size))
    console.print(table)


@main.command()
@click.option("--all", "prune_all", is_flag=True, help="Also delete the current revision's archive")
@click.pass_context
def prune(ctx: click.Context, prune_all: bool) -> None:
    """Delete cached archives of revisions other than the current one."""
    vault = get_vault(ctx)
    if not isinstance(vault.cache, PersistentArchiveCache):
        console.print("[yellow]Transient policy keeps no archives.[/yellow]")
        return

    keep = None
    if not prune_all:
        try:
            keep = asyncio.run(vault.sync_client.resolve_revision())
        except SrcVaultError as e:
            console.print(f"[red]{e}[/red]")
            sys.exit(1)

    removed = vault.cache.prune(keep)
    console.print(f"[green]Removed {len(removed)} archive(s)[/green]")


@main.command()
@click.argument("url")
@click.option("--token", "-t", envvar="TOKEN", required=True, help="Auth token (default: TOKEN)")
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Output file (default: name sent by the server)")
@click.option("--timeout", default=300.0, help="Request timeout in seconds")
def download(url: str, token: str, output: Path | None, timeout: float) -> None:
    """Download the archive from a running srcvault at URL."""
    endpoint = url.rstrip("/") + "/src"
    try:
        with httpx.stream("GET", endpoint, headers={"auth": token}, timeout=timeout) as response:
            if response.status_code != 200:
                console.print(f"[red]{response.status_code}: {response.read().decode()}[/red]")
                sys.exit(1)
            target = output or Path(_attachment_name(response) or "src.tar.gz")
            with open(target, "wb") as f:
                for chunk in response.iter_bytes():
                    f.write(chunk)
    except httpx.HTTPError as e:
        console.print(f"[red]Request failed: {e}[/red]")
        sys.exit(1)

    console.print(f"[green]Saved {target} ({_format_bytes(target.stat().st_size)})[/green]")


def _attachment_name(response: httpx.Response) -> str | None:
    disposition = response.headers.get("content-disposition", "")
    for part in disposition.split(";"):
        key, _, value = part.strip().partition("=")
        if key == "filename" and value:
            return Path(value.strip('"')).name
    return None


if __name__ == "__main__":
    main()
