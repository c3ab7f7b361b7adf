"""lsr cache commands: inspect and clear the translation cache."""

from __future__ import annotations

import asyncio
from typing import Annotated

import typer
from rich.console import Console

from lsr.cache.store import CacheAdapter, DiskBlobCache
from lsr.cli.utils import format_size
from lsr.core.config import load_config

console = Console()

cache_app = typer.Typer(help="Inspect or clear the translation cache.", no_args_is_help=True)


def _adapter() -> CacheAdapter:
    config = load_config()
    return CacheAdapter(DiskBlobCache(config.cache_dir))


@cache_app.command("stats")
def stats() -> None:
    """Show the number of cached entries and their total size."""
    result = asyncio.run(_adapter().stats())
    console.print(f"[bold]Entries:[/bold] {result.count}")
    console.print(f"[bold]Total size:[/bold] {format_size(result.total_bytes)}")


@cache_app.command("clear")
def clear(
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip the confirmation prompt."),
    ] = False,
) -> None:
    """Delete every cached translation."""
    if not yes and not typer.confirm("Clear all cached translations?"):
        raise typer.Exit()
    asyncio.run(_adapter().clear())
    console.print("[green]Cache cleared.[/green]")
