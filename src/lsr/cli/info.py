"""lsr info command: show a document's fingerprint and cache coverage."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from lsr.core.config import load_config
from lsr.core.errors import InvalidDocumentError

console = Console()

PREVIEW_CHARS = 60


async def _cached_pages(cache_dir: Path, fingerprint: str, page_count: int) -> list[int]:
    from lsr.cache.store import CacheAdapter, DiskBlobCache
    from lsr.utils.cache import page_cache_key

    cache = CacheAdapter(DiskBlobCache(cache_dir))
    found = []
    for page in range(1, page_count + 1):
        if await cache.get(page_cache_key(fingerprint, page)):
            found.append(page)
    return found


async def _page_blocks(document, cache_dir: Path, page_number: int):
    """Text blocks of one page together with any cached per-block translations."""
    from lsr.cache.store import CacheAdapter, DiskBlobCache

    blocks = await document.extract_page_blocks(page_number)
    cache = CacheAdapter(DiskBlobCache(cache_dir))
    translations = await cache.get_blocks([b.block_id for b in blocks])
    return blocks, translations


def _preview(text: str) -> str:
    text = " ".join(text.split())
    return text if len(text) <= PREVIEW_CHARS else text[: PREVIEW_CHARS - 3] + "..."


def info(
    pdf_file: Annotated[
        Path,
        typer.Argument(help="Path to a PDF file."),
    ],
    page: Annotated[
        Optional[int],
        typer.Option("--page", "-p", help="Also list the text blocks of this page."),
    ] = None,
) -> None:
    """Show page count, content fingerprint and cached translations for a PDF."""
    from lsr.document.pdf import PdfDocument

    if not pdf_file.is_file():
        console.print(f"[red]File not found:[/red] {pdf_file}")
        raise typer.Exit(1)

    config = load_config()
    document = PdfDocument()
    try:
        doc_info = document.load_path(pdf_file)
    except InvalidDocumentError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    try:
        blocks, translations = [], {}
        if page is not None:
            if not 1 <= page <= doc_info.page_count:
                console.print(f"[red]Page {page} out of range 1-{doc_info.page_count}[/red]")
                raise typer.Exit(1)
            blocks, translations = asyncio.run(_page_blocks(document, config.cache_dir, page))
    finally:
        document.close()

    cached = asyncio.run(_cached_pages(config.cache_dir, doc_info.fingerprint, doc_info.page_count))

    table = Table(title=doc_info.name)
    table.add_column("Field", style="bold cyan")
    table.add_column("Value")
    table.add_row("Pages", str(doc_info.page_count))
    table.add_row("Fingerprint", doc_info.fingerprint)
    table.add_row("Cached pages", f"{len(cached)}/{doc_info.page_count}")
    console.print(table)

    if page is None:
        return
    if not blocks:
        console.print(f"[yellow]No text blocks on page {page}.[/yellow]")
        return

    block_table = Table(title=f"Page {page} blocks")
    block_table.add_column("Block", style="bold cyan")
    block_table.add_column("Kind")
    block_table.add_column("Text")
    block_table.add_column("Cached translation")
    for block in blocks:
        cached_block = translations.get(block.block_id)
        block_table.add_row(
            block.block_id,
            block.kind,
            _preview(block.text),
            _preview(cached_block.translated) if cached_block else "[dim]-[/dim]",
        )
    console.print(block_table)
