"""lsr translate command: translate PDF pages into a markdown file."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn

from lsr.core.config import LSRConfig, load_config
from lsr.core.errors import LSRError
from lsr.core.events import PageEvent
from lsr.core.models import DocumentInfo, Done, Error

console = Console()


def render_markdown(info: DocumentInfo, pages: list[int], states: dict[int, object]) -> str:
    """One "## Page n" section per requested page; failed pages keep their error message."""
    parts = [f"# {info.name or info.fingerprint}\n"]
    for page in pages:
        state = states.get(page)
        parts.append(f"## Page {page}\n")
        if isinstance(state, Done):
            parts.append(state.content.strip() + "\n")
        elif isinstance(state, Error):
            parts.append(f"> Translation failed: {state.message}\n")
        else:
            parts.append("> Not translated.\n")
    return "\n".join(parts)


async def translate_document(
    pdf_file: Path,
    pages_option: str | None,
    config: LSRConfig,
) -> tuple[DocumentInfo, list[int], dict[int, object]]:
    """Open a PDF and run the requested pages through the translation scheduler."""
    from lsr.cache.store import CacheAdapter, DiskBlobCache
    from lsr.cli.utils import parse_pages
    from lsr.core.session import ReaderSession
    from lsr.document.pdf import PdfDocument
    from lsr.llm.translator import LLMTranslator
    from lsr.translation.scheduler import TranslationScheduler

    documents = PdfDocument()
    scheduler = TranslationScheduler(
        cache=CacheAdapter(DiskBlobCache(config.cache_dir)),
        documents=documents,
        backend=LLMTranslator(config.llm),
        config=config.scheduler,
    )
    session = ReaderSession(
        documents,
        scheduler,
        debounce_seconds=config.sync.debounce_seconds,
        prefetch_on_open=False,
    )

    info = session.open_document(pdf_file.read_bytes(), name=pdf_file.name)
    pages = parse_pages(pages_option, info.page_count)
    console.print(f"[bold]Document:[/bold] {info.name} ({info.page_count} pages, {info.fingerprint})")

    with Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total} pages"),
        console=console,
    ) as progress:
        task = progress.add_task("Translating pages", total=len(pages))
        wanted = set(pages)

        def _on_event(event: PageEvent) -> None:
            if event.page_number in wanted and event.state.status in ("done", "error"):
                progress.advance(task)

        unsubscribe = scheduler.subscribe(_on_event)
        try:
            await scheduler.request_pages(pages)
            await session.wait_idle()
        finally:
            unsubscribe()
            session.close()

    states = {p: scheduler.get_page_state(p) for p in pages}
    documents.close()
    return info, pages, states


def translate(
    pdf_file: Annotated[
        Path,
        typer.Argument(help="Path to the PDF to translate."),
    ],
    pages: Annotated[
        Optional[str],
        typer.Option("--pages", "-p", help="Pages to translate, e.g. '1-5,8' (default: all)."),
    ] = None,
    to: Annotated[
        Optional[str],
        typer.Option("--to", "-t", help="Target language code."),
    ] = None,
    source: Annotated[
        Optional[str],
        typer.Option("--from", "-s", help="Source language code."),
    ] = None,
    provider: Annotated[
        Optional[str],
        typer.Option(help="LLM provider string (e.g. gemini/gemini-2.0-flash)."),
    ] = None,
    batch_size: Annotated[
        Optional[int],
        typer.Option("--batch-size", help="Pages per translation request."),
    ] = None,
    max_concurrent: Annotated[
        Optional[int],
        typer.Option("--max-concurrent", help="Maximum requests in flight."),
    ] = None,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Output markdown path."),
    ] = None,
) -> None:
    """Translate PDF pages with an LLM and save them as markdown."""
    if not pdf_file.is_file():
        console.print(f"[red]File not found:[/red] {pdf_file}")
        raise typer.Exit(1)

    overrides = {
        "llm.provider": provider,
        "llm.target_language": to,
        "llm.source_language": source,
        "scheduler.batch_size": batch_size,
        "scheduler.max_concurrent": max_concurrent,
    }
    config = load_config(**overrides)

    try:
        info, page_list, states = asyncio.run(translate_document(pdf_file, pages, config))
    except (ValueError, LSRError) as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    out_path = output or pdf_file.with_suffix(f".{config.llm.target_language}.md")
    out_path.write_text(render_markdown(info, page_list, states), encoding="utf-8")
    console.print(f"[green]Saved:[/green] {out_path}")

    failed = [p for p, s in states.items() if isinstance(s, Error)]
    if failed:
        console.print(f"[yellow]{len(failed)} page(s) failed:[/yellow] {', '.join(map(str, failed))}")
        raise typer.Exit(1)
