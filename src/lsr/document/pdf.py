"""PDF loading, page rendering, and text extraction via PyMuPDF.

Requires: pip install pymupdf
"""

from __future__ import annotations

import asyncio
import re
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

from lsr.core.errors import DocumentNotLoadedError, InvalidDocumentError
from lsr.core.models import DocumentInfo, PageSize, TextBlock
from lsr.utils.cache import block_id, document_fingerprint

LINE_THRESHOLD = 5.0  # Vertical jump that starts a new line
PARAGRAPH_GAP = 15.0  # Vertical gap between lines that starts a new block

_CAPS_RE = re.compile(r"^[A-Z\s]+$")

T = TypeVar("T")


@dataclass
class TextItem:
    """A positioned text run, top-left origin."""

    text: str
    x: float
    y: float
    width: float = 0.0
    height: float = 0.0


def _classify(text: str) -> str:
    if len(text) < 50 and _CAPS_RE.match(text):
        return "heading"
    if len(text) < 10:
        return "short"
    return "paragraph"


def group_blocks(items: list[TextItem], fingerprint: str, page_number: int) -> list[TextBlock]:
    """Group text runs into lines by y position, then lines into paragraph blocks.

    Items must be in reading order. Block IDs follow <fingerprint>_p<page>_b<index>.
    """
    lines: list[list[TextItem]] = []
    current: list[TextItem] = []
    last_y: float | None = None
    for item in items:
        if last_y is not None and abs(item.y - last_y) > LINE_THRESHOLD and current:
            lines.append(current)
            current = []
        current.append(item)
        last_y = item.y
    if current:
        lines.append(current)

    paragraphs: list[list[TextItem]] = []
    paragraph: list[TextItem] = []
    last_line_y: float | None = None
    for line in lines:
        line_y = min(i.y for i in line)
        if paragraph and last_line_y is not None and abs(line_y - last_line_y) > PARAGRAPH_GAP:
            paragraphs.append(paragraph)
            paragraph = []
        paragraph.extend(line)
        last_line_y = line_y
    if paragraph:
        paragraphs.append(paragraph)

    blocks = []
    for index, runs in enumerate(paragraphs):
        text = " ".join(r.text for r in runs).strip()
        x = min(r.x for r in runs)
        y = min(r.y for r in runs)
        max_x = max(r.x + r.width for r in runs)
        max_y = max(r.y + r.height for r in runs)
        blocks.append(
            TextBlock(
                block_id=block_id(fingerprint, page_number, index),
                page_number=page_number,
                text=text,
                bbox=(x, y, max_x - x, max_y - y),
                kind=_classify(text),
            )
        )
    return blocks


class PdfDocument:
    """Document rendering service for one open PDF.

    Page text is memoized per page. PyMuPDF documents are not safe to use
    from several threads at once, so every read, the swap in load_document()
    and close() hold the same lock. A read that started on a document which
    has since been replaced raises DocumentNotLoadedError and is not memoized.
    """

    def __init__(self) -> None:
        self._doc = None
        self._info: DocumentInfo | None = None
        self._texts: dict[int, str] = {}
        self._lock = threading.Lock()
        self._generation = 0  # Bumped whenever the open document changes

    @property
    def info(self) -> DocumentInfo | None:
        return self._info

    def load_document(self, data: bytes, name: str = "") -> DocumentInfo:
        """Open a PDF from its bytes and compute its content fingerprint.

        Raises:
            InvalidDocumentError: If PyMuPDF cannot parse the data.
        """
        import fitz  # pymupdf

        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except RuntimeError as e:  # fitz.FileDataError, fitz.EmptyFileError
            raise InvalidDocumentError(f"Cannot open {name or 'document'}: {e}") from e

        info = DocumentInfo(
            page_count=doc.page_count,
            fingerprint=document_fingerprint(data),
            name=name,
        )
        with self._lock:
            self._close_locked()
            self._doc = doc
            self._info = info
        return info

    def load_path(self, path: Path) -> DocumentInfo:
        path = Path(path)
        return self.load_document(path.read_bytes(), name=path.name)

    def _page(self, page_number: int):
        if self._doc is None or self._info is None:
            raise DocumentNotLoadedError("No document loaded")
        if not 1 <= page_number <= self._info.page_count:
            raise ValueError(f"Page {page_number} out of range 1-{self._info.page_count}")
        return self._doc[page_number - 1]

    def _read(self, generation: int, reader: Callable[[object], T], page_number: int) -> T:
        with self._lock:
            if generation != self._generation:
                raise DocumentNotLoadedError(f"Document changed while reading page {page_number}")
            return reader(self._page(page_number))

    def render_page(self, page_number: int, target: Path, scale: float = 1.5) -> PageSize:
        """Rasterize a page to a PNG file at the given scale."""
        import fitz

        pix = self._read(
            self._generation,
            lambda page: page.get_pixmap(matrix=fitz.Matrix(scale, scale)),
            page_number,
        )
        Path(target).parent.mkdir(parents=True, exist_ok=True)
        pix.save(str(target))
        return PageSize(width=pix.width, height=pix.height)

    @staticmethod
    def _page_items(page) -> list[TextItem]:
        items = []
        for block in page.get_text("dict").get("blocks", []):
            for line in block.get("lines", []):
                for span in line.get("spans", []):
                    if not span.get("text", "").strip():
                        continue
                    x0, y0, x1, y1 = span["bbox"]
                    items.append(
                        TextItem(text=span["text"], x=x0, y=y0, width=x1 - x0, height=y1 - y0)
                    )
        return items

    async def extract_page_text(self, page_number: int) -> str:
        if page_number in self._texts:
            return self._texts[page_number]
        generation = self._generation
        text = await asyncio.to_thread(
            self._read, generation, lambda page: page.get_text("text"), page_number
        )
        if generation != self._generation:
            raise DocumentNotLoadedError(f"Document changed while reading page {page_number}")
        self._texts[page_number] = text
        return text

    async def extract_page_blocks(self, page_number: int) -> list[TextBlock]:
        info = self._info
        if info is None:
            raise DocumentNotLoadedError("No document loaded")
        generation = self._generation
        items = await asyncio.to_thread(self._read, generation, self._page_items, page_number)
        if generation != self._generation:
            raise DocumentNotLoadedError(f"Document changed while reading page {page_number}")
        return group_blocks(items, info.fingerprint, page_number)

    def _close_locked(self) -> None:
        if self._doc is not None:
            self._doc.close()
        self._doc = None
        self._info = None
        self._texts.clear()
        self._generation += 1

    def close(self) -> None:
        """Close the document, waiting for any page read in progress."""
        with self._lock:
            self._close_locked()
