"""Shared CLI utilities."""

from __future__ import annotations


def parse_pages(selection: str | None, page_count: int) -> list[int]:
    """Expand a page selection like "1-3,7,10-" into sorted page numbers.

    Open-ended ranges run to the last page. Pages outside [1, page_count]
    are dropped. None or an empty string selects every page.
    """
    if not selection or not selection.strip():
        return list(range(1, page_count + 1))

    pages: set[int] = set()
    for part in selection.split(","):
        part = part.strip()
        if not part:
            continue
        if "-" in part:
            first_str, last_str = part.split("-", 1)
            first = int(first_str) if first_str.strip() else 1
            last = int(last_str) if last_str.strip() else page_count
        else:
            first = last = int(part)
        if first > last:
            raise ValueError(f"Invalid page range: {part}")
        pages.update(range(first, last + 1))

    return sorted(p for p in pages if 1 <= p <= page_count)


def format_size(num_bytes: int) -> str:
    """Human-readable byte size (MB with two decimals above 1 MB)."""
    if num_bytes >= 1024 * 1024:
        return f"{num_bytes / 1024 / 1024:.2f} MB"
    if num_bytes >= 1024:
        return f"{num_bytes / 1024:.1f} KB"
    return f"{num_bytes} B"
