"""Collaborator contracts for the translation scheduler.

The scheduler only talks to these interfaces. Concrete implementations
live in lsr.llm.translator (LiteLLM) and lsr.document.pdf (PyMuPDF);
tests substitute in-memory fakes.
"""

from __future__ import annotations

from typing import Protocol


class PageTextSource(Protocol):
    async def extract_page_text(self, page_number: int) -> str:
        """Return the raw text of a 1-based page."""
        ...


class TranslationBackend(Protocol):
    """Remote translation service.

    Failures are raised as lsr.core.errors.TranslationError, whose kind
    tells the scheduler whether to start a rate-limit cooldown.
    """

    async def translate(self, text: str, prev_context: str = "", next_context: str = "") -> str:
        """Translate one page; the context strings are reference only."""
        ...

    async def translate_batch(self, text: str, delimiter: str, page_count: int) -> str:
        """Translate page_count pages joined by delimiter, keeping the delimiter between outputs."""
        ...
