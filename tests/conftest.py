"""Shared test fixtures and in-memory collaborators."""

from __future__ import annotations

import asyncio

import pytest

from lsr.cache.store import CacheAdapter
from lsr.core.config import SchedulerConfig
from lsr.core.errors import ErrorKind, TranslationError
from lsr.core.models import DocumentInfo
from lsr.translation.scheduler import TranslationScheduler


class FakeDocuments:
    """Document service returning canned page text."""

    def __init__(self, page_count: int = 5, fingerprint: str = "abc123", texts=None) -> None:
        self.page_count = page_count
        self.fingerprint = fingerprint
        self.texts = texts or {}
        self.extracted: list[int] = []
        self.fail_pages: set[int] = set()

    def load_document(self, data: bytes, name: str = "") -> DocumentInfo:
        return DocumentInfo(page_count=self.page_count, fingerprint=self.fingerprint, name=name)

    async def extract_page_text(self, page_number: int) -> str:
        self.extracted.append(page_number)
        await asyncio.sleep(0)
        if page_number in self.fail_pages:
            raise RuntimeError(f"cannot read page {page_number}")
        return self.texts.get(page_number, f"Page {page_number} text")


class FakeBackend:
    """Translation backend that records calls and tracks concurrency.

    Single pages translate to "T(<text>)"; batches are split on the delimiter
    and rejoined unless batch_response is set.
    """

    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay
        self.calls: list[tuple[str, str]] = []  # (kind, text)
        self.contexts: list[tuple[str, str]] = []
        self.active = 0
        self.max_active = 0
        self.batch_response: str | None = None
        self.errors: list[Exception] = []  # Raised in order, one per call

    async def _enter(self, kind: str, text: str) -> None:
        self.calls.append((kind, text))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.active -= 1
        if self.errors:
            raise self.errors.pop(0)

    async def translate(self, text: str, prev_context: str = "", next_context: str = "") -> str:
        self.contexts.append((prev_context, next_context))
        await self._enter("single", text)
        return f"T({text})"

    async def translate_batch(self, text: str, delimiter: str, page_count: int) -> str:
        await self._enter("batch", text)
        if self.batch_response is not None:
            return self.batch_response
        return delimiter.join(f"T({part})" for part in text.split(delimiter))


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def rate_limit_error() -> TranslationError:
    return TranslationError("Resource has been exhausted (e.g. check quota).", ErrorKind.RATE_LIMIT)


@pytest.fixture
def documents() -> FakeDocuments:
    return FakeDocuments()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache() -> CacheAdapter:
    return CacheAdapter()


@pytest.fixture
def make_scheduler(cache, documents, backend, clock):
    """Factory for a scheduler wired to the fakes, with config overrides."""

    def _make(**overrides) -> TranslationScheduler:
        config = SchedulerConfig(**{"context_chars": 0, **overrides})
        scheduler = TranslationScheduler(cache, documents, backend, config=config, clock=clock)
        scheduler.set_document(documents.fingerprint, documents.page_count)
        return scheduler

    return _make
