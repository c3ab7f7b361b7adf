"""Per-page translation scheduling: window prefetch, priority queue, batching.

Turns "the user is looking at page N" into a deduplicated, prioritized,
rate-limited stream of translation requests. Every page moves through
idle -> queued -> translating -> done | error; an error page goes back to
queued only on explicit retry. Results are cached by document fingerprint
and page, so a page is never translated twice across sessions.

All state is mutated from this class's own methods on a single event loop.
The duplicate-work guard in _claim() runs before any await, which is what
makes concurrent request_window() calls safe without locks.
"""

from __future__ import annotations

import asyncio
import math
import time
from bisect import insort
from typing import Callable, Coroutine

from rich.console import Console

from lsr.cache.store import CacheAdapter
from lsr.core.config import SchedulerConfig
from lsr.core.errors import CooldownError, ErrorKind, QueueClearedError, TranslationError
from lsr.core.events import EventCallback, EventHub, PageEvent, Unsubscribe
from lsr.core.models import (
    IDLE,
    QUEUED,
    TRANSLATING,
    BatchTask,
    Done,
    Error,
    PageState,
    QueueStatus,
)
from lsr.translation.base import PageTextSource, TranslationBackend
from lsr.utils.cache import page_cache_key

console = Console()

_BUSY = ("queued", "translating", "done")


def page_window(center_page: int, radius: int, page_count: int) -> list[int]:
    """Pages within radius of center_page (inclusive), clipped to [1, page_count]."""
    first = max(1, center_page - radius)
    last = min(page_count, center_page + radius)
    return list(range(first, last + 1))


def join_batch(tasks: list[BatchTask], delimiter: str) -> str:
    """Concatenate page texts into one request, tagging each with its page number."""
    return delimiter.join(f"【PAGE {t.page_number}】\n{t.source_text}" for t in tasks)


def split_batch(raw: str, delimiter: str, count: int) -> list[str]:
    """Split a batch response into per-page outputs.

    If the backend did not keep the delimiter, every page gets the whole raw
    response: per-page attribution is lost but no page is left untranslated.
    """
    parts = [part.strip() for part in raw.split(delimiter)]
    if len(parts) != count:
        console.print(
            f"[yellow]Batch split mismatch: expected {count} pages, got {len(parts)}; "
            f"using the full response for each page.[/yellow]"
        )
        return [raw] * count
    return parts


class TranslationScheduler:
    """Schedules page translations for one open document at a time.

    Args:
        cache: Translation cache (memory + disk).
        documents: Source of raw page text.
        backend: Translation service.
        config: Concurrency, batching, window and cooldown settings.
        clock: Monotonic time source in seconds, injectable for tests.
    """

    def __init__(
        self,
        cache: CacheAdapter,
        documents: PageTextSource,
        backend: TranslationBackend,
        config: SchedulerConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        config = config or SchedulerConfig()
        self._cache = cache
        self._documents = documents
        self._backend = backend
        self._clock = clock

        self.max_concurrent = config.max_concurrent
        self.batch_size = config.batch_size
        self.window_radius = config.window_radius
        self.cooldown_seconds = config.cooldown_seconds
        self.context_chars = config.context_chars
        self.delimiter = config.batch_delimiter

        self._states: dict[int, PageState] = {}
        self._texts: dict[int, str] = {}
        self._queue: list[BatchTask] = []
        self._active = 0
        self._cooldown_until: float | None = None
        self._current_page = 1
        self._fingerprint: str | None = None
        self._page_count = 0
        self._generation = 0  # Bumped on every document change
        self._events = EventHub()
        self._background: set[asyncio.Task] = set()

    # -- Document lifecycle ------------------------------------------------

    @property
    def fingerprint(self) -> str | None:
        return self._fingerprint

    @property
    def page_count(self) -> int:
        return self._page_count

    @property
    def current_page(self) -> int:
        return self._current_page

    def set_document(self, fingerprint: str, page_count: int) -> None:
        """Switch to a new document: drop all page states and pending work.

        In-flight batches finish, but their results are discarded.
        """
        self._generation += 1
        self.clear_queue()
        self._fingerprint = fingerprint
        self._page_count = page_count
        self._states.clear()
        self._texts.clear()
        self._current_page = 1

    def reset(self) -> None:
        """Close the document and forget any rate-limit cooldown."""
        self._generation += 1
        self.clear_queue()
        self._fingerprint = None
        self._page_count = 0
        self._states.clear()
        self._texts.clear()
        self._cooldown_until = None

    def set_current_page(self, page_number: int) -> None:
        """Move the priority reference point. Has no other side effects."""
        self._current_page = page_number

    def set_max_concurrent(self, value: int) -> None:
        self.max_concurrent = max(1, value)
        self._dispatch()

    def set_batch_size(self, value: int) -> None:
        self.batch_size = max(1, value)

    def set_window_radius(self, value: int) -> None:
        self.window_radius = max(0, value)

    # -- Observers ---------------------------------------------------------

    def subscribe(self, listener: EventCallback) -> Unsubscribe:
        """Register a callback for every page state transition."""
        return self._events.subscribe(listener)

    def get_page_state(self, page_number: int) -> PageState:
        return self._states.get(page_number, IDLE)

    def _set_state(self, page_number: int, state: PageState) -> None:
        self._states[page_number] = state
        self._events.publish(PageEvent(page_number=page_number, state=state))

    # -- Requests ----------------------------------------------------------

    async def request_window(self, center_page: int) -> None:
        """Make sure every page within window_radius of center_page is resolved or on its way.

        Pages are enqueued together before dispatch so the page nearest the
        reader is sent first. Pages outside the window are not cancelled.
        """
        if self._fingerprint is None:
            return
        await self.request_pages(page_window(center_page, self.window_radius, self._page_count))

    async def request_pages(self, pages: list[int]) -> None:
        """Ensure an explicit set of pages, enqueueing all of them before dispatching."""
        await asyncio.gather(*(self._ensure_page(p) for p in pages))
        self._dispatch()

    async def ensure_page(self, page_number: int) -> None:
        """Resolve a single page from cache or enqueue it for translation."""
        await self._ensure_page(page_number)
        self._dispatch()

    async def retry_page(self, page_number: int) -> None:
        """Re-enter the ensure path for a page that ended in error."""
        state = self._states.get(page_number)
        if state is not None and state.status != "error":
            return
        self._states.pop(page_number, None)
        await self.ensure_page(page_number)

    def _claim(self, page_number: int) -> bool:
        """Synchronously reserve a page so concurrent callers never duplicate work."""
        state = self._states.get(page_number)
        if state is not None and state.status in _BUSY:
            return False
        # Silent reservation; observers hear "queued" only if the cache misses
        self._states[page_number] = QUEUED
        return True

    async def _ensure_page(self, page_number: int) -> None:
        if self._fingerprint is None or not 1 <= page_number <= self._page_count:
            return
        if not self._claim(page_number):
            return

        generation = self._generation
        key = page_cache_key(self._fingerprint, page_number)

        cached = await self._cache.get(key)
        if generation != self._generation:
            return
        if cached:
            self._set_state(page_number, Done(content=cached))
            return

        self._set_state(page_number, QUEUED)
        try:
            text = await self._documents.extract_page_text(page_number)
        except Exception as e:
            if generation == self._generation:
                self._set_state(page_number, Error(message=f"Text extraction failed: {e}"))
            return
        if generation != self._generation:
            return

        self._texts[page_number] = text
        task = BatchTask(
            page_number=page_number,
            source_text=text,
            priority=abs(page_number - self._current_page),
            future=asyncio.get_running_loop().create_future(),
        )
        task.future.add_done_callback(
            lambda fut: self._on_task_settled(task.page_number, key, generation, fut)
        )
        # insort places equal priorities after existing ones: stable, insertion order
        insort(self._queue, task, key=lambda t: t.priority)

    def _on_task_settled(
        self, page_number: int, key: str, generation: int, fut: asyncio.Future[str]
    ) -> None:
        if fut.cancelled():
            return
        exc = fut.exception()  # Always retrieve, so asyncio never warns about it
        if generation != self._generation:
            return
        if exc is not None:
            self._set_state(page_number, Error(message=str(exc)))
            return
        result = fut.result()
        self._set_state(page_number, Done(content=result))
        self._spawn(self._cache.set(key, result))

    # -- Dispatch ----------------------------------------------------------

    def _next_batch(self) -> list[BatchTask]:
        """Take up to batch_size tasks from the front of the queue.

        A page whose text already contains the delimiter would break the
        split, so it always goes alone.
        """
        batch: list[BatchTask] = []
        while self._queue and len(batch) < self.batch_size:
            collides = self.delimiter in self._queue[0].source_text
            if collides and batch:
                break
            batch.append(self._queue.pop(0))
            if collides:
                break
        return batch

    def _dispatch(self) -> None:
        while self._queue and self._active < self.max_concurrent:
            batch = self._next_batch()
            for task in batch:
                self._set_state(task.page_number, TRANSLATING)
            self._active += 1
            self._spawn(self._run_batch(batch))

    async def _run_batch(self, batch: list[BatchTask]) -> None:
        try:
            results = await self._execute_batch(batch)
        except Exception as e:
            for task in batch:
                if not task.future.done():
                    task.future.set_exception(e)
        else:
            for task, result in zip(batch, results):
                if not task.future.done():
                    task.future.set_result(result)
        finally:
            self._active -= 1
            self._dispatch()

    def _cooldown_remaining(self) -> int:
        if self._cooldown_until is None:
            return 0
        remaining = self._cooldown_until - self._clock()
        if remaining <= 0:
            self._cooldown_until = None
            return 0
        return math.ceil(remaining)

    def _context_for(self, page_number: int) -> tuple[str, str]:
        if self.context_chars <= 0:
            return "", ""
        prev_text = self._texts.get(page_number - 1, "")
        next_text = self._texts.get(page_number + 1, "")
        return prev_text[-self.context_chars :], next_text[: self.context_chars]

    async def _execute_batch(self, batch: list[BatchTask]) -> list[str]:
        remaining = self._cooldown_remaining()
        if remaining:
            raise CooldownError(remaining)

        try:
            if len(batch) == 1:
                task = batch[0]
                prev_context, next_context = self._context_for(task.page_number)
                result = await self._backend.translate(task.source_text, prev_context, next_context)
                return [result]

            raw = await self._backend.translate_batch(
                join_batch(batch, self.delimiter), self.delimiter, len(batch)
            )
            return split_batch(str(raw), self.delimiter, len(batch))
        except TranslationError as e:
            if e.kind is ErrorKind.RATE_LIMIT:
                self._cooldown_until = self._clock() + self.cooldown_seconds
                console.print(
                    f"[yellow]Rate limit hit, cooling down for {self.cooldown_seconds:g}s[/yellow]"
                )
            raise

    # -- Queue management --------------------------------------------------

    def clear_queue(self) -> None:
        """Reject every task that has not been dispatched yet. In-flight batches are untouched."""
        queue, self._queue = self._queue, []
        for task in queue:
            if not task.future.done():
                task.future.set_exception(QueueClearedError())

    def queue_status(self) -> QueueStatus:
        return QueueStatus(
            pending=len(self._queue),
            active=self._active,
            cooldown_seconds=self._cooldown_remaining(),
        )

    def _spawn(self, coro: Coroutine) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def wait_idle(self) -> None:
        """Wait until nothing is queued, in flight, or still being written to cache."""
        while True:
            pending = [t for t in self._background if not t.done()]
            if pending:
                await asyncio.wait(pending)
                continue
            # Let future callbacks scheduled by the last batch run
            await asyncio.sleep(0)
            if not self._queue and self._active == 0 and not self._background:
                return
