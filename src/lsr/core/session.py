"""Reader session: wires visibility, scheduling and scroll sync for one window.

Data flow:
    scroll event -> ScrollCoordinator -> other pane's offset
    source pane offset -> VisibilityTracker -> (debounced) active page
    active page -> TranslationScheduler.request_window()
    page done/error -> host re-measures layout -> update_layout() -> SegmentMapper.rebuild()
"""

from __future__ import annotations

import asyncio
from typing import Callable, Protocol

from lsr.core.events import PageEvent
from lsr.core.models import Done, DocumentInfo, PaneLayout
from lsr.sync.scroll import ScrollCoordinator, ScrollWriter
from lsr.sync.segments import Pane, SegmentMapper
from lsr.sync.visibility import VisibilityTracker
from lsr.translation.scheduler import TranslationScheduler

LayoutCallback = Callable[[int], None]
"""Called with a page number whose translated block changed size."""


class DocumentService(Protocol):
    def load_document(self, data: bytes, name: str = "") -> DocumentInfo: ...

    async def extract_page_text(self, page_number: int) -> str: ...


def _no_scroll(pane: Pane, offset: float) -> None:
    return None


class ReaderSession:
    """Coordinates one open document across the two panes.

    Args:
        documents: Document service used to open files.
        scheduler: Translation scheduler sharing the same document service.
        write_scroll: Host callback that sets a pane's scroll offset.
        on_layout_invalidated: Host callback fired when a page finishes
            (done or error) so the host can re-measure and call update_layout().
        debounce_seconds: Delay before an active page change requests translations.
        prefetch_on_open: Request the window around page 1 when a document opens.
            Batch tools that pick their own pages turn this off.
    """

    def __init__(
        self,
        documents: DocumentService,
        scheduler: TranslationScheduler,
        write_scroll: ScrollWriter | None = None,
        on_layout_invalidated: LayoutCallback | None = None,
        debounce_seconds: float = 0.3,
        prefetch_on_open: bool = True,
    ) -> None:
        self.documents = documents
        self.scheduler = scheduler
        self.mapper = SegmentMapper()
        self.scroll = ScrollCoordinator(self.mapper, write_scroll or _no_scroll)
        self.visibility = VisibilityTracker(
            on_change=self.on_active_page,
            debounce_seconds=debounce_seconds,
        )
        self.on_layout_invalidated = on_layout_invalidated
        self.prefetch_on_open = prefetch_on_open
        self.document: DocumentInfo | None = None
        self._tasks: set[asyncio.Task] = set()
        self._deferred_page: int | None = None  # Window to request once a loop runs
        self._unsubscribe = scheduler.subscribe(self._on_page_event)

    def open_document(self, data: bytes, name: str = "") -> DocumentInfo:
        """Load a document and reset every per-document structure."""
        info = self.documents.load_document(data, name)
        self.scheduler.set_document(info.fingerprint, info.page_count)
        self.mapper.clear()
        self.scroll.reset()
        self.visibility.reset()
        self.document = info
        self._deferred_page = None
        if self.prefetch_on_open:
            # The user is looking at page 1 and no scroll event has happened yet
            try:
                asyncio.get_running_loop()
            except RuntimeError:
                self._deferred_page = 1
            else:
                self._request_window(1)
        return info

    # -- Visibility -> scheduler -------------------------------------------

    def on_active_page(self, page_number: int) -> None:
        """Debounced active-page callback; requests the window in the background."""
        self._deferred_page = None
        self._request_window(page_number)

    def _request_window(self, page_number: int) -> None:
        self.scheduler.set_current_page(page_number)
        task = asyncio.get_running_loop().create_task(
            self.scheduler.request_window(page_number)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def goto_page(self, page_number: int) -> None:
        """Jump straight to a page, bypassing the debounce."""
        self.visibility.cancel()
        self._deferred_page = None
        self.scheduler.set_current_page(page_number)
        await self.scheduler.request_window(page_number)

    # -- Layout and scrolling ----------------------------------------------

    def update_layout(self, source: PaneLayout, translated: PaneLayout) -> None:
        """Rebuild the segment map from freshly measured pane layouts."""
        self.mapper.rebuild(source, translated)

    def on_scroll(
        self, pane: Pane, offset: float, viewport_height: float | None = None
    ) -> float | None:
        """Handle a scroll event from either pane.

        Returns the offset written to the other pane, or None for echoes and
        before layout is known. When viewport_height is given, the source
        pane's visible window also updates the active page.
        """
        self._flush_deferred()
        written = self.scroll.sync_now(pane, offset)
        if viewport_height is not None:
            source_offset = offset if pane is Pane.SOURCE else written
            if source_offset is not None:
                self.visibility.update_from_viewport(
                    source_offset, viewport_height, self.mapper.segments(Pane.SOURCE)
                )
        return written

    def _flush_deferred(self) -> None:
        if self._deferred_page is None:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return
        page, self._deferred_page = self._deferred_page, None
        self._request_window(page)

    def _on_page_event(self, event: PageEvent) -> None:
        if event.state.status in ("done", "error") and self.on_layout_invalidated:
            self.on_layout_invalidated(event.page_number)

    # -- Results -----------------------------------------------------------

    def translated_pages(self) -> dict[int, str]:
        """Content of every page that is currently done."""
        if self.document is None:
            return {}
        pages = {}
        for page in range(1, self.document.page_count + 1):
            state = self.scheduler.get_page_state(page)
            if isinstance(state, Done):
                pages[page] = state.content
        return pages

    async def retry(self, page_number: int) -> None:
        await self.scheduler.retry_page(page_number)

    async def wait_idle(self) -> None:
        """Wait for pending window requests and all scheduled translations."""
        self._flush_deferred()
        while self._tasks:
            await asyncio.gather(*self._tasks)
        await self.scheduler.wait_idle()

    def close(self) -> None:
        self.visibility.cancel()
        self._deferred_page = None
        self._unsubscribe()
