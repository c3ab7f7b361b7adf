"""Active page detection from intersection ratios, with debounced notification."""

from __future__ import annotations

import asyncio
from typing import Callable

from lsr.core.models import Segment

PageCallback = Callable[[int], None]


def viewport_ratios(top: float, height: float, segments: list[Segment]) -> dict[int, float]:
    """Fraction of each page's segment that lies inside the viewport.

    Pages are 1-based. Equivalent to an intersection observer's ratio for
    each page block.
    """
    bottom = top + height
    ratios = {}
    for i, seg in enumerate(segments):
        visible = min(seg.end, bottom) - max(seg.start, top)
        ratios[i + 1] = max(0.0, visible) / seg.extent
    return ratios


class VisibilityTracker:
    """Tracks per-page visibility and reports the most visible page.

    When the active page changes, on_change fires after debounce_seconds on
    the running event loop; a newer change cancels the pending notification,
    so fast scrolling only reports where the user settles.
    """

    def __init__(
        self,
        on_change: PageCallback | None = None,
        debounce_seconds: float = 0.3,
        initial_page: int = 1,
    ) -> None:
        self.on_change = on_change
        self.debounce_seconds = debounce_seconds
        self._ratios: dict[int, float] = {}
        self._active = initial_page
        self._notified: int | None = None
        self._timer: asyncio.TimerHandle | None = None

    @property
    def active_page(self) -> int:
        return self._active

    def update(self, page: int, ratio: float) -> int:
        """Record one page's visible ratio and return the active page."""
        self._ratios[page] = ratio
        return self._recompute()

    def update_many(self, ratios: dict[int, float]) -> int:
        self._ratios.update(ratios)
        return self._recompute()

    def update_from_viewport(self, top: float, height: float, segments: list[Segment]) -> int:
        """Derive ratios from the viewport window over a pane's segments."""
        if not segments:
            return self._active
        self._ratios = viewport_ratios(top, height, segments)
        return self._recompute()

    def _recompute(self) -> int:
        best_page = self._active
        best_ratio = 0.0
        for page, ratio in self._ratios.items():
            if ratio > best_ratio:
                best_ratio = ratio
                best_page = page
        if best_page != self._active:
            self._active = best_page
            self._schedule(best_page)
        return self._active

    def _schedule(self, page: int) -> None:
        self.cancel()
        if self.on_change is None or page == self._notified:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is None or self.debounce_seconds <= 0:
            self._fire(page)
            return
        self._timer = loop.call_later(self.debounce_seconds, self._fire, page)

    def _fire(self, page: int) -> None:
        self._timer = None
        self._notified = page
        if self.on_change is not None:
            self.on_change(page)

    def cancel(self) -> None:
        """Drop any pending debounced notification."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def reset(self, initial_page: int = 1) -> None:
        self.cancel()
        self._ratios.clear()
        self._active = initial_page
        self._notified = None
