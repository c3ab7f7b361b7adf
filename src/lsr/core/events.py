"""Page state event system for streaming translation progress to viewers.

The scheduler publishes a PageEvent on every page state transition.
Consumers (translated-page views, the CLI progress display, the reader
session) subscribe a callback and filter by page number themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from lsr.core.models import PageState


@dataclass(frozen=True)
class PageEvent:
    """A state transition for one page.

    Attributes:
        page_number: 1-based page number.
        state: The page's new state (Queued, Translating, Done, Error).
    """

    page_number: int
    state: PageState


EventCallback = Callable[[PageEvent], None]
Unsubscribe = Callable[[], None]


class EventHub:
    """Publish/subscribe fan-out for page events."""

    def __init__(self) -> None:
        self._listeners: list[EventCallback] = []

    def subscribe(self, listener: EventCallback) -> Unsubscribe:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, event: PageEvent) -> None:
        # Copy so listeners may unsubscribe while being notified
        for listener in list(self._listeners):
            listener(event)

    def __len__(self) -> int:
        return len(self._listeners)
