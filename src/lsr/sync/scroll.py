"""Bidirectional scroll synchronization between the source and translated panes.

Writing a pane's scroll position programmatically makes that pane emit its
own scroll event. Each write is recorded per pane with a generation number;
the next event from that pane is consumed as the echo of its oldest
outstanding write instead of being mapped back, so the panes never
ping-pong. Hosts clamp offsets to their scrollable range, so an echo may
report a different offset than the one written; it is still an echo. The
rule only depends on event order, not on rendering frame timing.
"""

from __future__ import annotations

from typing import Callable

from lsr.sync.segments import Pane, SegmentMapper

ScrollWriter = Callable[[Pane, float], "float | None"]
"""Host callback that sets a pane's scroll offset.

It may return the offset actually applied after clamping. Returning the
current offset unchanged tells the coordinator no scroll event will follow.
"""

ECHO_TOLERANCE = 0.5  # Hosts may round scroll offsets to whole or half pixels
_MAX_PENDING_ECHOES = 8


class ScrollCoordinator:
    """Maps user scrolls in one pane onto the other pane.

    Hosts with a frame loop call on_scroll() for every raw scroll event and
    flush() once per frame, so at most one mapping happens per frame. Hosts
    without a frame loop call sync_now() instead.
    """

    def __init__(self, mapper: SegmentMapper, write: ScrollWriter) -> None:
        self._mapper = mapper
        self._write = write
        self._generation = 0
        self._echoes: dict[Pane, list[tuple[int, float]]] = {Pane.SOURCE: [], Pane.TRANSLATED: []}
        self._applied: dict[Pane, float | None] = {Pane.SOURCE: None, Pane.TRANSLATED: None}
        self._pending: tuple[Pane, float] | None = None

    @property
    def generation(self) -> int:
        """Number of programmatic writes issued so far."""
        return self._generation

    def _consume_echo(self, pane: Pane, offset: float) -> bool:
        echoes = self._echoes[pane]
        if not echoes:
            self._applied[pane] = offset
            return False
        for i, (_, expected) in enumerate(echoes):
            if abs(offset - expected) <= ECHO_TOLERANCE:
                # Writes coalesced by the host: this one and every older one are done
                del echoes[: i + 1]
                break
        else:
            # Clamped by the host; attribute the event to the oldest write
            del echoes[0]
        self._applied[pane] = offset
        return True

    def on_scroll(self, pane: Pane, offset: float) -> bool:
        """Record a raw scroll event.

        Returns:
            False if the event was the echo of a programmatic write, True if it
            was a user scroll that is now pending until the next flush().
        """
        if self._consume_echo(pane, offset):
            return False
        self._pending = (pane, offset)
        return True

    def flush(self) -> float | None:
        """Apply the most recent pending user scroll. Returns the offset written, if any."""
        if self._pending is None:
            return None
        pane, offset = self._pending
        self._pending = None
        return self._apply(pane, offset)

    def sync_now(self, pane: Pane, offset: float) -> float | None:
        """Handle a scroll event and map it immediately."""
        if not self.on_scroll(pane, offset):
            return None
        return self.flush()

    def _apply(self, pane: Pane, offset: float) -> float | None:
        target_offset = self._mapper.map_position(pane, offset)
        if target_offset is None:
            return None
        target = pane.other
        self._generation += 1
        applied = self._write(target, target_offset)
        if applied is None:
            applied = target_offset
        previous = self._applied[target]
        if previous is not None and abs(applied - previous) <= ECHO_TOLERANCE:
            # Position did not move, so the host emits no event for this write
            return target_offset
        self._applied[target] = applied
        echoes = self._echoes[target]
        echoes.append((self._generation, applied))
        if len(echoes) > _MAX_PENDING_ECHOES:
            del echoes[0]
        return target_offset

    def reset(self) -> None:
        """Forget pending scrolls and expected echoes (e.g. on document change)."""
        self._pending = None
        for pane in self._echoes:
            self._echoes[pane].clear()
            self._applied[pane] = None
