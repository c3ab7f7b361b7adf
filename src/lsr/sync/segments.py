"""Segment-based scroll position mapping between two panes.

Each pane is a vertical stack of page blocks. A block's segment runs from
its laid-out top edge to the next block's top edge, so margins and padding
are included implicitly. Mapping preserves the fractional position within
the same page, not the fraction of the total height, since a translated
page can be much taller or shorter than its source.
"""

from __future__ import annotations

from bisect import bisect_right
from enum import Enum

from lsr.core.models import PaneLayout, Segment


class Pane(Enum):
    SOURCE = "source"
    TRANSLATED = "translated"

    @property
    def other(self) -> Pane:
        return Pane.TRANSLATED if self is Pane.SOURCE else Pane.SOURCE


def build_segments(layout: PaneLayout) -> list[Segment]:
    """Compute contiguous segments from block leading offsets.

    A block's extent is the distance to the next block's start; the last
    block runs to the pane's scrollable extent. Extents are floored at 1.
    """
    starts = layout.starts
    segments = []
    for i, start in enumerate(starts):
        next_start = starts[i + 1] if i < len(starts) - 1 else layout.scrollable_extent
        segments.append(Segment(start=start, extent=max(1.0, next_start - start)))
    return segments


def locate(segments: list[Segment], offset: float) -> int:
    """Index of the segment containing offset, clamped to [0, len - 1].

    Offsets before the first segment map to 0; offsets at or past the end
    of the last segment map to the last index.
    """
    if offset < segments[0].start:
        return 0
    starts = [s.start for s in segments]
    idx = bisect_right(starts, offset) - 1
    return max(0, min(idx, len(segments) - 1))


class SegmentMapper:
    """Holds the segment map of both panes and maps offsets between them."""

    def __init__(self) -> None:
        self._segments: dict[Pane, list[Segment]] = {Pane.SOURCE: [], Pane.TRANSLATED: []}

    def rebuild(self, source: PaneLayout, translated: PaneLayout) -> None:
        """Replace both segment maps wholesale from freshly measured layouts."""
        self._segments = {
            Pane.SOURCE: build_segments(source),
            Pane.TRANSLATED: build_segments(translated),
        }

    def clear(self) -> None:
        self._segments = {Pane.SOURCE: [], Pane.TRANSLATED: []}

    def segments(self, pane: Pane) -> list[Segment]:
        return list(self._segments[pane])

    @property
    def ready(self) -> bool:
        return bool(self._segments[Pane.SOURCE]) and bool(self._segments[Pane.TRANSLATED])

    def map_position(self, from_pane: Pane, offset: float) -> float | None:
        """Map a scroll offset in from_pane to the equivalent offset in the other pane.

        Returns None when either pane has no segments yet. Offsets outside the
        source pane's segments are clamped into the nearest segment. When the panes have
        different block counts (incremental rendering), the target index is
        clamped to the target's last segment.
        """
        source_segs = self._segments[from_pane]
        target_segs = self._segments[from_pane.other]
        if not source_segs or not target_segs:
            return None

        idx = locate(source_segs, offset)
        seg = source_segs[idx]
        extent = seg.extent if seg.extent > 0 else 1.0
        ratio = min(1.0, max(0.0, (offset - seg.start) / extent))

        target = target_segs[min(idx, len(target_segs) - 1)]
        target_extent = target.extent if target.extent > 0 else 1.0
        return target.start + ratio * target_extent

    def page_at(self, pane: Pane, offset: float) -> int | None:
        """1-based page number whose segment contains offset."""
        segs = self._segments[pane]
        if not segs:
            return None
        return locate(segs, offset) + 1
