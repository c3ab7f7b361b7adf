"""Shared data models for Lockstep Reader."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Literal, Union


@dataclass(frozen=True)
class Segment:
    """A block's occupied span within a pane's scroll coordinate space."""

    start: float
    extent: float  # always >= 1

    @property
    def end(self) -> float:
        return self.start + self.extent


@dataclass(frozen=True)
class PaneLayout:
    """Measured layout of one pane: block leading offsets plus total scrollable extent."""

    starts: list[float]
    scrollable_extent: float


# Page translation states. Absence of an entry in the scheduler means Idle.


@dataclass(frozen=True)
class Idle:
    status: Literal["idle"] = "idle"


@dataclass(frozen=True)
class Queued:
    status: Literal["queued"] = "queued"


@dataclass(frozen=True)
class Translating:
    status: Literal["translating"] = "translating"


@dataclass(frozen=True)
class Done:
    content: str
    status: Literal["done"] = "done"


@dataclass(frozen=True)
class Error:
    message: str
    status: Literal["error"] = "error"


PageState = Union[Idle, Queued, Translating, Done, Error]

IDLE = Idle()
QUEUED = Queued()
TRANSLATING = Translating()


@dataclass
class BatchTask:
    """A pending page translation waiting in the scheduler queue."""

    page_number: int
    source_text: str
    priority: int
    future: asyncio.Future[str] = field(repr=False)


@dataclass(frozen=True)
class DocumentInfo:
    page_count: int
    fingerprint: str
    name: str = ""


@dataclass(frozen=True)
class PageSize:
    width: float
    height: float


@dataclass(frozen=True)
class TextBlock:
    """A line-grouped run of text on a page, with a stable cross-session ID."""

    block_id: str
    page_number: int
    text: str
    bbox: tuple[float, float, float, float]  # x, y, width, height
    kind: str = "paragraph"  # "heading", "short" or "paragraph"


@dataclass(frozen=True)
class BlockTranslation:
    source: str
    translated: str


@dataclass(frozen=True)
class CacheStats:
    count: int
    total_bytes: int


@dataclass(frozen=True)
class QueueStatus:
    pending: int
    active: int
    cooldown_seconds: int
