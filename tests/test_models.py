"""Tests for core data models and error types."""

import dataclasses

import pytest

from lsr.core.errors import (
    CooldownError,
    ErrorKind,
    QueueClearedError,
    TranslationError,
    looks_rate_limited,
)
from lsr.core.models import (
    IDLE,
    QUEUED,
    TRANSLATING,
    Done,
    Error,
    Segment,
    TextBlock,
)


def test_segment_end():
    seg = Segment(start=100.0, extent=50.0)
    assert seg.end == 150.0


def test_page_state_statuses():
    assert IDLE.status == "idle"
    assert QUEUED.status == "queued"
    assert TRANSLATING.status == "translating"
    assert Done(content="x").status == "done"
    assert Error(message="boom").status == "error"


def test_page_states_are_immutable():
    with pytest.raises(dataclasses.FrozenInstanceError):
        Done(content="x").content = "y"


def test_page_states_compare_by_value():
    assert Done(content="a") == Done(content="a")
    assert Error(message="a") != Done(content="a")


def test_text_block_defaults():
    block = TextBlock(block_id="abc_p1_b0", page_number=1, text="Hi", bbox=(0, 0, 10, 10))
    assert block.kind == "paragraph"


def test_cooldown_error_message():
    err = CooldownError(15)
    assert str(err) == "Rate limit cooldown. Please wait 15s"
    assert err.kind is ErrorKind.RATE_LIMIT
    assert err.remaining_seconds == 15
    assert isinstance(err, TranslationError)


def test_translation_error_default_kind():
    assert TranslationError("timeout").kind is ErrorKind.TRANSIENT


def test_queue_cleared_message():
    assert str(QueueClearedError()) == "Queue cleared"


@pytest.mark.parametrize(
    "message,expected",
    [
        ("You exceeded your current quota", True),
        ("Rate limit reached for requests", True),
        ("Resource has been exhausted (e.g. check quota).", True),
        ("Connection reset by peer", False),
    ],
)
def test_looks_rate_limited(message, expected):
    assert looks_rate_limited(message) is expected
