"""Tests for bidirectional scroll synchronization and echo suppression."""

import pytest

from lsr.core.models import PaneLayout
from lsr.sync.scroll import ScrollCoordinator
from lsr.sync.segments import Pane, SegmentMapper


@pytest.fixture
def writes():
    return []


@pytest.fixture
def coordinator(writes):
    mapper = SegmentMapper()
    mapper.rebuild(
        PaneLayout(starts=[0, 1000, 2000], scrollable_extent=3000),
        PaneLayout(starts=[0, 500, 1000], scrollable_extent=1500),
    )
    return ScrollCoordinator(mapper, lambda pane, offset: writes.append((pane, offset)))


class TestSyncNow:
    def test_user_scroll_writes_other_pane(self, coordinator, writes):
        result = coordinator.sync_now(Pane.SOURCE, 1500)
        assert result == pytest.approx(750)
        assert writes == [(Pane.TRANSLATED, pytest.approx(750))]
        assert coordinator.generation == 1

    def test_echo_is_consumed(self, coordinator, writes):
        coordinator.sync_now(Pane.SOURCE, 1500)
        # The translated pane reports the programmatic write back
        assert coordinator.sync_now(Pane.TRANSLATED, 750) is None
        assert len(writes) == 1

    def test_no_ping_pong(self, coordinator, writes):
        coordinator.sync_now(Pane.SOURCE, 1200)
        # Host reflects every write back as a scroll event on that pane
        seen = 0
        while seen < len(writes) and seen < 10:
            pane, offset = writes[seen]
            seen += 1
            coordinator.sync_now(pane, offset)
        assert len(writes) == 1

    def test_echo_within_tolerance(self, coordinator, writes):
        coordinator.sync_now(Pane.SOURCE, 1501)  # -> 750.5
        assert coordinator.sync_now(Pane.TRANSLATED, 750) is None
        assert len(writes) == 1

    def test_user_scroll_on_target_after_echo(self, coordinator, writes):
        coordinator.sync_now(Pane.SOURCE, 1500)
        coordinator.sync_now(Pane.TRANSLATED, 750)
        # Now the user scrolls the translated pane itself
        assert coordinator.sync_now(Pane.TRANSLATED, 1250) == pytest.approx(2500)
        assert writes[-1] == (Pane.SOURCE, pytest.approx(2500))

    def test_clamped_echo_is_consumed(self, coordinator, writes):
        # Source bottom maps past the translated pane's maximum scroll offset
        assert coordinator.sync_now(Pane.SOURCE, 3000) == pytest.approx(1500)
        # Host clamps to scrollable_extent - viewport and reports that instead
        assert coordinator.sync_now(Pane.TRANSLATED, 1200) is None
        assert writes == [(Pane.TRANSLATED, pytest.approx(1500))]
        # The next event on the translated pane is the user again
        assert coordinator.sync_now(Pane.TRANSLATED, 1100) == pytest.approx(2200)

    def test_writer_reports_applied_offset(self, writes):
        mapper = SegmentMapper()
        mapper.rebuild(
            PaneLayout(starts=[0, 1000, 2000], scrollable_extent=3000),
            PaneLayout(starts=[0, 500, 1000], scrollable_extent=1500),
        )

        def clamping_writer(pane, offset):
            writes.append((pane, offset))
            return min(offset, 1200)

        coordinator = ScrollCoordinator(mapper, clamping_writer)
        coordinator.sync_now(Pane.SOURCE, 2900)
        coordinator.sync_now(Pane.SOURCE, 3000)
        # Both writes clamp to 1200; the second one does not move the pane
        assert coordinator.sync_now(Pane.TRANSLATED, 1200) is None
        assert coordinator.sync_now(Pane.TRANSLATED, 1000) == pytest.approx(2000)
        assert len(writes) == 3

    def test_clamped_echoes_at_bottom_do_not_jitter(self, coordinator, writes):
        # Host reflects every write back, clamped to a maximum of 1200
        for offset in (2800, 2900, 3000):
            coordinator.sync_now(Pane.SOURCE, offset)
            pane, written = writes[-1]
            coordinator.sync_now(pane, min(written, 1200))
        assert all(pane is Pane.TRANSLATED for pane, _ in writes)
        assert len(writes) == 3

    def test_multiple_outstanding_echoes(self, coordinator, writes):
        coordinator.sync_now(Pane.SOURCE, 1000)  # -> 500
        coordinator.sync_now(Pane.SOURCE, 1200)  # -> 600
        # Echoes may arrive coalesced: only the latest shows up
        assert coordinator.sync_now(Pane.TRANSLATED, 600) is None
        assert len(writes) == 2

    def test_not_ready_is_noop(self, writes):
        coordinator = ScrollCoordinator(SegmentMapper(), lambda p, o: writes.append((p, o)))
        assert coordinator.sync_now(Pane.SOURCE, 100) is None
        assert writes == []
        assert coordinator.generation == 0


class TestFlush:
    def test_one_mapping_per_frame(self, coordinator, writes):
        for offset in (100, 200, 300, 400):
            assert coordinator.on_scroll(Pane.SOURCE, offset) is True
        assert coordinator.flush() == pytest.approx(200)
        assert writes == [(Pane.TRANSLATED, pytest.approx(200))]

    def test_flush_without_pending(self, coordinator, writes):
        assert coordinator.flush() is None
        assert writes == []

    def test_echo_not_pending(self, coordinator, writes):
        coordinator.on_scroll(Pane.SOURCE, 1500)
        coordinator.flush()
        assert coordinator.on_scroll(Pane.TRANSLATED, 750) is False
        assert coordinator.flush() is None

    def test_reset_forgets_pending_and_echoes(self, coordinator, writes):
        coordinator.sync_now(Pane.SOURCE, 1500)
        coordinator.on_scroll(Pane.SOURCE, 100)
        coordinator.reset()
        assert coordinator.flush() is None
        # Former echo offset is now a genuine scroll
        assert coordinator.sync_now(Pane.TRANSLATED, 750) == pytest.approx(1500)
