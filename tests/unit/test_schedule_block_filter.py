"""Unit tests for schedule block selection."""

from datetime import date, datetime, time

import pytest

from booking_engine.models.schedule_block import ScheduleBlockStatus
from booking_engine.services.schedule_blocks import ScheduleBlockFilter
from tests.fixtures.scheduling_fixtures import MONDAY, make_block


@pytest.mark.unit
class TestScheduleBlockFilter:
    """Unit tests for ScheduleBlockFilter."""

    def setup_method(self):
        self.filter = ScheduleBlockFilter()

    def test_only_approved_blocks_apply(self):
        blocks = [
            make_block(MONDAY, block_id="approved"),
            make_block(MONDAY, status=ScheduleBlockStatus.PENDING, block_id="pending"),
            make_block(MONDAY, status=ScheduleBlockStatus.REJECTED, block_id="rejected"),
        ]

        partition = self.filter.for_date(blocks, MONDAY)

        assert [b.id for b in partition.full_day] == ["approved"]

    def test_partition_by_kind(self):
        full = make_block(date(2024, 3, 17), date(2024, 3, 19), block_id="full")
        partial = make_block(
            MONDAY, start_time=time(14, 0), end_time=time(15, 0), block_id="partial"
        )

        partition = self.filter.for_date([full, partial], MONDAY)

        assert partition.is_fully_blocked is True
        assert [b.id for b in partition.partial_day] == ["partial"]

    def test_block_outside_date_is_ignored(self):
        partition = self.filter.for_date([make_block(date(2024, 3, 19))], MONDAY)

        assert partition.has_blocks is False

    def test_windows_span_every_day(self):
        """Partial blocks repeat their window on every covered day of the range."""
        block = make_block(
            MONDAY, date(2024, 3, 19), start_time=time(14, 0), end_time=time(15, 0)
        )

        windows = self.filter.windows(
            [block], datetime(2024, 3, 18, 16, 0), datetime(2024, 3, 19, 16, 0)
        )

        assert [(start, end) for start, end, _ in windows] == [
            (datetime(2024, 3, 18, 14, 0), datetime(2024, 3, 18, 15, 0)),
            (datetime(2024, 3, 19, 14, 0), datetime(2024, 3, 19, 15, 0)),
        ]

    def test_full_day_window_is_whole_day(self):
        windows = self.filter.windows(
            [make_block(MONDAY)], datetime(2024, 3, 18, 10, 0), datetime(2024, 3, 18, 10, 30)
        )

        assert windows[0][:2] == (datetime(2024, 3, 18), datetime(2024, 3, 19))

    def test_block_date_order_validated(self):
        with pytest.raises(ValueError):
            make_block(date(2024, 3, 19), date(2024, 3, 18))

    def test_partial_block_requires_ordered_times(self):
        with pytest.raises(ValueError):
            make_block(MONDAY, start_time=time(15, 0), end_time=time(14, 0))
