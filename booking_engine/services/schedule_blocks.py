from datetime import date, datetime
from typing import Iterable, List, Tuple

from booking_engine.schemas.scheduling import BlockPartition, ScheduleBlock
from booking_engine.services.intervals import at_time, days_spanned, end_of_day, start_of_day


class ScheduleBlockFilter:
    """Selects the approved blocks relevant to a date and splits them by kind."""

    def approved(self, blocks: Iterable[ScheduleBlock]) -> List[ScheduleBlock]:
        return [block for block in blocks if block.is_approved]

    def overlapping(
        self, blocks: Iterable[ScheduleBlock], start_date: date, end_date: date
    ) -> List[ScheduleBlock]:
        """Approved blocks whose date span intersects ``[start_date, end_date]``."""
        return [
            block
            for block in self.approved(blocks)
            if block.start_date <= end_date and block.end_date >= start_date
        ]

    def for_date(self, blocks: Iterable[ScheduleBlock], day: date) -> BlockPartition:
        partition = BlockPartition()
        for block in self.overlapping(blocks, day, day):
            if block.is_all_day:
                partition.full_day.append(block)
            else:
                partition.partial_day.append(block)
        return partition

    def windows(
        self, blocks: Iterable[ScheduleBlock], start: datetime, end: datetime
    ) -> List[Tuple[datetime, datetime, ScheduleBlock]]:
        """Concrete blocked intervals for every date touched by ``[start, end)``.

        A full-day block yields the whole day; a partial block yields its time
        window on each date it covers.
        """
        windows = []
        for day in days_spanned(start, end):
            partition = self.for_date(blocks, day)
            for block in partition.full_day:
                windows.append((start_of_day(day), end_of_day(day), block))
            for block in partition.partial_day:
                windows.append(
                    (at_time(day, block.start_time), at_time(day, block.end_time), block)
                )
        return windows
