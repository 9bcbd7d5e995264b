from datetime import date, datetime, timedelta
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

import structlog

from booking_engine.core.exceptions import SchedulingValidationError, ValidationErrorKind
from booking_engine.schemas.scheduling import (
    BookedInterval,
    DaySchedule,
    ScheduleBlock,
    Slot,
    SlotUnavailableReason,
)
from booking_engine.services.intervals import at_time, format_time, overlaps

logger = structlog.get_logger(__name__)


class SlotGenerator:
    """Builds the fixed grid of candidate slots for one working day."""

    def iter_grid(
        self, day: date, schedule: DaySchedule, slot_duration: int
    ) -> Iterator[Tuple[datetime, datetime]]:
        """Yield contiguous ``(start, end)`` pairs that fit inside working hours."""
        if slot_duration <= 0:
            raise SchedulingValidationError(
                ValidationErrorKind.INVALID_DURATION,
                f"Slot duration must be positive, got {slot_duration}",
            )

        step = timedelta(minutes=slot_duration)
        current = at_time(day, schedule.start_time)
        day_end = at_time(day, schedule.end_time)

        while current + step <= day_end:
            yield current, current + step
            current += step

    def generate(
        self,
        day: date,
        schedule: DaySchedule,
        slot_duration: int,
        partial_blocks: Sequence[ScheduleBlock] = (),
        bookings: Iterable[BookedInterval] = (),
    ) -> List[Slot]:
        """Generate the day's slots and mark each one.

        Marks are checked in order: break, partial-day block, booking. A slot
        that clears all three is available.
        """
        break_window = None
        if schedule.has_break:
            break_window = (
                at_time(day, schedule.break_start),
                at_time(day, schedule.break_end),
            )

        block_windows = [
            (at_time(day, block.start_time), at_time(day, block.end_time))
            for block in partial_blocks
            if not block.is_all_day
        ]
        active_bookings = [booking for booking in bookings if booking.is_blocking]

        slots = []
        for slot_start, slot_end in self.iter_grid(day, schedule, slot_duration):
            reason, appointment_id = self._mark(
                slot_start, slot_end, break_window, block_windows, active_bookings
            )
            slots.append(
                Slot(
                    time=format_time(slot_start),
                    start_datetime=slot_start,
                    end_datetime=slot_end,
                    is_available=reason is None,
                    reason=reason,
                    appointment_id=appointment_id,
                )
            )

        logger.debug(
            "Generated slots",
            date=day.isoformat(),
            slot_duration=slot_duration,
            total=len(slots),
            available=sum(1 for slot in slots if slot.is_available),
        )
        return slots

    def _mark(
        self,
        slot_start: datetime,
        slot_end: datetime,
        break_window: Optional[Tuple[datetime, datetime]],
        block_windows: List[Tuple[datetime, datetime]],
        bookings: List[BookedInterval],
    ) -> Tuple[Optional[SlotUnavailableReason], Optional[str]]:
        if break_window and overlaps(slot_start, slot_end, *break_window):
            return SlotUnavailableReason.BREAK, None

        for block_start, block_end in block_windows:
            if overlaps(slot_start, slot_end, block_start, block_end):
                return SlotUnavailableReason.BLOCKED, None

        for booking in bookings:
            if overlaps(slot_start, slot_end, booking.start_time, booking.end_time):
                return SlotUnavailableReason.BOOKED, booking.appointment_id

        return None, None
