from datetime import datetime
from typing import List, Optional, Sequence

import structlog

from booking_engine.core.exceptions import SchedulingValidationError, ValidationErrorKind
from booking_engine.schemas.conflicts import (
    ConflictCheckRequest,
    ConflictEntry,
    ConflictReport,
    ConflictType,
)
from booking_engine.schemas.scheduling import (
    BookedInterval,
    DaySchedule,
    ScheduleBlock,
    TenantScope,
)
from booking_engine.services.intervals import at_time, format_time, overlaps
from booking_engine.services.schedule_blocks import ScheduleBlockFilter
from booking_engine.services.store import SchedulingStore
from booking_engine.services.working_hours import WorkingHoursResolver

logger = structlog.get_logger(__name__)


class ConflictDetector:
    """Checks a proposed booking against bookings, blocks and working hours.

    The report is advisory. Callers creating a booking must repeat the check in
    the transaction that writes it and treat a write-time constraint violation
    as a late PROFESSIONAL_BUSY conflict.
    """

    def __init__(
        self,
        store: SchedulingStore,
        resolver: Optional[WorkingHoursResolver] = None,
        block_filter: Optional[ScheduleBlockFilter] = None,
    ):
        self.store = store
        self.resolver = resolver or WorkingHoursResolver()
        self.block_filter = block_filter or ScheduleBlockFilter()

    async def check_conflicts(
        self, scope: TenantScope, request: ConflictCheckRequest
    ) -> ConflictReport:
        """Fetch everything the candidate could collide with and evaluate it."""
        self._validate(request)
        start_time = request.start_datetime
        end_time = request.end_datetime

        logger.info(
            "Checking conflicts",
            tenant_id=scope.tenant_id,
            professional_id=request.professional_id,
            client_id=request.client_id,
            start=start_time.isoformat(),
            end=end_time.isoformat(),
        )

        working_hours = await self.store.get_working_hours(
            scope.tenant_id, request.professional_id
        )
        blocks = await self.store.get_approved_blocks(
            scope.tenant_id, request.professional_id, start_time.date(), end_time.date()
        )
        professional_bookings = await self.store.get_professional_bookings(
            scope.tenant_id, request.professional_id, start_time, end_time
        )
        client_bookings = []
        if request.client_id:
            client_bookings = await self.store.get_client_bookings(
                scope.tenant_id, request.client_id, start_time, end_time
            )

        report = self.evaluate(
            request, working_hours, blocks, professional_bookings, client_bookings
        )
        logger.info(
            "Conflict check completed",
            professional_id=request.professional_id,
            has_conflict=report.has_conflict,
            conflict_types=[t.value for t in report.conflict_types],
        )
        return report

    def evaluate(
        self,
        request: ConflictCheckRequest,
        working_hours: Sequence[DaySchedule],
        blocks: Sequence[ScheduleBlock],
        professional_bookings: Sequence[BookedInterval],
        client_bookings: Sequence[BookedInterval] = (),
    ) -> ConflictReport:
        """Evaluate every rule against already-fetched data. Never short-circuits."""
        self._validate(request)
        start_time = request.start_datetime
        end_time = request.end_datetime

        conflicts: List[ConflictEntry] = []
        conflicts.extend(
            self._booking_conflicts(
                ConflictType.PROFESSIONAL_BUSY,
                professional_bookings,
                start_time,
                end_time,
                request.exclude_appointment_id,
            )
        )
        if request.client_id:
            conflicts.extend(
                self._booking_conflicts(
                    ConflictType.CLIENT_BUSY,
                    client_bookings,
                    start_time,
                    end_time,
                    request.exclude_appointment_id,
                )
            )
        conflicts.extend(self._blocked_time_conflicts(blocks, start_time, end_time))

        working_hours_conflict = self._working_hours_conflict(
            working_hours, start_time, end_time
        )
        if working_hours_conflict:
            conflicts.append(working_hours_conflict)

        return ConflictReport.from_conflicts(conflicts)

    def _validate(self, request: ConflictCheckRequest) -> None:
        if request.duration_minutes <= 0:
            raise SchedulingValidationError(
                ValidationErrorKind.INVALID_DURATION,
                f"Duration must be a positive number of minutes, got {request.duration_minutes}",
            )

    def _booking_conflicts(
        self,
        conflict_type: ConflictType,
        bookings: Sequence[BookedInterval],
        start_time: datetime,
        end_time: datetime,
        exclude_appointment_id: Optional[str],
    ) -> List[ConflictEntry]:
        conflicts = []
        for booking in bookings:
            if not booking.is_blocking:
                continue
            if exclude_appointment_id and booking.appointment_id == exclude_appointment_id:
                continue
            if not overlaps(start_time, end_time, booking.start_time, booking.end_time):
                continue

            who = "Professional" if conflict_type == ConflictType.PROFESSIONAL_BUSY else "Client"
            conflicts.append(
                ConflictEntry(
                    type=conflict_type,
                    detail=(
                        f"{who} already has appointment {booking.appointment_id} "
                        f"from {format_time(booking.start_time)} to {format_time(booking.end_time)}"
                    ),
                    start_datetime=booking.start_time,
                    end_datetime=booking.end_time,
                    appointment_id=booking.appointment_id,
                )
            )
        return conflicts

    def _blocked_time_conflicts(
        self, blocks: Sequence[ScheduleBlock], start_time: datetime, end_time: datetime
    ) -> List[ConflictEntry]:
        conflicts = []
        seen = set()
        for window_start, window_end, block in self.block_filter.windows(
            blocks, start_time, end_time
        ):
            if not overlaps(start_time, end_time, window_start, window_end):
                continue
            # A multi-day block is reported once
            key = block.id or id(block)
            if key in seen:
                continue
            seen.add(key)

            label = block.block_type.value.replace("_", " ").lower()
            conflicts.append(
                ConflictEntry(
                    type=ConflictType.BLOCKED_TIME,
                    detail=block.reason or f"Professional is unavailable ({label})",
                    start_datetime=window_start,
                    end_datetime=window_end,
                    schedule_block_id=block.id,
                )
            )
        return conflicts

    def _working_hours_conflict(
        self,
        working_hours: Sequence[DaySchedule],
        start_time: datetime,
        end_time: datetime,
    ) -> Optional[ConflictEntry]:
        day = start_time.date()
        schedule = self.resolver.resolve(working_hours, day)

        if schedule is None:
            return ConflictEntry(
                type=ConflictType.OUTSIDE_WORKING_HOURS,
                detail="Professional does not work on this day",
                start_datetime=start_time,
                end_datetime=end_time,
            )

        day_start = at_time(day, schedule.start_time)
        day_end = at_time(day, schedule.end_time)
        if start_time < day_start or end_time > day_end:
            return ConflictEntry(
                type=ConflictType.OUTSIDE_WORKING_HOURS,
                detail=(
                    f"Outside working hours ({schedule.start_time.strftime('%H:%M')} - "
                    f"{schedule.end_time.strftime('%H:%M')})"
                ),
                start_datetime=start_time,
                end_datetime=end_time,
            )

        if schedule.has_break:
            break_start = at_time(day, schedule.break_start)
            break_end = at_time(day, schedule.break_end)
            if overlaps(start_time, end_time, break_start, break_end):
                return ConflictEntry(
                    type=ConflictType.OUTSIDE_WORKING_HOURS,
                    detail=(
                        f"Overlaps the professional's break ({format_time(break_start)} - "
                        f"{format_time(break_end)})"
                    ),
                    start_datetime=break_start,
                    end_datetime=break_end,
                )

        return None
