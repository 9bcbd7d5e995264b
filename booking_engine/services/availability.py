from datetime import date as date_type, datetime, time, timedelta
from typing import List, Optional, Sequence
from zoneinfo import ZoneInfo

import structlog

from booking_engine.core.config import settings
from booking_engine.core.exceptions import SchedulingValidationError, ValidationErrorKind
from booking_engine.schemas.scheduling import (
    AvailabilityOptions,
    DayAvailability,
    DayAvailabilitySummary,
    DaySchedule,
    NextAvailableSlotsQuery,
    ScheduleBlock,
    Slot,
    SlotCheckResult,
    TenantScope,
)
from booking_engine.services.durations import calculate_services_duration, resolve_duration
from booking_engine.services.intervals import at_time, end_of_day, start_of_day
from booking_engine.services.schedule_blocks import ScheduleBlockFilter
from booking_engine.services.slot_generator import SlotGenerator
from booking_engine.services.store import SchedulingStore
from booking_engine.services.working_hours import WorkingHoursResolver

logger = structlog.get_logger(__name__)

SLOT_NOT_FOUND = "SLOT_NOT_FOUND"


class AvailabilityService:
    """Availability queries for professionals.

    Every call is read-only and goes through one ``SchedulingStore``.
    """

    # Days searched by get_next_available_slots, starting with start_from's date
    LOOKAHEAD_DAYS = 60

    def __init__(
        self,
        store: SchedulingStore,
        resolver: Optional[WorkingHoursResolver] = None,
        block_filter: Optional[ScheduleBlockFilter] = None,
        slot_generator: Optional[SlotGenerator] = None,
    ):
        self.store = store
        self.resolver = resolver or WorkingHoursResolver()
        self.block_filter = block_filter or ScheduleBlockFilter()
        self.slot_generator = slot_generator or SlotGenerator()

    async def get_availability(
        self,
        scope: TenantScope,
        professional_id: str,
        day: date_type,
        options: Optional[AvailabilityOptions] = None,
    ) -> DayAvailability:
        """
        Get the slot grid of one professional on one date.

        Args:
            scope: Tenant the professional belongs to
            professional_id: Professional to query
            day: Calendar date in the business timezone
            options: Services or explicit duration setting the slot length

        Returns:
            DayAvailability with every slot marked available or not
        """
        options = options or AvailabilityOptions()
        logger.info(
            "Getting availability",
            tenant_id=scope.tenant_id,
            professional_id=professional_id,
            date=day.isoformat(),
        )

        duration = await resolve_duration(
            self.store, scope.tenant_id, options.service_ids, options.duration
        )
        working_hours = await self.store.get_working_hours(scope.tenant_id, professional_id)

        return await self._day_availability(
            scope, professional_id, day, working_hours, duration
        )

    async def _day_availability(
        self,
        scope: TenantScope,
        professional_id: str,
        day: date_type,
        working_hours: Sequence[DaySchedule],
        duration: int,
        blocks: Optional[Sequence[ScheduleBlock]] = None,
    ) -> DayAvailability:
        schedule = self.resolver.resolve(working_hours, day)
        if schedule is None:
            return DayAvailability(
                professional_id=professional_id, date=day, is_working_day=False
            )

        if blocks is None:
            blocks = await self.store.get_approved_blocks(
                scope.tenant_id, professional_id, day, day
            )
        partition = self.block_filter.for_date(blocks, day)

        if partition.is_fully_blocked:
            logger.debug(
                "Day fully blocked", professional_id=professional_id, date=day.isoformat()
            )
            return DayAvailability(
                professional_id=professional_id,
                date=day,
                is_working_day=True,
                has_blocked_period=True,
                working_hours=schedule,
            )

        if duration <= 0:
            # Requested services resolved to nothing bookable
            return DayAvailability(
                professional_id=professional_id,
                date=day,
                is_working_day=True,
                has_blocked_period=partition.has_blocks,
                working_hours=schedule,
            )

        bookings = await self.store.get_professional_bookings(
            scope.tenant_id, professional_id, start_of_day(day), end_of_day(day)
        )
        slots = self.slot_generator.generate(
            day, schedule, duration, partition.partial_day, bookings
        )

        return DayAvailability(
            professional_id=professional_id,
            date=day,
            slots=slots,
            is_working_day=True,
            has_blocked_period=partition.has_blocks,
            working_hours=schedule,
        )

    async def get_availability_range(
        self,
        scope: TenantScope,
        professional_id: str,
        start_date: date_type,
        end_date: date_type,
        options: Optional[AvailabilityOptions] = None,
    ) -> List[DayAvailabilitySummary]:
        """Summarize availability for every date in ``[start_date, end_date]``."""
        if start_date > end_date:
            raise SchedulingValidationError(
                ValidationErrorKind.INVALID_DATE_RANGE,
                f"start_date {start_date.isoformat()} is after end_date {end_date.isoformat()}",
            )

        options = options or AvailabilityOptions()
        duration = await resolve_duration(
            self.store, scope.tenant_id, options.service_ids, options.duration
        )
        working_hours = await self.store.get_working_hours(scope.tenant_id, professional_id)
        blocks = await self.store.get_approved_blocks(
            scope.tenant_id, professional_id, start_date, end_date
        )

        summaries = []
        current = start_date
        while current <= end_date:
            day = await self._day_availability(
                scope, professional_id, current, working_hours, duration, blocks
            )
            slot_count = len(day.available_slots)
            summaries.append(
                DayAvailabilitySummary(
                    date=current, available=slot_count > 0, slot_count=slot_count
                )
            )
            current += timedelta(days=1)

        logger.info(
            "Availability range computed",
            professional_id=professional_id,
            start_date=start_date.isoformat(),
            end_date=end_date.isoformat(),
            available_days=sum(1 for s in summaries if s.available),
        )
        return summaries

    async def get_next_available_slots(
        self,
        scope: TenantScope,
        professional_id: str,
        query: Optional[NextAvailableSlotsQuery] = None,
    ) -> List[Slot]:
        """
        Find the earliest available slots from ``start_from`` onwards.

        Walks one day at a time for at most LOOKAHEAD_DAYS days and stops as soon
        as ``limit`` slots were collected. Slots starting before ``start_from``
        are skipped.
        """
        query = query or NextAvailableSlotsQuery()
        limit = query.limit if query.limit is not None else settings.NEXT_AVAILABLE_DEFAULT_LIMIT
        if limit <= 0:
            raise SchedulingValidationError(
                ValidationErrorKind.INVALID_LIMIT,
                f"limit must be a positive integer, got {limit}",
            )

        start_from = query.start_from or self._now()
        duration = await resolve_duration(
            self.store, scope.tenant_id, query.service_ids, query.duration
        )
        working_hours = await self.store.get_working_hours(scope.tenant_id, professional_id)

        first_day = start_from.date()
        last_day = first_day + timedelta(days=self.LOOKAHEAD_DAYS - 1)
        blocks = await self.store.get_approved_blocks(
            scope.tenant_id, professional_id, first_day, last_day
        )

        found: List[Slot] = []
        for offset in range(self.LOOKAHEAD_DAYS):
            day = first_day + timedelta(days=offset)
            availability = await self._day_availability(
                scope, professional_id, day, working_hours, duration, blocks
            )
            for slot in availability.available_slots:
                if slot.start_datetime < start_from:
                    continue
                found.append(slot)
                if len(found) >= limit:
                    break
            if len(found) >= limit:
                break

        logger.info(
            "Next available slots search completed",
            professional_id=professional_id,
            start_from=start_from.isoformat(),
            requested=limit,
            found=len(found),
        )
        return found

    def _now(self) -> datetime:
        # Wall-clock time in the business timezone, naive like all engine datetimes
        return datetime.now(ZoneInfo(settings.BUSINESS_TIMEZONE)).replace(tzinfo=None)

    async def is_slot_available(
        self,
        scope: TenantScope,
        professional_id: str,
        day: date_type,
        slot_time: time,
        options: Optional[AvailabilityOptions] = None,
    ) -> SlotCheckResult:
        """Check one grid slot. Times that are not on the grid report SLOT_NOT_FOUND."""
        availability = await self.get_availability(scope, professional_id, day, options)
        target = at_time(day, slot_time)

        slot = next(
            (s for s in availability.slots if s.start_datetime == target), None
        )
        if slot is None:
            return SlotCheckResult(available=False, reason=SLOT_NOT_FOUND)

        return SlotCheckResult(
            available=slot.is_available,
            reason=slot.reason.value if slot.reason else None,
            appointment_id=slot.appointment_id,
        )

    async def get_professionals_availability(
        self,
        scope: TenantScope,
        professional_ids: Sequence[str],
        day: date_type,
        options: Optional[AvailabilityOptions] = None,
    ) -> List[DayAvailability]:
        """One DayAvailability per professional, in the order given."""
        return [
            await self.get_availability(scope, professional_id, day, options)
            for professional_id in professional_ids
        ]

    async def calculate_services_duration(
        self, scope: TenantScope, service_ids: Sequence[str]
    ) -> int:
        return await calculate_services_duration(self.store, scope.tenant_id, service_ids)
