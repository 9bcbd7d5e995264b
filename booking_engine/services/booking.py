from datetime import date, timedelta
from typing import Optional

import structlog

from booking_engine.core.exceptions import SchedulingValidationError, ValidationErrorKind
from booking_engine.schemas.booking import BookingPlan, BookingRequest, PlannedOccurrence
from booking_engine.schemas.conflicts import ConflictCheckRequest
from booking_engine.schemas.scheduling import TenantScope
from booking_engine.services.conflict_detector import ConflictDetector
from booking_engine.services.durations import resolve_duration
from booking_engine.services.recurrence import RecurrenceEngine
from booking_engine.services.store import SchedulingStore

logger = structlog.get_logger(__name__)


class BookingPlanner:
    """Turns a booking request into a checked plan of appointments.

    Nothing is written. The caller persists the plan and must re-run the conflict
    check inside its writing transaction.
    """

    def __init__(
        self,
        store: SchedulingStore,
        conflict_detector: Optional[ConflictDetector] = None,
        recurrence_engine: Optional[RecurrenceEngine] = None,
    ):
        self.store = store
        self.conflict_detector = conflict_detector or ConflictDetector(store)
        self.recurrence_engine = recurrence_engine or RecurrenceEngine()

    async def plan_booking(
        self, scope: TenantScope, request: BookingRequest, today: Optional[date] = None
    ) -> BookingPlan:
        """
        Expand a booking request and check every occurrence for conflicts.

        Args:
            scope: Tenant the booking belongs to
            request: Professional, client, start, services and recurrence
            today: Reference date for recurrence end-date validation

        Returns:
            BookingPlan with one conflict report per occurrence

        Raises:
            SchedulingValidationError: invalid duration or recurrence pattern
        """
        duration = await resolve_duration(
            self.store, scope.tenant_id, request.service_ids, request.duration_minutes
        )
        if duration <= 0:
            raise SchedulingValidationError(
                ValidationErrorKind.INVALID_DURATION,
                "None of the requested services is bookable",
            )

        self.recurrence_engine.ensure_valid_pattern(
            request.recurrence, today=today, anchor=request.start_datetime
        )
        occurrences = self.recurrence_engine.generate_occurrences(
            request.start_datetime, request.recurrence
        )

        recurrence_group_id = None
        if request.recurrence.is_recurring:
            recurrence_group_id = self.recurrence_engine.generate_recurrence_group_id()

        planned = []
        for occurrence in occurrences:
            start_time = occurrence.date
            report = await self.conflict_detector.check_conflicts(
                scope,
                ConflictCheckRequest(
                    professional_id=request.professional_id,
                    client_id=request.client_id,
                    start_datetime=start_time,
                    duration_minutes=duration,
                    exclude_appointment_id=request.exclude_appointment_id,
                ),
            )
            planned.append(
                PlannedOccurrence(
                    index=occurrence.index,
                    start_datetime=start_time,
                    end_datetime=start_time + timedelta(minutes=duration),
                    is_last=occurrence.is_last,
                    report=report,
                )
            )

        plan = BookingPlan(
            recurrence_group_id=recurrence_group_id,
            duration_minutes=duration,
            occurrences=planned,
        )
        logger.info(
            "Booking planned",
            tenant_id=scope.tenant_id,
            professional_id=request.professional_id,
            occurrences=len(planned),
            conflicting=len(plan.conflicting_occurrences),
            recurrence=self.recurrence_engine.get_recurrence_description(request.recurrence),
        )
        return plan
