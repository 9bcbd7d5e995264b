"""Unit tests for conflict detection against an in-memory store."""

from datetime import datetime, time, timezone

import pytest

from booking_engine.core.exceptions import (
    SchedulingValidationError,
    StoreUnavailableError,
    ValidationErrorKind,
)
from booking_engine.models.appointment import AppointmentStatus
from booking_engine.models.schedule_block import ScheduleBlockStatus
from booking_engine.schemas.conflicts import ConflictCheckRequest, ConflictType
from booking_engine.services.conflict_detector import ConflictDetector
from tests.fixtures.scheduling_fixtures import (
    CLIENT_ID,
    MONDAY,
    PROFESSIONAL_ID,
    make_block,
    make_booking,
)


def candidate(
    hour: int,
    minute: int = 0,
    duration: int = 30,
    day=MONDAY,
    client_id=None,
    exclude_appointment_id=None,
) -> ConflictCheckRequest:
    return ConflictCheckRequest(
        professional_id=PROFESSIONAL_ID,
        client_id=client_id,
        start_datetime=datetime.combine(day, time(hour, minute)),
        duration_minutes=duration,
        exclude_appointment_id=exclude_appointment_id,
    )


@pytest.fixture
def detector(store, resolver) -> ConflictDetector:
    return ConflictDetector(store, resolver=resolver)


@pytest.mark.unit
class TestConflictDetector:
    """Unit tests for ConflictDetector.check_conflicts."""

    @pytest.mark.asyncio
    async def test_free_slot_has_no_conflict(self, detector, scope):
        """A candidate inside working hours with nothing booked is clean."""
        report = await detector.check_conflicts(scope, candidate(10))

        assert report.has_conflict is False
        assert report.conflicts == []

    @pytest.mark.asyncio
    async def test_aware_candidate_is_checked_in_wall_clock(self, detector, store, scope):
        """An aware start is normalized before overlap checks."""
        store.add_booking(
            make_booking("appt-1", datetime(2024, 3, 18, 10, 0), datetime(2024, 3, 18, 10, 30))
        )
        request = ConflictCheckRequest(
            professional_id=PROFESSIONAL_ID,
            start_datetime=datetime(2024, 3, 18, 10, 15, tzinfo=timezone.utc),
            duration_minutes=30,
        )

        report = await detector.check_conflicts(scope, request)

        assert report.conflict_types == [ConflictType.PROFESSIONAL_BUSY]

    @pytest.mark.asyncio
    async def test_professional_busy(self, detector, store, scope):
        """An overlapping booking of the professional is reported with its id."""
        store.add_booking(
            make_booking("appt-1", datetime(2024, 3, 18, 10, 0), datetime(2024, 3, 18, 11, 0))
        )

        report = await detector.check_conflicts(scope, candidate(10, 30))

        assert report.has_conflict is True
        assert report.conflict_types == [ConflictType.PROFESSIONAL_BUSY]
        assert report.conflicts[0].appointment_id == "appt-1"
        assert report.conflicts[0].start_datetime == datetime(2024, 3, 18, 10, 0)

    @pytest.mark.asyncio
    async def test_one_entry_per_overlapping_booking(self, detector, store, scope):
        """Each overlapping booking produces its own entry."""
        store.add_booking(
            make_booking("appt-1", datetime(2024, 3, 18, 10, 0), datetime(2024, 3, 18, 10, 30))
        )
        store.add_booking(
            make_booking("appt-2", datetime(2024, 3, 18, 10, 30), datetime(2024, 3, 18, 11, 0))
        )

        report = await detector.check_conflicts(scope, candidate(10, duration=60))

        assert [c.appointment_id for c in report.conflicts] == ["appt-1", "appt-2"]

    @pytest.mark.asyncio
    async def test_touching_booking_is_not_a_conflict(self, detector, store, scope):
        """Intervals sharing only a boundary do not overlap."""
        store.add_booking(
            make_booking("appt-1", datetime(2024, 3, 18, 10, 0), datetime(2024, 3, 18, 10, 30))
        )

        report = await detector.check_conflicts(scope, candidate(10, 30))

        assert report.has_conflict is False

    def test_cancelled_booking_is_not_a_conflict(self, detector):
        """Cancelled bookings are ignored even when handed to evaluate directly."""
        cancelled = make_booking(
            "appt-1",
            datetime(2024, 3, 18, 10, 0),
            datetime(2024, 3, 18, 11, 0),
            status=AppointmentStatus.CANCELLED,
        )

        report = detector.evaluate(candidate(10), [], [], [cancelled])

        assert ConflictType.PROFESSIONAL_BUSY not in report.conflict_types

    @pytest.mark.asyncio
    async def test_self_exclusion(self, detector, store, scope):
        """Rescheduling an appointment does not conflict with itself."""
        store.add_booking(
            make_booking(
                "appt-1",
                datetime(2024, 3, 18, 10, 0),
                datetime(2024, 3, 18, 10, 30),
                client_id=CLIENT_ID,
            )
        )

        report = await detector.check_conflicts(
            scope, candidate(10, 15, client_id=CLIENT_ID, exclude_appointment_id="appt-1")
        )

        assert report.has_conflict is False

    @pytest.mark.asyncio
    async def test_client_busy_with_other_professional(self, detector, store, scope):
        """A client booked elsewhere at the same time is reported as CLIENT_BUSY."""
        store.add_booking(
            make_booking(
                "appt-9",
                datetime(2024, 3, 18, 10, 0),
                datetime(2024, 3, 18, 11, 0),
                professional_id="pro-2",
                client_id=CLIENT_ID,
            )
        )

        report = await detector.check_conflicts(scope, candidate(10, client_id=CLIENT_ID))

        assert report.conflict_types == [ConflictType.CLIENT_BUSY]
        assert report.conflicts[0].appointment_id == "appt-9"

    @pytest.mark.asyncio
    async def test_client_not_checked_without_client_id(self, detector, store, scope):
        """No client id means no client lookup at all."""
        await detector.check_conflicts(scope, candidate(10))

        assert "get_client_bookings" not in store.calls

    @pytest.mark.asyncio
    async def test_full_day_vacation_is_blocked_time(self, detector, store, scope):
        """An approved full-day vacation covering the date blocks the candidate."""
        store.add_block(make_block(MONDAY))

        report = await detector.check_conflicts(scope, candidate(10))

        assert report.conflict_types == [ConflictType.BLOCKED_TIME]
        assert report.conflicts[0].schedule_block_id == "block-1"

    @pytest.mark.asyncio
    async def test_multi_day_block_reported_once(self, detector, store, scope):
        """A block spanning several days yields a single entry."""
        store.add_block(make_block(datetime(2024, 3, 17).date(), datetime(2024, 3, 20).date()))

        report = await detector.check_conflicts(scope, candidate(10))

        assert report.conflict_types.count(ConflictType.BLOCKED_TIME) == 1

    @pytest.mark.asyncio
    async def test_partial_block_only_when_overlapping(self, detector, store, scope):
        """A partial-day block conflicts only with candidates inside its window."""
        store.add_block(make_block(MONDAY, start_time=time(14, 0), end_time=time(15, 0)))

        inside = await detector.check_conflicts(scope, candidate(14, 30))
        outside = await detector.check_conflicts(scope, candidate(15, 0))

        assert inside.conflict_types == [ConflictType.BLOCKED_TIME]
        assert outside.has_conflict is False

    @pytest.mark.asyncio
    async def test_pending_block_is_ignored(self, detector, store, scope):
        """Only approved blocks take effect."""
        store.add_block(make_block(MONDAY, status=ScheduleBlockStatus.PENDING))

        report = await detector.check_conflicts(scope, candidate(10))

        assert report.has_conflict is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "hour,minute",
        [(8, 30), (16, 45), (17, 0)],
    )
    async def test_outside_working_hours(self, detector, scope, hour, minute):
        """Candidates starting early or running past closing are rejected."""
        report = await detector.check_conflicts(scope, candidate(hour, minute))

        assert report.conflict_types == [ConflictType.OUTSIDE_WORKING_HOURS]

    @pytest.mark.asyncio
    async def test_candidate_ending_at_close_is_valid(self, detector, scope):
        """The last grid slot ends exactly at closing time."""
        report = await detector.check_conflicts(scope, candidate(16, 30))

        assert report.has_conflict is False

    @pytest.mark.asyncio
    async def test_break_overlap(self, detector, scope):
        """A candidate intersecting the break is outside working hours."""
        report = await detector.check_conflicts(scope, candidate(11, 45))

        assert report.conflict_types == [ConflictType.OUTSIDE_WORKING_HOURS]
        assert "break" in report.conflicts[0].detail

    @pytest.mark.asyncio
    async def test_non_working_day(self, detector, scope):
        """Saturday has no working hours entry."""
        report = await detector.check_conflicts(
            scope, candidate(10, day=datetime(2024, 3, 23).date())
        )

        assert report.conflict_types == [ConflictType.OUTSIDE_WORKING_HOURS]
        assert report.conflicts[0].detail == "Professional does not work on this day"

    @pytest.mark.asyncio
    async def test_all_conflicts_are_reported(self, detector, store, scope):
        """Checks never short-circuit: every violated rule shows up."""
        store.add_block(make_block(MONDAY))
        store.add_booking(
            make_booking(
                "appt-1",
                datetime(2024, 3, 18, 16, 30),
                datetime(2024, 3, 18, 17, 0),
                client_id=CLIENT_ID,
            )
        )

        report = await detector.check_conflicts(
            scope, candidate(16, 45, client_id=CLIENT_ID)
        )

        assert set(report.conflict_types) == {
            ConflictType.PROFESSIONAL_BUSY,
            ConflictType.CLIENT_BUSY,
            ConflictType.BLOCKED_TIME,
            ConflictType.OUTSIDE_WORKING_HOURS,
        }

    @pytest.mark.asyncio
    async def test_other_tenant_sees_no_working_hours(self, detector, other_scope):
        """Data from another tenant is never visible."""
        report = await detector.check_conflicts(other_scope, candidate(10))

        assert report.conflict_types == [ConflictType.OUTSIDE_WORKING_HOURS]

    @pytest.mark.asyncio
    async def test_zero_duration_rejected(self, detector, scope):
        """A non-positive duration is a validation error, not a conflict."""
        with pytest.raises(SchedulingValidationError) as exc_info:
            await detector.check_conflicts(scope, candidate(10, duration=0))

        assert exc_info.value.kind == ValidationErrorKind.INVALID_DURATION

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, detector, store, scope):
        """Store outages surface as retryable StoreUnavailableError."""
        store.failing.add("get_professional_bookings")

        with pytest.raises(StoreUnavailableError) as exc_info:
            await detector.check_conflicts(scope, candidate(10))

        assert exc_info.value.retryable is True
        assert exc_info.value.operation == "get_professional_bookings"

    def test_evaluate_does_not_mutate_inputs(self, detector, weekday_hours):
        """evaluate works on fetched data and leaves it untouched."""
        bookings = [
            make_booking("appt-1", datetime(2024, 3, 18, 10, 0), datetime(2024, 3, 18, 11, 0))
        ]
        blocks = [make_block(MONDAY, start_time=time(10, 0), end_time=time(10, 30))]
        snapshot = ([b.model_copy() for b in bookings], [b.model_copy() for b in blocks])

        report = detector.evaluate(candidate(10), weekday_hours, blocks, bookings)

        assert report.has_conflict is True
        assert (bookings, blocks) == snapshot
