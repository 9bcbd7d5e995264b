import calendar
import time
import uuid
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Union

import structlog

from booking_engine.core.exceptions import SchedulingValidationError, ValidationErrorKind
from booking_engine.schemas.recurrence import (
    Occurrence,
    PatternValidation,
    RecurrencePattern,
    RecurrenceType,
)

logger = structlog.get_logger(__name__)

DateLike = Union[date, datetime]


def add_months(value: DateLike, months: int) -> DateLike:
    """Shift by calendar months, clamping the day to the target month's length."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def _as_date(value: DateLike) -> date:
    return value.date() if isinstance(value, datetime) else value


class RecurrenceEngine:
    """Expands recurrence patterns into concrete occurrence dates."""

    # Absolute ceiling, one year of weekly appointments
    MAX_OCCURRENCES = 52

    def generate_occurrences(
        self, anchor: DateLike, pattern: RecurrencePattern
    ) -> List[Occurrence]:
        """Expand ``pattern`` starting at ``anchor``.

        Expansion stops at ``count``, past ``end_date`` or at MAX_OCCURRENCES,
        whichever comes first. The pattern is not validated here; callers run
        ``validate_pattern`` before booking.
        """
        if pattern.type == RecurrenceType.NONE:
            return [Occurrence(date=anchor, index=0, is_last=True)]

        limit = min(pattern.count or self.MAX_OCCURRENCES, self.MAX_OCCURRENCES)
        occurrences = []
        index = 0

        while index < limit:
            candidate = self._nth_occurrence(anchor, pattern, index)
            if pattern.end_date and _as_date(candidate) > pattern.end_date:
                break
            occurrences.append(Occurrence(date=candidate, index=index, is_last=False))
            index += 1

        if occurrences:
            occurrences[-1].is_last = True

        logger.debug(
            "Expanded recurrence",
            type=pattern.type.value,
            interval=pattern.interval,
            occurrences=len(occurrences),
        )
        return occurrences

    def _nth_occurrence(
        self, anchor: DateLike, pattern: RecurrencePattern, n: int
    ) -> DateLike:
        # Offsets are computed from the anchor so monthly series keep their day-of-month
        if pattern.type == RecurrenceType.DAILY:
            return anchor + timedelta(days=pattern.interval * n)
        if pattern.type == RecurrenceType.WEEKLY:
            return anchor + timedelta(weeks=pattern.interval * n)
        if pattern.type == RecurrenceType.BIWEEKLY:
            return anchor + timedelta(weeks=2 * pattern.interval * n)
        if pattern.type == RecurrenceType.MONTHLY:
            return add_months(anchor, pattern.interval * n)
        return anchor

    def get_next_occurrence(
        self, current: DateLike, pattern: RecurrencePattern
    ) -> DateLike:
        """Single step from ``current``. NONE returns ``current`` unchanged."""
        return self._nth_occurrence(current, pattern, 1)

    def validate_pattern(
        self,
        pattern: RecurrencePattern,
        today: Optional[date] = None,
        anchor: Optional[DateLike] = None,
    ) -> PatternValidation:
        """Check bounds before expansion. With ``anchor``, end_date may not precede it."""
        if pattern.type == RecurrenceType.NONE:
            return PatternValidation(valid=True)

        if pattern.count is None and pattern.end_date is None:
            return PatternValidation(
                valid=False,
                error="Recurrence requires either a number of occurrences or an end date",
            )

        if pattern.count is not None and pattern.end_date is not None:
            return PatternValidation(
                valid=False,
                error="Recurrence accepts a number of occurrences or an end date, not both",
            )

        if pattern.count is not None and pattern.count > self.MAX_OCCURRENCES:
            return PatternValidation(
                valid=False,
                error=f"Maximum number of occurrences is {self.MAX_OCCURRENCES}",
            )

        today = today or date.today()
        if pattern.end_date is not None and pattern.end_date < today:
            return PatternValidation(
                valid=False, error="Recurrence end date must not be in the past"
            )

        if (
            anchor is not None
            and pattern.end_date is not None
            and pattern.end_date < _as_date(anchor)
        ):
            return PatternValidation(
                valid=False,
                error="Recurrence end date must not be before the first occurrence",
            )

        return PatternValidation(valid=True)

    def ensure_valid_pattern(
        self,
        pattern: RecurrencePattern,
        today: Optional[date] = None,
        anchor: Optional[DateLike] = None,
    ) -> None:
        """Raise SchedulingValidationError when ``pattern`` is invalid."""
        validation = self.validate_pattern(pattern, today=today, anchor=anchor)
        if not validation.valid:
            raise SchedulingValidationError(
                ValidationErrorKind.INVALID_RECURRENCE, validation.error
            )

    def get_recurrence_description(self, pattern: RecurrencePattern) -> str:
        interval = pattern.interval

        if pattern.type == RecurrenceType.DAILY:
            return "Daily" if interval == 1 else f"Every {interval} days"

        if pattern.type == RecurrenceType.WEEKLY:
            return "Weekly" if interval == 1 else f"Every {interval} weeks"

        if pattern.type == RecurrenceType.BIWEEKLY:
            return "Biweekly" if interval == 1 else f"Every {2 * interval} weeks"

        if pattern.type == RecurrenceType.MONTHLY:
            return "Monthly" if interval == 1 else f"Every {interval} months"

        return "No recurrence"

    def is_date_in_pattern(
        self, day: DateLike, anchor: DateLike, pattern: RecurrencePattern
    ) -> bool:
        target = _as_date(day)
        if pattern.type == RecurrenceType.NONE:
            return target == _as_date(anchor)
        return any(
            _as_date(occurrence.date) == target
            for occurrence in self.generate_occurrences(anchor, pattern)
        )

    def calculate_end_date(
        self, anchor: DateLike, pattern: RecurrencePattern
    ) -> Optional[DateLike]:
        """Date of the series' final occurrence, or None for a single appointment.

        With an ``end_date`` bound this is the last date actually generated, which
        can fall before ``end_date`` itself.
        """
        if pattern.type == RecurrenceType.NONE:
            return None

        occurrences = self.generate_occurrences(anchor, pattern)
        return occurrences[-1].date if occurrences else None

    def expand_with_exclusions(
        self,
        anchor: DateLike,
        pattern: RecurrencePattern,
        excluded_dates: Iterable[DateLike],
    ) -> List[Occurrence]:
        """Expand the pattern and drop occurrences on excluded calendar dates.

        ``index`` keeps its position in the full series; ``is_last`` is recomputed.
        """
        excluded = {_as_date(d) for d in excluded_dates}
        kept = [
            occurrence.model_copy()
            for occurrence in self.generate_occurrences(anchor, pattern)
            if _as_date(occurrence.date) not in excluded
        ]
        for occurrence in kept:
            occurrence.is_last = False
        if kept:
            kept[-1].is_last = True
        return kept

    def generate_recurrence_group_id(self) -> str:
        """Opaque id shared by every appointment of one series."""
        return f"recurrence_{int(time.time() * 1000)}_{uuid.uuid4().hex[:12]}"
