from datetime import date
from typing import Iterable, Optional

import structlog

from booking_engine.core.config import settings
from booking_engine.services.holidays import HolidayService
from booking_engine.schemas.scheduling import DaySchedule

logger = structlog.get_logger(__name__)

_UNSET = object()


class WorkingHoursResolver:
    """Resolves the day schedule that applies to a professional on a date."""

    def __init__(self, holiday_country_code=_UNSET):
        if holiday_country_code is _UNSET:
            holiday_country_code = settings.HOLIDAY_COUNTRY_CODE
        self.holiday_country_code: Optional[str] = holiday_country_code

    def resolve(
        self, working_hours: Iterable[DaySchedule], day: date
    ) -> Optional[DaySchedule]:
        """Return the working schedule for ``day`` or None when the professional is off.

        None covers a missing entry, an entry marked non-working and, when a
        holiday calendar is configured, public holidays.
        """
        weekday = day.weekday()
        entries = [wh for wh in working_hours if wh.day_of_week == weekday]

        if not entries:
            logger.debug("No working hours entry", date=day.isoformat(), weekday=weekday)
            return None

        schedule = next((wh for wh in entries if wh.is_working_day), None)
        if schedule is None:
            logger.debug("Day marked as non-working", date=day.isoformat())
            return None

        if self.holiday_country_code and HolidayService.is_holiday(
            self.holiday_country_code, day
        ):
            logger.info(
                "Public holiday, treating day as closed",
                date=day.isoformat(),
                holiday=HolidayService.get_holiday_name(self.holiday_country_code, day),
            )
            return None

        return schedule
