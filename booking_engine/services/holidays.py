from datetime import date, datetime
from functools import lru_cache
from typing import Optional

import holidays


class HolidayService:
    """Public holiday lookups backed by the `holidays` package.

    A country code such as "IL" or "BR" selects the calendar; subdivisions are
    not taken into account.
    """

    @staticmethod
    @lru_cache(maxsize=32)
    def _country_holidays(country_code: str, year: int) -> holidays.HolidayBase:
        return holidays.country_holidays(country_code, years=year)

    @classmethod
    def is_holiday(cls, country_code: str, dt: date) -> bool:
        d: date = dt.date() if isinstance(dt, datetime) else dt
        return d in cls._country_holidays(country_code, d.year)

    @classmethod
    def get_holiday_name(cls, country_code: str, dt: date) -> Optional[str]:
        d: date = dt.date() if isinstance(dt, datetime) else dt
        return cls._country_holidays(country_code, d.year).get(d)
