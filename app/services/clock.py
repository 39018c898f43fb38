from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Protocol, Union
from zoneinfo import ZoneInfo

from app.core.config import settings


class Clock(Protocol):
    def now(self) -> datetime:
        """Current instant as an aware datetime."""


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Clock frozen at a given instant; naive values are treated as UTC."""

    def __init__(self, instant: datetime):
        self.set(instant)

    def set(self, instant: datetime) -> None:
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        self._instant = instant.astimezone(timezone.utc)

    def advance(self, **delta) -> None:
        self._instant += timedelta(**delta)

    def now(self) -> datetime:
        return self._instant


def ensure_utc(value: datetime) -> datetime:
    """Normalise a stored instant to aware UTC (SQLite returns naive values)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class CalendarClock:
    """Resolves "now", "today" and weekdays in the business timezone.

    All calendar questions go through this class so that the host machine's
    timezone never leaks into day boundaries or day-of-week calculations.
    """

    def __init__(self, clock: Optional[Clock] = None, tz_name: Optional[str] = None):
        self.clock = clock or SystemClock()
        self.tz = ZoneInfo(tz_name or settings.BUSINESS_TIMEZONE)

    def now(self) -> datetime:
        return ensure_utc(self.clock.now())

    def local_now(self) -> datetime:
        return self.now().astimezone(self.tz)

    def today(self) -> date:
        return self.local_now().date()

    def to_local(self, instant: datetime) -> datetime:
        return ensure_utc(instant).astimezone(self.tz)

    def local_datetime(self, day: date, at: time) -> datetime:
        """Aware datetime for a business-local wall-clock time on ``day``."""
        return datetime.combine(day, at, tzinfo=self.tz)

    def start_of_day(self, day: date) -> datetime:
        return self.local_datetime(day, time.min)

    def end_of_day(self, day: date) -> datetime:
        """Exclusive end of ``day``: local midnight of the following date."""
        return self.start_of_day(day + timedelta(days=1))

    def day_of_week(self, value: Union[date, str, None]) -> int:
        """Weekday with 0=Sunday .. 6=Saturday, or -1 for a missing/invalid date."""
        if not value:
            return -1
        if isinstance(value, str):
            try:
                value = date.fromisoformat(value)
            except ValueError:
                return -1
        if isinstance(value, datetime):
            value = self.to_local(value).date()
        # date.weekday() is Monday=0
        return (value.weekday() + 1) % 7

    def today_interval(self) -> tuple[datetime, datetime]:
        """UTC bounds [start, end) of the current business day, exactly 24 hours."""
        start = self.start_of_day(self.today()).astimezone(timezone.utc)
        return start, start + timedelta(hours=24)

    def is_date_in_past(self, value: Union[date, str, None]) -> bool:
        if not value:
            return False
        if isinstance(value, str):
            try:
                value = date.fromisoformat(value)
            except ValueError:
                return False
        return value < self.today()
