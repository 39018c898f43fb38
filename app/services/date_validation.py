import re
from datetime import date, datetime, timedelta
from typing import Optional, Union

from app.core.config import settings
from app.core.exceptions import ValidationError
from app.services.clock import CalendarClock

DATE_PATTERN = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
DATETIME_PATTERN = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})"
    r"[T ](\d{2}):(\d{2})(:\d{2}(\.\d{1,6})?)?"
    r"(Z|[+-]\d{2}:\d{2})?$"
)


class DateRangeValidator:
    """Parses and bounds date/datetime input used by booking and reporting."""

    def __init__(
        self,
        calendar: Optional[CalendarClock] = None,
        min_year: Optional[int] = None,
        max_range_days: Optional[int] = None,
    ):
        self.calendar = calendar or CalendarClock()
        self.min_year = min_year if min_year is not None else settings.MIN_VALID_YEAR
        self.max_range_days = (
            max_range_days
            if max_range_days is not None
            else settings.MAX_DATE_RANGE_DAYS
        )

    @property
    def max_year(self) -> int:
        return self.calendar.today().year + 1

    def _check_year(self, year: int, field_name: str) -> None:
        if not self.min_year <= year <= self.max_year:
            raise ValidationError(
                f"{field_name} must be between {self.min_year} and {self.max_year}"
            )

    def parse_date(self, raw: Optional[Union[str, date]], field_name: str) -> date:
        if raw is None or raw == "":
            raise ValidationError(f"{field_name} is required")

        if isinstance(raw, datetime):
            parsed = self.calendar.to_local(raw).date()
        elif isinstance(raw, date):
            parsed = raw
        else:
            value = raw.strip()
            try:
                if DATE_PATTERN.match(value):
                    parsed = date.fromisoformat(value)
                elif DATETIME_PATTERN.match(value):
                    # Date part as written; the time must still be a real time
                    parsed = datetime.fromisoformat(value.replace("Z", "+00:00")).date()
                else:
                    raise ValueError(value)
            except ValueError:
                raise ValidationError(f"Invalid {field_name} format")

        self._check_year(parsed.year, field_name)
        return parsed

    def parse_datetime(
        self, raw: Optional[Union[str, datetime]], field_name: str
    ) -> datetime:
        """Parse an ISO datetime; naive values are business-local wall-clock times."""
        if raw is None or raw == "":
            raise ValidationError(f"{field_name} is required")

        if isinstance(raw, datetime):
            parsed = raw
        else:
            value = raw.strip()
            if not DATETIME_PATTERN.match(value):
                raise ValidationError(f"Invalid {field_name} format")
            try:
                parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
            except ValueError:
                raise ValidationError(f"Invalid {field_name} format")

        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=self.calendar.tz)

        self._check_year(self.calendar.to_local(parsed).year, field_name)
        return parsed

    def validate_range(
        self, start: Union[date, datetime], end: Union[date, datetime]
    ) -> None:
        if start > end:
            raise ValidationError("Start date must be before or equal to end date")
        if end - start > timedelta(days=self.max_range_days):
            raise ValidationError(
                f"Date range cannot exceed {self.max_range_days} days"
            )

    def parse_range(
        self, raw_start: Optional[str], raw_end: Optional[str]
    ) -> tuple[date, date]:
        start = self.parse_date(raw_start, "start_date")
        end = self.parse_date(raw_end, "end_date")
        self.validate_range(start, end)
        return start, end
