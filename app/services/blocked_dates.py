from datetime import date, timedelta
from typing import List, Optional

from app.schemas.booking_settings import (
    WEEKDAY_NAMES,
    BlockedDateRule,
    BlockedDateView,
    BookingSettings,
)
from app.services.clock import CalendarClock


class BlockedDateMatcher:
    """Answers whether a date is closed by a blocked date, range or recurring weekday."""

    def __init__(self, calendar: Optional[CalendarClock] = None):
        self.calendar = calendar or CalendarClock()

    def rules(self, booking_settings: BookingSettings) -> List[BlockedDateRule]:
        return [entry.to_rule() for entry in booking_settings.blocked_dates]

    def blocking_reason(
        self, day: date, booking_settings: BookingSettings
    ) -> Optional[str]:
        """Reason the date is blocked, or None when it is bookable."""
        for rule in self.rules(booking_settings):
            if rule.covers(day):
                return rule.reason

        weekday = self.calendar.day_of_week(day)
        if weekday in booking_settings.recurring_blocked_days:
            return f"Closed on {WEEKDAY_NAMES[weekday]}s"

        return None

    def is_blocked(self, day: date, booking_settings: BookingSettings) -> bool:
        return self.blocking_reason(day, booking_settings) is not None

    def expand(
        self, start: date, end: date, booking_settings: BookingSettings
    ) -> List[BlockedDateView]:
        """Every blocked date in the inclusive window, with its reason."""
        blocked = []
        current = start
        while current <= end:
            reason = self.blocking_reason(current, booking_settings)
            if reason is not None:
                blocked.append(BlockedDateView(date=current, reason=reason))
            current += timedelta(days=1)
        return blocked
