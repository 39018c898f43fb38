from datetime import date
from typing import List, Optional

from app.schemas.booking_settings import BusinessHours, TimeInterval
from app.services.clock import CalendarClock


class BusinessHoursResolver:
    """Maps a calendar date to the opening intervals configured for its weekday."""

    def __init__(self, calendar: Optional[CalendarClock] = None):
        self.calendar = calendar or CalendarClock()

    def intervals_for(self, day: date, hours: BusinessHours) -> List[TimeInterval]:
        weekday = self.calendar.day_of_week(day)
        if weekday < 0:
            return []

        day_hours = hours.for_weekday(weekday)
        if day_hours.is_closed:
            return []

        # DayHours keeps its intervals ordered and disjoint
        return list(day_hours.intervals)

    def is_open(self, day: date, hours: BusinessHours) -> bool:
        return bool(self.intervals_for(day, hours))
