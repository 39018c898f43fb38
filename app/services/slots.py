from datetime import date, datetime, time, timedelta
from typing import List, Optional

from app.core.config import settings
from app.schemas.booking_settings import TimeInterval
from app.utils.validation import minutes_to_time, time_to_minutes


class SlotGenerator:
    """Discrete candidate start times inside an opening interval."""

    def __init__(
        self,
        granularity_minutes: Optional[int] = None,
        min_step_minutes: Optional[int] = None,
    ):
        self.granularity_minutes = (
            granularity_minutes or settings.SLOT_GRANULARITY_MINUTES
        )
        self.min_step_minutes = min_step_minutes or settings.SLOT_MIN_STEP_MINUTES

    def step_minutes(self, buffer_minutes: int) -> int:
        if buffer_minutes <= 0:
            return self.granularity_minutes
        return max(self.min_step_minutes, min(self.granularity_minutes, buffer_minutes))

    def generate(
        self,
        day: date,
        interval: TimeInterval,
        duration_minutes: int,
        buffer_minutes: int,
    ) -> List[time]:
        """Start times from the opening time while the service still fits before close.

        Works on minutes since midnight so the result is independent of DST
        shifts on ``day``; the caller localises each start.
        """
        step = self.step_minutes(buffer_minutes)
        opens = time_to_minutes(interval.open_time)
        closes = time_to_minutes(interval.close_time)

        starts = []
        current = opens
        while current + duration_minutes <= closes:
            starts.append(minutes_to_time(current))
            current += step
        return starts

    def fits(self, start: time, interval: TimeInterval, duration_minutes: int) -> bool:
        """Whether a service starting at ``start`` lies wholly within ``interval``."""
        begins = time_to_minutes(start)
        return (
            time_to_minutes(interval.open_time) <= begins
            and begins + duration_minutes <= time_to_minutes(interval.close_time)
        )


def slot_span(start: datetime, duration_minutes: int, buffer_minutes: int):
    """Half-open [start, start + duration + buffer) occupied by an appointment."""
    return start, start + timedelta(minutes=duration_minutes + buffer_minutes)
