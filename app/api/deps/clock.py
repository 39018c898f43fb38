from fastapi import Depends

from app.services.clock import CalendarClock, Clock, SystemClock

_system_clock = SystemClock()


def get_clock() -> Clock:
    """Source of "now"; tests override this dependency with a FixedClock."""
    return _system_clock


def get_calendar(clock: Clock = Depends(get_clock)) -> CalendarClock:
    return CalendarClock(clock)
