from dataclasses import dataclass
from datetime import date as date_type, time
from typing import List, Optional, Union

from pydantic import BaseModel, Field, RootModel, field_validator, model_validator

from app.utils.validation import format_time, parse_time_string, validate_time_format


WEEKDAY_NAMES = {
    0: "Sunday",
    1: "Monday",
    2: "Tuesday",
    3: "Wednesday",
    4: "Thursday",
    5: "Friday",
    6: "Saturday",
}


# Blocked date rules, normalised from the stored entries


@dataclass(frozen=True)
class SingleBlockedDate:
    day: date_type
    reason: str

    def covers(self, d: date_type) -> bool:
        return d == self.day


@dataclass(frozen=True)
class BlockedDateRange:
    start: date_type
    end: date_type
    reason: str

    def covers(self, d: date_type) -> bool:
        return self.start <= d <= self.end


BlockedDateRule = Union[SingleBlockedDate, BlockedDateRange]


# Business hours


class TimeInterval(BaseModel):
    open: str = Field(..., description="Opening time, HH:MM")
    close: str = Field(..., description="Closing time, HH:MM")

    @field_validator("open", "close")
    @classmethod
    def validate_hhmm(cls, v: str) -> str:
        if not validate_time_format(v):
            raise ValueError("Time must be in HH:MM format")
        return v

    @model_validator(mode="after")
    def validate_order(self):
        if self.open_time >= self.close_time:
            raise ValueError("Opening time must be before closing time")
        return self

    @property
    def open_time(self) -> time:
        return parse_time_string(self.open, "open")

    @property
    def close_time(self) -> time:
        return parse_time_string(self.close, "close")

    @classmethod
    def between(cls, open_time: time, close_time: time) -> "TimeInterval":
        return cls(open=format_time(open_time), close=format_time(close_time))


class DayHours(BaseModel):
    is_closed: bool = False
    intervals: List[TimeInterval] = Field(default_factory=list, max_length=3)

    @model_validator(mode="after")
    def validate_intervals(self):
        if self.is_closed and self.intervals:
            raise ValueError("A closed day cannot have opening intervals")

        ordered = sorted(self.intervals, key=lambda i: i.open_time)
        for previous, current in zip(ordered, ordered[1:]):
            if current.open_time < previous.close_time:
                raise ValueError("Opening intervals must not overlap")
        self.intervals = ordered
        return self

    @classmethod
    def closed(cls) -> "DayHours":
        return cls(is_closed=True)


class BusinessHours(RootModel[dict[int, DayHours]]):
    """Weekly hours keyed by weekday, 0=Sunday .. 6=Saturday."""

    @field_validator("root")
    @classmethod
    def validate_weekdays(cls, v: dict[int, DayHours]) -> dict[int, DayHours]:
        invalid = [day for day in v if day not in WEEKDAY_NAMES]
        if invalid:
            raise ValueError(f"Weekday keys must be between 0 and 6, got {invalid}")
        return v

    def for_weekday(self, weekday: int) -> DayHours:
        # Days missing from the mapping are closed
        return self.root.get(weekday) or DayHours.closed()


def default_business_hours() -> BusinessHours:
    """Monday to Saturday 09:00-17:00, closed on Sunday."""
    open_day = {"is_closed": False, "intervals": [{"open": "09:00", "close": "17:00"}]}
    days = {weekday: open_day for weekday in range(1, 7)}
    days[0] = {"is_closed": True, "intervals": []}
    return BusinessHours.model_validate(days)


# Booking settings


class BlockedDateEntry(BaseModel):
    date: date_type
    end_date: Optional[date_type] = None
    reason: str = Field(..., min_length=1, max_length=200)

    @model_validator(mode="after")
    def validate_range(self):
        if self.end_date is not None and self.end_date < self.date:
            raise ValueError("End date must be on or after start date")
        return self

    def to_rule(self) -> BlockedDateRule:
        if self.end_date is None or self.end_date == self.date:
            return SingleBlockedDate(day=self.date, reason=self.reason)
        return BlockedDateRange(start=self.date, end=self.end_date, reason=self.reason)

    def overlaps(self, start: date_type, end: date_type) -> bool:
        last = self.end_date or self.date
        return self.date <= end and last >= start


class BookingSettings(BaseModel):
    min_advance_hours: int = Field(2, ge=0, le=168)
    max_advance_days: int = Field(90, ge=1, le=365)
    cancellation_cutoff_hours: int = Field(24, ge=0, le=168)
    buffer_minutes: int = Field(15, ge=0, le=120)
    blocked_dates: List[BlockedDateEntry] = Field(default_factory=list)
    recurring_blocked_days: List[int] = Field(default_factory=lambda: [0])

    @field_validator("buffer_minutes")
    @classmethod
    def validate_buffer_step(cls, v: int) -> int:
        if v % 5 != 0:
            raise ValueError("buffer_minutes must be divisible by 5")
        return v

    @field_validator("recurring_blocked_days")
    @classmethod
    def validate_recurring_days(cls, v: List[int]) -> List[int]:
        for day in v:
            if day not in WEEKDAY_NAMES:
                raise ValueError("recurring_blocked_days values must be between 0 and 6")
        return sorted(set(v))


class BookingSettingsUpdate(BaseModel):
    min_advance_hours: Optional[int] = None
    max_advance_days: Optional[int] = None
    cancellation_cutoff_hours: Optional[int] = None
    buffer_minutes: Optional[int] = None
    blocked_dates: Optional[List[BlockedDateEntry]] = None
    recurring_blocked_days: Optional[List[int]] = None


class BlockedDateCreate(BaseModel):
    date: date_type
    end_date: Optional[date_type] = None
    reason: str = Field(..., min_length=1, max_length=200)
    force: bool = False

    @model_validator(mode="after")
    def validate_range(self):
        if self.end_date is not None and self.end_date < self.date:
            raise ValueError("End date must be on or after start date")
        return self


class BlockedDateRemove(BaseModel):
    dates: List[date_type] = Field(..., min_length=1)


class BlockedDateConflict(BaseModel):
    date: date_type
    count: int


class BlockedDateView(BaseModel):
    date: date_type
    reason: str
