from datetime import date

import pytest
from pydantic import ValidationError

from app.schemas.booking_settings import (
    BlockedDateCreate,
    BlockedDateEntry,
    BookingSettings,
)


class TestBookingSettings:
    def test_defaults(self):
        booking_settings = BookingSettings()
        assert booking_settings.min_advance_hours == 2
        assert booking_settings.max_advance_days == 90
        assert booking_settings.cancellation_cutoff_hours == 24
        assert booking_settings.buffer_minutes == 15
        assert booking_settings.blocked_dates == []
        assert booking_settings.recurring_blocked_days == [0]

    @pytest.mark.parametrize(
        "field,value",
        [
            ("min_advance_hours", -1),
            ("min_advance_hours", 169),
            ("max_advance_days", 0),
            ("max_advance_days", 366),
            ("cancellation_cutoff_hours", 169),
            ("buffer_minutes", 125),
            ("buffer_minutes", 7),
        ],
    )
    def test_out_of_range_values(self, field, value):
        with pytest.raises(ValidationError):
            BookingSettings(**{field: value})

    def test_recurring_days_collapse_duplicates(self):
        booking_settings = BookingSettings(recurring_blocked_days=[6, 0, 0, 6])
        assert booking_settings.recurring_blocked_days == [0, 6]

    def test_recurring_day_out_of_range(self):
        with pytest.raises(ValidationError):
            BookingSettings(recurring_blocked_days=[7])

    def test_round_trip_through_json(self):
        booking_settings = BookingSettings(
            blocked_dates=[
                BlockedDateEntry(date=date(2026, 7, 4), reason="Independence Day")
            ]
        )
        restored = BookingSettings.model_validate(booking_settings.model_dump(mode="json"))
        assert restored == booking_settings


class TestBlockedDateEntry:
    def test_end_before_start(self):
        with pytest.raises(ValidationError):
            BlockedDateEntry(date=date(2026, 6, 5), end_date=date(2026, 6, 4), reason="Oops")

    @pytest.mark.parametrize("reason", ["", "x" * 201])
    def test_reason_length(self, reason):
        with pytest.raises(ValidationError):
            BlockedDateEntry(date=date(2026, 6, 5), reason=reason)

    def test_overlaps(self):
        entry = BlockedDateEntry(
            date=date(2026, 6, 10), end_date=date(2026, 6, 12), reason="Vacation"
        )
        assert entry.overlaps(date(2026, 6, 12), date(2026, 6, 20))
        assert not entry.overlaps(date(2026, 6, 13), date(2026, 6, 20))

    def test_create_defaults_to_not_forced(self):
        assert BlockedDateCreate(date=date(2026, 6, 10), reason="Closed").force is False
