from datetime import date, datetime, timedelta, timezone

import pytest

from app.core.exceptions import ValidationError
from app.services.date_validation import DateRangeValidator


@pytest.fixture
def validator(calendar):
    return DateRangeValidator(calendar)


class TestParseDate:
    def test_valid_date(self, validator):
        assert validator.parse_date("2026-06-02", "date") == date(2026, 6, 2)

    def test_today_is_valid(self, validator):
        assert validator.parse_date("2026-06-01", "date") == date(2026, 6, 1)

    def test_datetime_string_is_accepted(self, validator):
        assert validator.parse_date("2026-06-02T10:00:00Z", "date") == date(2026, 6, 2)

    @pytest.mark.parametrize("raw", [None, ""])
    def test_missing_value(self, validator, raw):
        with pytest.raises(ValidationError) as exc_info:
            validator.parse_date(raw, "date")
        assert exc_info.value.message == "date is required"

    @pytest.mark.parametrize("raw", ["2026/06/02", "06-02-2026", "2026-13-01", "2026-02-30", "tomorrow"])
    def test_malformed_value(self, validator, raw):
        with pytest.raises(ValidationError) as exc_info:
            validator.parse_date(raw, "start_date")
        assert exc_info.value.message == "Invalid start_date format"

    @pytest.mark.parametrize("raw", ["2026-06-02T25:99", "2026-06-02 99:99:99", "2026-06-02T10:61Z"])
    def test_datetime_with_impossible_time(self, validator, raw):
        with pytest.raises(ValidationError) as exc_info:
            validator.parse_date(raw, "date")
        assert exc_info.value.message == "Invalid date format"

    @pytest.mark.parametrize("raw", ["2019-12-31", "9999-01-01", "2028-01-01"])
    def test_year_out_of_bounds(self, validator, raw):
        with pytest.raises(ValidationError) as exc_info:
            validator.parse_date(raw, "date")
        assert exc_info.value.message == "date must be between 2020 and 2027"

    def test_upper_year_bound_is_inclusive(self, validator):
        assert validator.parse_date("2027-12-31", "date") == date(2027, 12, 31)


class TestParseDatetime:
    def test_naive_value_is_business_local(self, validator):
        parsed = validator.parse_datetime("2026-06-02T09:00", "scheduled_at")
        assert parsed.astimezone(timezone.utc) == datetime(2026, 6, 2, 16, 0, tzinfo=timezone.utc)

    def test_explicit_utc(self, validator):
        parsed = validator.parse_datetime("2026-06-02T16:00:00Z", "scheduled_at")
        assert parsed == datetime(2026, 6, 2, 16, 0, tzinfo=timezone.utc)

    def test_date_only_is_rejected(self, validator):
        with pytest.raises(ValidationError, match="Invalid scheduled_at format"):
            validator.parse_datetime("2026-06-02", "scheduled_at")

    def test_year_bound_applies(self, validator):
        with pytest.raises(ValidationError, match="must be between 2020"):
            validator.parse_datetime("2019-06-02T09:00:00Z", "scheduled_at")


class TestValidateRange:
    def test_start_after_end(self, validator):
        with pytest.raises(ValidationError) as exc_info:
            validator.validate_range(date(2026, 6, 2), date(2026, 6, 1))
        assert exc_info.value.message == "Start date must be before or equal to end date"

    def test_same_day_is_valid(self, validator):
        validator.validate_range(date(2026, 6, 1), date(2026, 6, 1))

    def test_exactly_730_days_is_valid(self, validator):
        start = date(2024, 1, 1)
        validator.validate_range(start, start + timedelta(days=730))

    def test_731_days_is_rejected(self, validator):
        start = date(2024, 1, 1)
        with pytest.raises(ValidationError) as exc_info:
            validator.validate_range(start, start + timedelta(days=731))
        assert exc_info.value.message == "Date range cannot exceed 730 days"

    def test_parse_range(self, validator):
        assert validator.parse_range("2026-06-01", "2026-06-30") == (
            date(2026, 6, 1),
            date(2026, 6, 30),
        )
