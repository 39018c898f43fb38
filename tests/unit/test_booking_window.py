from datetime import date, datetime, timedelta, timezone

import pytest

from app.core.exceptions import PolicyViolation, ValidationError
from app.models.appointment import Appointment, AppointmentStatus
from app.schemas.booking_settings import BookingSettings
from app.services.booking_window import BookingWindowPolicy
from tests.conftest import NOW


@pytest.fixture
def policy(calendar):
    return BookingWindowPolicy(calendar)


def appointment_at(instant: datetime, status=AppointmentStatus.CONFIRMED) -> Appointment:
    return Appointment(
        booking_reference="APT-2026-000001",
        scheduled_at=instant,
        duration_minutes=60,
        status=status.value,
    )


class TestValidateRequestDate:
    def test_past_date(self, policy):
        with pytest.raises(ValidationError) as exc_info:
            policy.validate_request_date(date(2026, 5, 31), BookingSettings())
        assert exc_info.value.message == "Date cannot be in the past"

    def test_today_is_allowed_when_time_remains(self, policy):
        policy.validate_request_date(date(2026, 6, 1), BookingSettings())

    def test_day_entirely_inside_min_advance(self, policy):
        # Now + 168h is 2026-06-08 08:00 local, so all of June 7 is too soon
        booking_settings = BookingSettings(min_advance_hours=168)
        with pytest.raises(ValidationError) as exc_info:
            policy.validate_request_date(date(2026, 6, 7), booking_settings)
        assert exc_info.value.message == "Bookings require at least 168 hours advance notice"
        policy.validate_request_date(date(2026, 6, 8), booking_settings)

    def test_max_advance_boundary(self, policy):
        booking_settings = BookingSettings(max_advance_days=90)
        policy.validate_request_date(date(2026, 8, 30), booking_settings)
        with pytest.raises(ValidationError) as exc_info:
            policy.validate_request_date(date(2026, 8, 31), booking_settings)
        assert exc_info.value.message == "Date cannot be more than 90 days in advance"


class TestValidateSlotStart:
    def test_exactly_min_advance_is_allowed(self, policy):
        policy.validate_slot_start(NOW + timedelta(hours=2), BookingSettings())

    def test_one_minute_short(self, policy):
        with pytest.raises(ValidationError) as exc_info:
            policy.validate_slot_start(NOW + timedelta(hours=2, minutes=-1), BookingSettings())
        assert exc_info.value.message == "Bookings require at least 2 hours advance notice"

    def test_earliest_bookable(self, policy):
        assert policy.earliest_bookable(BookingSettings(min_advance_hours=4)) == NOW + timedelta(hours=4)

    def test_zero_min_advance(self, policy):
        assert not policy.is_before_min_advance(NOW, BookingSettings(min_advance_hours=0))


class TestValidateCancellation:
    def test_inside_cutoff(self, policy):
        appointment = appointment_at(NOW + timedelta(hours=23, minutes=59))
        with pytest.raises(PolicyViolation) as exc_info:
            policy.validate_cancellation(appointment, BookingSettings())
        assert exc_info.value.message == "Cannot cancel within 24 hours of appointment"

    def test_outside_cutoff(self, policy):
        appointment = appointment_at(NOW + timedelta(hours=24, minutes=1))
        policy.validate_cancellation(appointment, BookingSettings())

    def test_exactly_at_cutoff(self, policy):
        policy.validate_cancellation(appointment_at(NOW + timedelta(hours=24)), BookingSettings())

    @pytest.mark.parametrize(
        "status",
        [AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW],
    )
    def test_terminal_status(self, policy, status):
        appointment = appointment_at(NOW + timedelta(days=3), status=status)
        with pytest.raises(PolicyViolation) as exc_info:
            policy.validate_cancellation(appointment, BookingSettings())
        assert exc_info.value.message == "Appointment cannot be cancelled in current status"

    def test_naive_stored_instant_is_utc(self, policy):
        naive = (NOW + timedelta(hours=23)).replace(tzinfo=None)
        with pytest.raises(PolicyViolation):
            policy.validate_cancellation(appointment_at(naive), BookingSettings())
        assert appointment_at(naive).scheduled_at_utc.tzinfo == timezone.utc
