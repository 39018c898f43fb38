from datetime import date, datetime, timedelta
from typing import Optional

import structlog

from app.core.exceptions import PolicyViolation, ValidationError
from app.models.appointment import TERMINAL_STATUSES, Appointment
from app.schemas.booking_settings import BookingSettings
from app.services.clock import CalendarClock, ensure_utc

logger = structlog.get_logger(__name__)


class BookingWindowPolicy:
    """Minimum/maximum advance notice and the cancellation cutoff."""

    def __init__(self, calendar: Optional[CalendarClock] = None):
        self.calendar = calendar or CalendarClock()

    def earliest_bookable(self, booking_settings: BookingSettings) -> datetime:
        return self.calendar.now() + timedelta(
            hours=booking_settings.min_advance_hours
        )

    def latest_bookable_date(self, booking_settings: BookingSettings) -> date:
        return self.calendar.today() + timedelta(days=booking_settings.max_advance_days)

    def _advance_notice_error(self, booking_settings: BookingSettings) -> ValidationError:
        return ValidationError(
            f"Bookings require at least {booking_settings.min_advance_hours} "
            "hours advance notice"
        )

    def validate_request_date(
        self, day: date, booking_settings: BookingSettings
    ) -> None:
        if day < self.calendar.today():
            raise ValidationError("Date cannot be in the past")

        # The whole day falls inside the minimum notice period
        if self.calendar.end_of_day(day) <= self.earliest_bookable(booking_settings):
            raise self._advance_notice_error(booking_settings)

        if day > self.latest_bookable_date(booking_settings):
            raise ValidationError(
                f"Date cannot be more than {booking_settings.max_advance_days} "
                "days in advance"
            )

    def is_before_min_advance(
        self, start: datetime, booking_settings: BookingSettings
    ) -> bool:
        return ensure_utc(start) < self.earliest_bookable(booking_settings)

    def validate_slot_start(
        self, start: datetime, booking_settings: BookingSettings
    ) -> None:
        if self.is_before_min_advance(start, booking_settings):
            raise self._advance_notice_error(booking_settings)

    def validate_cancellation(
        self, appointment: Appointment, booking_settings: BookingSettings
    ) -> None:
        if appointment.status in TERMINAL_STATUSES:
            raise PolicyViolation("Appointment cannot be cancelled in current status")

        cutoff = timedelta(hours=booking_settings.cancellation_cutoff_hours)
        if appointment.scheduled_at_utc - self.calendar.now() < cutoff:
            logger.info(
                "Cancellation refused inside cutoff",
                reference=appointment.booking_reference,
                cutoff_hours=booking_settings.cancellation_cutoff_hours,
            )
            raise PolicyViolation(
                f"Cannot cancel within {booking_settings.cancellation_cutoff_hours} "
                "hours of appointment"
            )
