from collections import defaultdict
from datetime import date, time, timedelta
from typing import Iterable, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import ValidationError
from app.models.appointment import Appointment
from app.schemas.availability import (
    AvailabilityResponse,
    DisabledDate,
    DisabledDatesResponse,
    NextAvailableResponse,
    TimeSlot,
)
from app.schemas.booking_settings import BookingSettings, BusinessHours
from app.services.blocked_dates import BlockedDateMatcher
from app.services.booking_window import BookingWindowPolicy
from app.services.business_hours import BusinessHoursResolver
from app.services.clock import CalendarClock
from app.services.conflicts import ConflictDetector
from app.services.date_validation import DateRangeValidator
from app.services.slots import SlotGenerator
from app.services.stores import (
    AppointmentStore,
    ServiceCatalog,
    SettingsStore,
    WaitlistStore,
)
from app.utils.validation import format_time

logger = structlog.get_logger(__name__)


class AvailabilityAssembler:
    """Combines hours, blocks, the booking window and bookings into slots.

    Pure computation over already-loaded inputs; the service below and the
    booking commit guard both feed it from the database.
    """

    def __init__(
        self,
        calendar: CalendarClock,
        generator: Optional[SlotGenerator] = None,
        detector: Optional[ConflictDetector] = None,
    ):
        self.calendar = calendar
        self.hours = BusinessHoursResolver(calendar)
        self.blocked = BlockedDateMatcher(calendar)
        self.window = BookingWindowPolicy(calendar)
        self.generator = generator or SlotGenerator()
        self.detector = detector or ConflictDetector()

    def candidate_starts(
        self,
        day: date,
        hours: BusinessHours,
        duration_minutes: int,
        buffer_minutes: int,
    ) -> list[time]:
        """Sorted, de-duplicated start times across every opening interval."""
        starts = set()
        for interval in self.hours.intervals_for(day, hours):
            starts.update(
                self.generator.generate(day, interval, duration_minutes, buffer_minutes)
            )
        return sorted(starts)

    def fits_hours(
        self, day: date, start: time, hours: BusinessHours, duration_minutes: int
    ) -> bool:
        return any(
            self.generator.fits(start, interval, duration_minutes)
            for interval in self.hours.intervals_for(day, hours)
        )

    def assemble(
        self,
        day: date,
        service_id: str,
        duration_minutes: int,
        booking_settings: BookingSettings,
        hours: BusinessHours,
        appointments: Iterable[Appointment],
        waitlist_count: int = 0,
    ) -> AvailabilityResponse:
        if self.blocked.is_blocked(day, booking_settings):
            return AvailabilityResponse(date=day, service_id=service_id)

        appointments = list(appointments)
        buffer_minutes = booking_settings.buffer_minutes
        slots = []
        occupied_count = 0
        for start in self.candidate_starts(day, hours, duration_minutes, buffer_minutes):
            start_at = self.calendar.local_datetime(day, start)
            occupied = self.detector.is_occupied(
                start_at, duration_minutes, buffer_minutes, appointments
            )
            too_soon = self.window.is_before_min_advance(start_at, booking_settings)
            if occupied:
                occupied_count += 1
            slots.append(
                TimeSlot(
                    time=format_time(start),
                    available=not occupied and not too_soon,
                    waitlist_count=waitlist_count if occupied else 0,
                )
            )

        is_fully_booked = (
            bool(slots)
            and occupied_count > 0
            and not any(slot.available for slot in slots)
        )
        return AvailabilityResponse(
            date=day,
            service_id=service_id,
            slots=slots,
            is_fully_booked=is_fully_booked,
            waitlist_count=waitlist_count,
        )


class AvailabilityService:
    """Availability queries backed by the settings, appointment and waitlist stores."""

    def __init__(self, db: AsyncSession, calendar: Optional[CalendarClock] = None):
        self.db = db
        self.calendar = calendar or CalendarClock()
        self.dates = DateRangeValidator(self.calendar)
        self.assembler = AvailabilityAssembler(self.calendar)
        self.appointments = AppointmentStore(db)
        self.settings_store = SettingsStore(db)
        self.waitlist = WaitlistStore(db)
        self.catalog = ServiceCatalog(db)

    async def get_availability(
        self, date_str: Optional[str], service_id: Optional[str]
    ) -> AvailabilityResponse:
        day = self.dates.parse_date(date_str, "date")
        if not service_id:
            raise ValidationError("service_id is required")
        duration = await self.catalog.get_duration(service_id)

        booking_settings = await self.settings_store.get_booking_settings()
        self.assembler.window.validate_request_date(day, booking_settings)

        if self.assembler.blocked.is_blocked(day, booking_settings):
            logger.info("Date blocked, no slots offered", date=str(day))
            return AvailabilityResponse(date=day, service_id=service_id)

        result = await self.availability_for(day, service_id, duration, booking_settings)
        logger.info(
            "Availability computed",
            date=str(day),
            service_id=service_id,
            slots=len(result.slots),
            available=sum(1 for slot in result.slots if slot.available),
        )
        return result

    async def availability_for(
        self,
        day: date,
        service_id: str,
        duration_minutes: int,
        booking_settings: Optional[BookingSettings] = None,
    ) -> AvailabilityResponse:
        """Slots for an already validated date, read fresh from the stores."""
        if booking_settings is None:
            booking_settings = await self.settings_store.get_booking_settings()
        hours = await self.settings_store.get_business_hours()
        appointments = await self.appointments.list_by_date(day)
        waitlist_count = await self.waitlist.count_active(day)
        return self.assembler.assemble(
            day,
            service_id,
            duration_minutes,
            booking_settings,
            hours,
            appointments,
            waitlist_count,
        )

    async def available_slots(
        self, day: date, service_id: str, duration_minutes: int
    ) -> list[TimeSlot]:
        result = await self.availability_for(day, service_id, duration_minutes)
        return [slot for slot in result.slots if slot.available]

    def disabled_reason(
        self,
        day: date,
        booking_settings: BookingSettings,
        hours: BusinessHours,
    ) -> Optional[str]:
        window = self.assembler.window
        if day < self.calendar.today():
            return "Date is in the past"
        if day > window.latest_bookable_date(booking_settings):
            return "Beyond booking window"

        reason = self.assembler.blocked.blocking_reason(day, booking_settings)
        if reason is not None:
            return reason

        if not self.assembler.hours.is_open(day, hours):
            return "Closed"
        return None

    async def get_disabled_dates(
        self, start_str: Optional[str], end_str: Optional[str]
    ) -> DisabledDatesResponse:
        start, end = self.dates.parse_range(start_str, end_str)
        booking_settings = await self.settings_store.get_booking_settings()
        hours = await self.settings_store.get_business_hours()

        disabled = []
        current = start
        while current <= end:
            reason = self.disabled_reason(current, booking_settings, hours)
            if reason is not None:
                disabled.append(DisabledDate(date=current, reason=reason))
            current += timedelta(days=1)

        return DisabledDatesResponse(
            start_date=start, end_date=end, disabled_dates=disabled
        )

    async def find_next_available_date(
        self, service_id: Optional[str]
    ) -> NextAvailableResponse:
        """First date from today with at least one bookable slot for the service."""
        if not service_id:
            raise ValidationError("service_id is required")
        duration = await self.catalog.get_duration(service_id)
        booking_settings = await self.settings_store.get_booking_settings()
        hours = await self.settings_store.get_business_hours()

        today = self.calendar.today()
        horizon = min(
            booking_settings.max_advance_days, settings.NEXT_AVAILABLE_SEARCH_DAYS
        )
        last = today + timedelta(days=horizon)

        booked = defaultdict(list)
        for appointment in await self.appointments.list_between(
            self.calendar.start_of_day(today), self.calendar.end_of_day(last)
        ):
            booked[appointment.slot_date].append(appointment)

        current = today
        while current <= last:
            try:
                self.assembler.window.validate_request_date(current, booking_settings)
            except ValidationError:
                current += timedelta(days=1)
                continue

            result = self.assembler.assemble(
                current, service_id, duration, booking_settings, hours, booked[current]
            )
            if any(slot.available for slot in result.slots):
                return NextAvailableResponse(service_id=service_id, date=current)
            current += timedelta(days=1)

        logger.info("No available date found", service_id=service_id, horizon=horizon)
        return NextAvailableResponse(service_id=service_id)
