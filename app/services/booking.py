import secrets
import uuid
from datetime import date, timezone
from typing import Optional

import structlog
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import PolicyViolation, SlotConflictError, ValidationError
from app.core.locks import SlotLockRegistry, slot_locks
from app.models.appointment import Appointment, AppointmentStatus
from app.models.waitlist import WaitlistEntry
from app.schemas.appointment import AppointmentCreate, AppointmentCreated, WaitlistJoin
from app.services.availability import AvailabilityAssembler, AvailabilityService
from app.services.clock import CalendarClock
from app.services.date_validation import DateRangeValidator
from app.services.stores import (
    AppointmentStore,
    ServiceCatalog,
    SettingsStore,
    WaitlistStore,
    is_slot_violation,
)
from app.utils.validation import format_time, parse_time_string

logger = structlog.get_logger(__name__)


def generate_booking_reference(year: int) -> str:
    """Random reference of the form APT-YYYY-NNNNNN."""
    return (
        f"{settings.BOOKING_REFERENCE_PREFIX}-{year}-{secrets.randbelow(1_000_000):06d}"
    )


class BookingCommitGuard:
    """Re-validates a slot and inserts the appointment under the day lock.

    The day lock serialises commits made by this process. On PostgreSQL a
    transaction-scoped advisory lock on the same day extends that to other
    processes; everywhere else the active-slot unique index is the backstop.
    """

    def __init__(
        self,
        db: AsyncSession,
        calendar: CalendarClock,
        locks: Optional[SlotLockRegistry] = None,
    ):
        self.db = db
        self.calendar = calendar
        self.locks = locks or slot_locks
        self.assembler = AvailabilityAssembler(calendar)
        self.appointments = AppointmentStore(db)
        self.settings_store = SettingsStore(db)

    async def _acquire_advisory_lock(self, day: date) -> None:
        if self.db.get_bind().dialect.name != "postgresql":
            return
        await self.db.execute(
            text("SELECT pg_advisory_xact_lock(:key)"), {"key": day.toordinal()}
        )

    async def _check_slot(self, candidate: Appointment) -> None:
        day = candidate.slot_date
        booking_settings = await self.settings_store.get_booking_settings()
        hours = await self.settings_store.get_business_hours()

        # Settings may have changed since the request was validated
        self.assembler.window.validate_request_date(day, booking_settings)
        self.assembler.window.validate_slot_start(
            candidate.scheduled_at_utc, booking_settings
        )

        reason = self.assembler.blocked.blocking_reason(day, booking_settings)
        if reason is not None:
            logger.info(
                "Slot conflict",
                date=str(day),
                time=candidate.slot_time,
                reason="blocked",
            )
            raise SlotConflictError()

        start = parse_time_string(candidate.slot_time)
        if not self.assembler.fits_hours(day, start, hours, candidate.duration_minutes):
            logger.info(
                "Slot conflict",
                date=str(day),
                time=candidate.slot_time,
                reason="outside_hours",
            )
            raise SlotConflictError()

        booked = await self.appointments.list_by_date(day)
        blocking = self.assembler.detector.conflicting(
            candidate.scheduled_at_utc,
            candidate.duration_minutes,
            booking_settings.buffer_minutes,
            booked,
        )
        if blocking:
            logger.info(
                "Slot conflict",
                date=str(day),
                time=candidate.slot_time,
                reason="occupied",
                blocking=[a.booking_reference for a in blocking],
            )
            raise SlotConflictError()

    async def commit(self, candidate: Appointment) -> Appointment:
        # Rollback expunges the candidate; keep what the log lines need
        slot_date, slot_time = candidate.slot_date, candidate.slot_time
        async with self.locks.hold(slot_date):
            try:
                await self._acquire_advisory_lock(slot_date)
                await self._check_slot(candidate)
                await self.appointments.insert_if_free(candidate)
                await self.db.commit()
            except (SlotConflictError, ValidationError):
                await self.db.rollback()
                raise
            except IntegrityError as e:
                await self.db.rollback()
                if not is_slot_violation(e):
                    logger.error(
                        "Booking commit failed",
                        date=str(slot_date),
                        time=slot_time,
                        error=str(e.orig),
                    )
                    raise
                # Another process won the slot between our check and commit
                logger.warning(
                    "Slot conflict",
                    date=str(slot_date),
                    time=slot_time,
                    reason="unique_violation",
                    error=str(e.orig),
                )
                raise SlotConflictError()
            except Exception as e:
                await self.db.rollback()
                logger.error(
                    "Booking commit failed",
                    date=str(slot_date),
                    time=slot_time,
                    exc_info=e,
                )
                raise
        return candidate


class BookingService:
    """Booking, cancellation and status commands for appointments."""

    def __init__(self, db: AsyncSession, calendar: Optional[CalendarClock] = None):
        self.db = db
        self.calendar = calendar or CalendarClock()
        self.dates = DateRangeValidator(self.calendar)
        self.availability = AvailabilityService(db, self.calendar)
        self.guard = BookingCommitGuard(db, self.calendar)
        self.appointments = AppointmentStore(db)
        self.settings_store = SettingsStore(db)
        self.waitlist = WaitlistStore(db)
        self.catalog = ServiceCatalog(db)

    @property
    def window(self):
        return self.availability.assembler.window

    async def _new_reference(self) -> str:
        year = self.calendar.today().year
        for _ in range(settings.BOOKING_REFERENCE_ATTEMPTS):
            reference = generate_booking_reference(year)
            if not await self.appointments.reference_exists(reference):
                return reference
        raise RuntimeError("Could not allocate a unique booking reference")

    async def create_appointment(self, data: AppointmentCreate) -> AppointmentCreated:
        """Validate the request, then book the slot through the commit guard."""
        day = self.dates.parse_date(data.date, "date")
        start_time = parse_time_string(data.time, "time")
        service = await self.catalog.get_service(data.service_id)
        # A rollback in the guard expires the service row; read it once here
        service_pk, duration = service.id, service.duration_minutes

        booking_settings = await self.settings_store.get_booking_settings()
        self.window.validate_request_date(day, booking_settings)

        start_at = self.calendar.local_datetime(day, start_time)
        self.window.validate_slot_start(start_at, booking_settings)

        hours = await self.settings_store.get_business_hours()
        assembler = self.availability.assembler
        if not assembler.blocked.is_blocked(day, booking_settings) and not (
            assembler.fits_hours(day, start_time, hours, duration)
        ):
            raise ValidationError("Selected time is outside business hours")

        candidate = Appointment(
            uuid=uuid.uuid4(),
            booking_reference=await self._new_reference(),
            service_id=service_pk,
            scheduled_at=start_at.astimezone(timezone.utc),
            slot_date=day,
            slot_time=format_time(start_time),
            duration_minutes=duration,
            status=AppointmentStatus.PENDING.value,
            customer_name=data.customer_name,
            customer_email=data.customer_email,
            customer_phone=data.customer_phone,
            notes=data.notes,
        )

        try:
            await self.guard.commit(candidate)
        except SlotConflictError as conflict:
            refreshed = await self.availability.available_slots(
                day, data.service_id, duration
            )
            conflict.extra["available_slots"] = [
                slot.model_dump(by_alias=True) for slot in refreshed
            ]
            raise

        logger.info(
            "Booking created",
            reference=candidate.booking_reference,
            date=str(day),
            time=candidate.slot_time,
        )
        return AppointmentCreated(
            appointment_id=candidate.uuid,
            reference=candidate.booking_reference,
            scheduled_at=candidate.scheduled_at_utc,
        )

    async def cancel_appointment(
        self, appointment_id, reason: Optional[str] = None
    ) -> Appointment:
        appointment = await self.appointments.get(appointment_id)
        booking_settings = await self.settings_store.get_booking_settings()
        self.window.validate_cancellation(appointment, booking_settings)

        if not appointment.transition_to(
            AppointmentStatus.CANCELLED, at=self.calendar.now(), reason=reason
        ):
            raise PolicyViolation("Appointment cannot be cancelled in current status")

        await self.db.commit()
        await self.db.refresh(appointment)
        logger.info("Appointment cancelled", reference=appointment.booking_reference)
        return appointment

    async def transition_status(
        self, appointment_id, new_status: AppointmentStatus
    ) -> Appointment:
        appointment = await self.appointments.get(appointment_id)
        current = appointment.status

        if not appointment.transition_to(new_status, at=self.calendar.now()):
            raise PolicyViolation(
                f"Cannot transition from {current} to {new_status.value}"
            )

        await self.db.commit()
        await self.db.refresh(appointment)
        logger.info(
            "Appointment status changed",
            reference=appointment.booking_reference,
            from_status=current,
            to_status=new_status.value,
        )
        return appointment

    async def list_today(self) -> list[Appointment]:
        start, end = self.calendar.today_interval()
        return await self.appointments.list_between(start, end)

    async def join_waitlist(self, data: WaitlistJoin) -> WaitlistEntry:
        day = self.dates.parse_date(data.date, "date")
        if self.calendar.is_date_in_past(day):
            raise ValidationError("Date cannot be in the past")

        service_id = None
        if data.service_id:
            service = await self.catalog.get_service(data.service_id)
            service_id = service.id

        entry = await self.waitlist.add(
            WaitlistEntry(
                uuid=uuid.uuid4(),
                requested_date=day,
                service_id=service_id,
                customer_name=data.customer_name,
                customer_email=data.customer_email,
                customer_phone=data.customer_phone,
                notes=data.notes,
            )
        )
        await self.db.commit()
        await self.db.refresh(entry)
        logger.info("Waitlist entry added", date=str(day))
        return entry
