from datetime import date, datetime
from typing import Optional
from uuid import UUID

import structlog
from sqlalchemy import and_, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, SlotConflictError
from app.models.appointment import INACTIVE_STATUSES, Appointment
from app.models.service import Service
from app.models.settings import SettingsEntry, SettingsKey
from app.models.waitlist import WaitlistEntry, WaitlistStatus
from app.schemas.booking_settings import (
    BookingSettings,
    BusinessHours,
    default_business_hours,
)
from app.services.clock import ensure_utc

logger = structlog.get_logger(__name__)


ACTIVE_SLOT_INDEX = "uq_appointments_active_slot"


def is_slot_violation(error: IntegrityError) -> bool:
    """Whether the error comes from the active-slot unique index.

    PostgreSQL names the index; SQLite only lists the indexed columns.
    """
    message = str(error.orig)
    return ACTIVE_SLOT_INDEX in message or "appointments.slot_date" in message


def _parse_uuid(value) -> Optional[UUID]:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


class AppointmentStore:
    """Appointment reads and the guarded insert."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_by_date(self, day: date) -> list[Appointment]:
        """Active appointments booked on a business-local date."""
        stmt = (
            select(Appointment)
            .filter(
                and_(
                    Appointment.slot_date == day,
                    Appointment.status.notin_(INACTIVE_STATUSES),
                )
            )
            .order_by(Appointment.scheduled_at)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_between(self, start: datetime, end: datetime) -> list[Appointment]:
        """Active appointments starting in [start, end)."""
        stmt = (
            select(Appointment)
            .filter(
                and_(
                    Appointment.scheduled_at >= ensure_utc(start),
                    Appointment.scheduled_at < ensure_utc(end),
                    Appointment.status.notin_(INACTIVE_STATUSES),
                )
            )
            .order_by(Appointment.scheduled_at)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count_active_between(
        self, start_date: date, end_date: date
    ) -> dict[date, int]:
        """Active appointment counts per date in the inclusive window."""
        stmt = (
            select(Appointment.slot_date, func.count(Appointment.id))
            .filter(
                and_(
                    Appointment.slot_date >= start_date,
                    Appointment.slot_date <= end_date,
                    Appointment.status.notin_(INACTIVE_STATUSES),
                )
            )
            .group_by(Appointment.slot_date)
            .order_by(Appointment.slot_date)
        )
        result = await self.db.execute(stmt)
        return {row[0]: row[1] for row in result.all()}

    async def get(self, appointment_id) -> Appointment:
        appointment_uuid = _parse_uuid(appointment_id)
        appointment = None
        if appointment_uuid is not None:
            result = await self.db.execute(
                select(Appointment).filter(Appointment.uuid == appointment_uuid)
            )
            appointment = result.scalar_one_or_none()
        if appointment is None:
            raise NotFoundError("Appointment not found")
        return appointment

    async def reference_exists(self, reference: str) -> bool:
        result = await self.db.execute(
            select(Appointment.id).filter(Appointment.booking_reference == reference)
        )
        return result.scalar_one_or_none() is not None

    async def insert_if_free(self, candidate: Appointment) -> Appointment:
        """Flush the new row; the active-slot unique index rejects a taken slot."""
        slot_date, slot_time = candidate.slot_date, candidate.slot_time
        self.db.add(candidate)
        try:
            await self.db.flush()
        except IntegrityError as e:
            await self.db.rollback()
            if not is_slot_violation(e):
                raise
            logger.warning(
                "Slot taken at insert",
                slot_date=str(slot_date),
                slot_time=slot_time,
                error=str(e.orig),
            )
            raise SlotConflictError()
        return candidate


class SettingsStore:
    """Booking settings and business hours kept as JSON documents."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_entry(self, key: SettingsKey) -> Optional[SettingsEntry]:
        result = await self.db.execute(
            select(SettingsEntry).filter(SettingsEntry.key == key.value)
        )
        return result.scalar_one_or_none()

    async def _save(self, key: SettingsKey, value: dict) -> None:
        entry = await self._get_entry(key)
        if entry is None:
            self.db.add(SettingsEntry(key=key.value, value=value))
        else:
            entry.value = value
        await self.db.flush()

    async def get_booking_settings(self) -> BookingSettings:
        entry = await self._get_entry(SettingsKey.BOOKING_SETTINGS)
        if entry is None:
            return BookingSettings()
        return BookingSettings.model_validate(entry.value)

    async def save_booking_settings(self, booking_settings: BookingSettings) -> None:
        await self._save(
            SettingsKey.BOOKING_SETTINGS, booking_settings.model_dump(mode="json")
        )

    async def get_business_hours(self) -> BusinessHours:
        entry = await self._get_entry(SettingsKey.BUSINESS_HOURS)
        if entry is None:
            return default_business_hours()
        # Stored weekday keys are strings "0".."6"
        return BusinessHours.model_validate(
            {int(day): hours for day, hours in entry.value.items()}
        )

    async def save_business_hours(self, hours: BusinessHours) -> None:
        value = {
            str(day): day_hours.model_dump(mode="json")
            for day, day_hours in sorted(hours.root.items())
        }
        await self._save(SettingsKey.BUSINESS_HOURS, value)


class WaitlistStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def count_active(self, day: date) -> int:
        stmt = select(func.count(WaitlistEntry.id)).filter(
            and_(
                WaitlistEntry.requested_date == day,
                WaitlistEntry.status == WaitlistStatus.ACTIVE.value,
            )
        )
        result = await self.db.execute(stmt)
        return result.scalar_one()

    async def add(self, entry: WaitlistEntry) -> WaitlistEntry:
        self.db.add(entry)
        await self.db.flush()
        return entry


class ServiceCatalog:
    """Read-only view of bookable services."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_service(self, service_id) -> Service:
        service_uuid = _parse_uuid(service_id)
        service = None
        if service_uuid is not None:
            result = await self.db.execute(
                select(Service).filter(
                    and_(Service.uuid == service_uuid, Service.is_active.is_(True))
                )
            )
            service = result.scalar_one_or_none()
        if service is None:
            raise NotFoundError("Service not found")
        return service

    async def get_duration(self, service_id) -> int:
        service = await self.get_service(service_id)
        return service.duration_minutes
