import uuid
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.appointment import Appointment, AppointmentStatus
from app.models.service import Service
from app.models.waitlist import WaitlistEntry
from app.schemas.booking_settings import BookingSettings
from app.services.stores import SettingsStore

BUSINESS_TZ = ZoneInfo("America/Los_Angeles")


def local_instant(day: date, hour: int, minute: int = 0) -> datetime:
    """UTC instant for a business-local wall-clock time."""
    return datetime.combine(day, time(hour, minute), tzinfo=BUSINESS_TZ).astimezone(
        timezone.utc
    )


def build_appointment(
    day: date,
    hour: int,
    minute: int = 0,
    duration_minutes: int = 60,
    status: AppointmentStatus = AppointmentStatus.CONFIRMED,
    service_id: Optional[int] = None,
) -> Appointment:
    """Unsaved appointment starting at a business-local time."""
    return Appointment(
        uuid=uuid.uuid4(),
        booking_reference=f"APT-{day.year}-{uuid.uuid4().int % 1_000_000:06d}",
        service_id=service_id,
        scheduled_at=local_instant(day, hour, minute),
        slot_date=day,
        slot_time=f"{hour:02d}:{minute:02d}",
        duration_minutes=duration_minutes,
        status=status.value,
    )


@pytest.fixture
async def grooming_service(db: AsyncSession) -> Service:
    """A 60 minute full groom."""
    service = Service(uuid=uuid.uuid4(), name="Full Groom", duration_minutes=60)
    db.add(service)
    await db.commit()
    await db.refresh(service)
    return service


@pytest.fixture
async def inactive_service(db: AsyncSession) -> Service:
    service = Service(
        uuid=uuid.uuid4(), name="Retired Service", duration_minutes=30, is_active=False
    )
    db.add(service)
    await db.commit()
    await db.refresh(service)
    return service


@pytest.fixture
def book_appointment(db: AsyncSession, grooming_service: Service):
    """Persist an appointment for the grooming service at a local time."""

    async def _book(day: date, hour: int, minute: int = 0, **kwargs) -> Appointment:
        kwargs.setdefault("service_id", grooming_service.id)
        kwargs.setdefault("duration_minutes", grooming_service.duration_minutes)
        appointment = build_appointment(day, hour, minute, **kwargs)
        db.add(appointment)
        await db.commit()
        await db.refresh(appointment)
        return appointment

    return _book


@pytest.fixture
def save_booking_settings(db: AsyncSession):
    async def _save(**overrides) -> BookingSettings:
        booking_settings = BookingSettings(**overrides)
        await SettingsStore(db).save_booking_settings(booking_settings)
        await db.commit()
        return booking_settings

    return _save


@pytest.fixture
def add_waitlist_entry(db: AsyncSession):
    async def _add(day: date, status: str = "active") -> WaitlistEntry:
        entry = WaitlistEntry(
            uuid=uuid.uuid4(),
            requested_date=day,
            customer_name="Waiting Customer",
            status=status,
        )
        db.add(entry)
        await db.commit()
        return entry

    return _add


@pytest.fixture
def tomorrow() -> date:
    # Tuesday, open 09:00-17:00 by default
    return date(2026, 6, 2)


@pytest.fixture
def next_sunday() -> date:
    return date(2026, 6, 7)
