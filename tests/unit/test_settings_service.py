from datetime import date

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, SettingsConflictError, ValidationError
from app.models.appointment import AppointmentStatus
from app.models.settings import SettingsEntry, SettingsKey
from app.schemas.booking_settings import (
    BlockedDateCreate,
    BookingSettings,
    BookingSettingsUpdate,
    BusinessHours,
    default_business_hours,
)
from app.services.settings import BookingSettingsService
from app.services.stores import AppointmentStore


@pytest.fixture
def settings_service(db: AsyncSession):
    return BookingSettingsService(db)


class TestBookingSettings:
    @pytest.mark.asyncio
    async def test_defaults_when_nothing_stored(self, settings_service):
        assert await settings_service.get_booking_settings() == BookingSettings()

    @pytest.mark.asyncio
    async def test_partial_update_keeps_other_fields(self, settings_service):
        updated = await settings_service.update_booking_settings(
            BookingSettingsUpdate(min_advance_hours=4)
        )
        assert updated.min_advance_hours == 4
        assert updated.max_advance_days == 90

        reloaded = await settings_service.get_booking_settings()
        assert reloaded.min_advance_hours == 4
        assert reloaded.buffer_minutes == 15

    @pytest.mark.asyncio
    async def test_invalid_update_is_rejected(self, settings_service):
        with pytest.raises(ValidationError, match="Invalid booking settings"):
            await settings_service.update_booking_settings(
                BookingSettingsUpdate(buffer_minutes=7)
            )
        assert (await settings_service.get_booking_settings()).buffer_minutes == 15

    @pytest.mark.asyncio
    async def test_recurring_days_are_deduplicated(self, settings_service):
        updated = await settings_service.update_booking_settings(
            BookingSettingsUpdate(recurring_blocked_days=[6, 0, 6])
        )
        assert updated.recurring_blocked_days == [0, 6]


class TestBusinessHours:
    @pytest.mark.asyncio
    async def test_default_hours(self, settings_service):
        assert await settings_service.get_business_hours() == default_business_hours()

    @pytest.mark.asyncio
    async def test_update_persists_string_weekday_keys(self, db, settings_service):
        hours = BusinessHours.model_validate(
            {
                1: {"intervals": [{"open": "10:00", "close": "18:00"}]},
                0: {"is_closed": True},
            }
        )
        await settings_service.update_business_hours(hours)

        entry = (
            await db.execute(
                select(SettingsEntry).filter(
                    SettingsEntry.key == SettingsKey.BUSINESS_HOURS.value
                )
            )
        ).scalar_one()
        assert sorted(entry.value.keys()) == ["0", "1"]

        reloaded = await settings_service.get_business_hours()
        assert reloaded.for_weekday(1).intervals[0].open == "10:00"
        assert reloaded.for_weekday(3).is_closed


class TestBlockedDates:
    @pytest.mark.asyncio
    async def test_add_and_list(self, settings_service):
        await settings_service.add_blocked_date(
            BlockedDateCreate(date=date(2026, 7, 4), reason="Independence Day")
        )
        await settings_service.add_blocked_date(
            BlockedDateCreate(
                date=date(2026, 6, 20), end_date=date(2026, 6, 22), reason="Vacation"
            )
        )

        blocked = await settings_service.list_blocked_dates()
        assert [(b.date, b.end_date) for b in blocked] == [
            (date(2026, 6, 20), date(2026, 6, 22)),
            (date(2026, 7, 4), None),
        ]

    @pytest.mark.asyncio
    async def test_conflict_with_existing_appointments(
        self, settings_service, book_appointment, tomorrow
    ):
        await book_appointment(tomorrow, 10, 0)
        await book_appointment(tomorrow, 14, 0)
        await book_appointment(date(2026, 6, 3), 10, 0)
        await book_appointment(date(2026, 6, 3), 12, 0, status=AppointmentStatus.CANCELLED)

        with pytest.raises(SettingsConflictError) as exc_info:
            await settings_service.add_blocked_date(
                BlockedDateCreate(date=tomorrow, end_date=date(2026, 6, 4), reason="Closed")
            )

        body = exc_info.value.to_dict()
        assert body["code"] == "BLOCKED_DATE_CONFLICT"
        assert body["affected_appointments"] == 3
        assert body["conflicts"] == [
            {"date": "2026-06-02", "count": 2},
            {"date": "2026-06-03", "count": 1},
        ]
        assert await settings_service.list_blocked_dates() == []

    @pytest.mark.asyncio
    async def test_force_keeps_appointments(
        self, db, settings_service, book_appointment, tomorrow
    ):
        appointment = await book_appointment(tomorrow, 10, 0)

        await settings_service.add_blocked_date(
            BlockedDateCreate(date=tomorrow, reason="Emergency", force=True)
        )

        assert len(await settings_service.list_blocked_dates()) == 1
        active = await AppointmentStore(db).list_by_date(tomorrow)
        assert [a.uuid for a in active] == [appointment.uuid]

    @pytest.mark.asyncio
    async def test_remove(self, settings_service):
        await settings_service.add_blocked_date(
            BlockedDateCreate(date=date(2026, 7, 4), reason="Independence Day")
        )
        remaining = await settings_service.remove_blocked_dates([date(2026, 7, 4)])
        assert remaining == []

    @pytest.mark.asyncio
    async def test_remove_unknown(self, settings_service):
        with pytest.raises(NotFoundError):
            await settings_service.remove_blocked_dates([date(2026, 7, 4)])
