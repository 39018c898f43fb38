from datetime import date

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, SettingsConflictError, ValidationError
from app.schemas.booking_settings import (
    BlockedDateConflict,
    BlockedDateCreate,
    BlockedDateEntry,
    BookingSettings,
    BookingSettingsUpdate,
    BusinessHours,
)
from app.services.stores import AppointmentStore, SettingsStore

logger = structlog.get_logger(__name__)


class BookingSettingsService:
    """Administrator updates to booking settings, blocked dates and hours."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = SettingsStore(db)
        self.appointments = AppointmentStore(db)

    async def get_booking_settings(self) -> BookingSettings:
        return await self.store.get_booking_settings()

    async def update_booking_settings(
        self, update: BookingSettingsUpdate
    ) -> BookingSettings:
        current = await self.store.get_booking_settings()
        merged = current.model_dump()
        merged.update(update.model_dump(exclude_unset=True, exclude_none=True))

        try:
            updated = BookingSettings.model_validate(merged)
        except ValueError as e:
            raise ValidationError("Invalid booking settings", details=str(e))

        await self.store.save_booking_settings(updated)
        await self.db.commit()
        logger.info(
            "Booking settings updated",
            fields=sorted(update.model_dump(exclude_unset=True).keys()),
        )
        return updated

    async def get_business_hours(self) -> BusinessHours:
        return await self.store.get_business_hours()

    async def update_business_hours(self, hours: BusinessHours) -> BusinessHours:
        await self.store.save_business_hours(hours)
        await self.db.commit()
        logger.info("Business hours updated", weekdays=sorted(hours.root.keys()))
        return hours

    async def list_blocked_dates(self) -> list[BlockedDateEntry]:
        booking_settings = await self.store.get_booking_settings()
        return sorted(booking_settings.blocked_dates, key=lambda entry: entry.date)

    async def add_blocked_date(self, data: BlockedDateCreate) -> list[BlockedDateEntry]:
        """Block a date or range unless active appointments fall inside it.

        ``force`` blocks anyway; existing appointments are left untouched.
        """
        end = data.end_date or data.date
        if not data.force:
            counts = await self.appointments.count_active_between(data.date, end)
            if counts:
                conflicts = [
                    BlockedDateConflict(date=day, count=count).model_dump(mode="json")
                    for day, count in sorted(counts.items())
                ]
                logger.info(
                    "Blocked date rejected, appointments exist",
                    start=str(data.date),
                    end=str(end),
                    appointments=sum(counts.values()),
                )
                raise SettingsConflictError(
                    "Cannot block dates with existing appointments",
                    affected_appointments=sum(counts.values()),
                    conflicts=conflicts,
                )

        booking_settings = await self.store.get_booking_settings()
        entry = BlockedDateEntry(
            date=data.date, end_date=data.end_date, reason=data.reason
        )
        updated = booking_settings.model_copy(
            update={"blocked_dates": [*booking_settings.blocked_dates, entry]}
        )
        await self.store.save_booking_settings(updated)
        await self.db.commit()
        logger.info(
            "Blocked date added", start=str(data.date), end=str(end), force=data.force
        )
        return sorted(updated.blocked_dates, key=lambda e: e.date)

    async def remove_blocked_dates(self, dates: list[date]) -> list[BlockedDateEntry]:
        """Remove blocked entries whose start date is listed."""
        booking_settings = await self.store.get_booking_settings()
        to_remove = set(dates)
        remaining = [
            entry for entry in booking_settings.blocked_dates
            if entry.date not in to_remove
        ]
        if len(remaining) == len(booking_settings.blocked_dates):
            raise NotFoundError("No matching blocked dates found to remove")

        updated = booking_settings.model_copy(update={"blocked_dates": remaining})
        await self.store.save_booking_settings(updated)
        await self.db.commit()
        logger.info("Blocked dates removed", dates=[str(d) for d in sorted(to_remove)])
        return sorted(remaining, key=lambda e: e.date)
