from typing import Dict, List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.database import get_db
from app.schemas.booking_settings import (
    BlockedDateCreate,
    BlockedDateEntry,
    BlockedDateRemove,
    BookingSettings,
    BookingSettingsUpdate,
    BusinessHours,
)
from app.services.settings import BookingSettingsService

router = APIRouter()


@router.get("/booking", response_model=BookingSettings)
async def get_booking_settings(db: AsyncSession = Depends(get_db)):
    return await BookingSettingsService(db).get_booking_settings()


@router.put("/booking", response_model=BookingSettings)
async def update_booking_settings(
    settings_data: BookingSettingsUpdate, db: AsyncSession = Depends(get_db)
):
    """Partially update booking settings; omitted fields keep their values."""
    return await BookingSettingsService(db).update_booking_settings(settings_data)


@router.get("/business-hours", response_model=BusinessHours)
async def get_business_hours(db: AsyncSession = Depends(get_db)):
    return await BookingSettingsService(db).get_business_hours()


@router.put("/business-hours", response_model=BusinessHours)
async def update_business_hours(
    hours: BusinessHours, db: AsyncSession = Depends(get_db)
):
    """Replace the weekly hours. Weekdays left out are closed."""
    return await BookingSettingsService(db).update_business_hours(hours)


@router.get("/booking/blocked-dates")
async def list_blocked_dates(
    db: AsyncSession = Depends(get_db),
) -> Dict[str, List[BlockedDateEntry]]:
    blocked = await BookingSettingsService(db).list_blocked_dates()
    return {"blocked_dates": blocked}


@router.post("/booking/blocked-dates", status_code=status.HTTP_201_CREATED)
async def add_blocked_date(
    blocked_data: BlockedDateCreate, db: AsyncSession = Depends(get_db)
) -> Dict[str, List[BlockedDateEntry]]:
    """
    Block a single date or an inclusive date range.

    Returns 409 with per-date appointment counts when active appointments
    exist in the range, unless ``force`` is set.
    """
    blocked = await BookingSettingsService(db).add_blocked_date(blocked_data)
    return {"blocked_dates": blocked}


@router.delete("/booking/blocked-dates")
async def remove_blocked_dates(
    remove_data: BlockedDateRemove, db: AsyncSession = Depends(get_db)
) -> Dict[str, List[BlockedDateEntry]]:
    blocked = await BookingSettingsService(db).remove_blocked_dates(remove_data.dates)
    return {"blocked_dates": blocked}
