from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.clock import get_calendar
from app.api.deps.database import get_db
from app.schemas.appointment import (
    Appointment,
    AppointmentCancel,
    AppointmentCreate,
    AppointmentCreated,
    WaitlistEntry,
    WaitlistJoin,
)
from app.schemas.availability import (
    AvailabilityResponse,
    DisabledDatesResponse,
    NextAvailableResponse,
)
from app.services.availability import AvailabilityService
from app.services.booking import BookingService
from app.services.clock import CalendarClock

router = APIRouter()


@router.get("/availability", response_model=AvailabilityResponse)
async def get_availability(
    date: Optional[str] = Query(None, description="Date to check, YYYY-MM-DD"),
    service_id: Optional[str] = Query(None, description="Service UUID"),
    db: AsyncSession = Depends(get_db),
    calendar: CalendarClock = Depends(get_calendar),
):
    """
    Get bookable time slots for a service on a date.

    Slots that are taken (including the buffer around existing bookings) or
    that start inside the minimum notice period are returned with
    ``available`` false. Blocked dates return an empty slot list.
    """
    return await AvailabilityService(db, calendar).get_availability(date, service_id)


@router.get("/availability/calendar", response_model=DisabledDatesResponse)
async def get_disabled_dates(
    start_date: Optional[str] = Query(None, description="First date, YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, description="Last date, YYYY-MM-DD"),
    db: AsyncSession = Depends(get_db),
    calendar: CalendarClock = Depends(get_calendar),
):
    """Dates in the range that cannot be booked, with the reason for each."""
    return await AvailabilityService(db, calendar).get_disabled_dates(
        start_date, end_date
    )


@router.get("/availability/next", response_model=NextAvailableResponse)
async def get_next_available_date(
    service_id: Optional[str] = Query(None, description="Service UUID"),
    db: AsyncSession = Depends(get_db),
    calendar: CalendarClock = Depends(get_calendar),
):
    return await AvailabilityService(db, calendar).find_next_available_date(
        service_id
    )


@router.post(
    "/appointments",
    response_model=AppointmentCreated,
    status_code=status.HTTP_201_CREATED,
)
async def create_appointment(
    appointment_data: AppointmentCreate,
    db: AsyncSession = Depends(get_db),
    calendar: CalendarClock = Depends(get_calendar),
):
    """
    Book an appointment (customer-facing).

    The slot is re-checked inside the write path. If it was taken since the
    availability was fetched the response is 409 with the refreshed
    ``available_slots`` for that date.
    """
    return await BookingService(db, calendar).create_appointment(appointment_data)


@router.post("/appointments/{appointment_id}/cancel", response_model=Appointment)
async def cancel_appointment(
    appointment_id: str,
    cancel_data: Optional[AppointmentCancel] = Body(None),
    db: AsyncSession = Depends(get_db),
    calendar: CalendarClock = Depends(get_calendar),
):
    """Cancel an appointment outside the cancellation cutoff."""
    reason = cancel_data.reason if cancel_data else None
    return await BookingService(db, calendar).cancel_appointment(
        appointment_id, reason
    )


@router.post(
    "/waitlist", response_model=WaitlistEntry, status_code=status.HTTP_201_CREATED
)
async def join_waitlist(
    waitlist_data: WaitlistJoin,
    db: AsyncSession = Depends(get_db),
    calendar: CalendarClock = Depends(get_calendar),
):
    """Join the waitlist for a fully booked date."""
    return await BookingService(db, calendar).join_waitlist(waitlist_data)
