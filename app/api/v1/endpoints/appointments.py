from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.clock import get_calendar
from app.api.deps.database import get_db
from app.schemas.appointment import (
    Appointment,
    AppointmentList,
    AppointmentStatusTransition,
)
from app.services.booking import BookingService
from app.services.clock import CalendarClock

router = APIRouter()


@router.get("/today", response_model=AppointmentList)
async def get_today_appointments(
    db: AsyncSession = Depends(get_db),
    calendar: CalendarClock = Depends(get_calendar),
):
    """Active appointments for the current business day."""
    appointments = await BookingService(db, calendar).list_today()
    return AppointmentList(
        appointments=[Appointment.model_validate(a) for a in appointments],
        total_count=len(appointments),
    )


@router.post("/{appointment_id}/status", response_model=Appointment)
async def transition_appointment_status(
    appointment_id: str,
    transition: AppointmentStatusTransition,
    db: AsyncSession = Depends(get_db),
    calendar: CalendarClock = Depends(get_calendar),
):
    """
    Move an appointment to a new status.

    Allowed transitions:
    - pending -> confirmed, cancelled, no_show
    - confirmed -> checked_in, cancelled, no_show
    - checked_in -> in_progress, cancelled
    - in_progress -> ready, completed
    - ready -> completed
    """
    return await BookingService(db, calendar).transition_status(
        appointment_id, transition.new_status
    )
