from datetime import datetime
from typing import Iterable, List

from app.models.appointment import Appointment
from app.services.clock import ensure_utc
from app.services.slots import slot_span


class ConflictDetector:
    """Buffer-aware overlap check of a candidate against booked appointments."""

    def conflicting(
        self,
        candidate_start: datetime,
        duration_minutes: int,
        buffer_minutes: int,
        appointments: Iterable[Appointment],
    ) -> List[Appointment]:
        start, end = slot_span(ensure_utc(candidate_start), duration_minutes, buffer_minutes)

        blocking = []
        for appointment in appointments:
            if not appointment.is_active:
                continue
            booked_start, booked_end = slot_span(
                appointment.scheduled_at_utc,
                appointment.duration_minutes,
                buffer_minutes,
            )
            # Touching intervals do not overlap
            if start < booked_end and booked_start < end:
                blocking.append(appointment)
        return blocking

    def is_occupied(
        self,
        candidate_start: datetime,
        duration_minutes: int,
        buffer_minutes: int,
        appointments: Iterable[Appointment],
    ) -> bool:
        return bool(
            self.conflicting(
                candidate_start, duration_minutes, buffer_minutes, appointments
            )
        )
