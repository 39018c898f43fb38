from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    Date,
    Text,
    ForeignKey,
    CheckConstraint,
    Index,
    text,
)
from sqlalchemy.types import Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.core.database import Base
import enum
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional


class AppointmentStatus(enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"
    IN_PROGRESS = "in_progress"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


# Statuses that no longer hold their slot
INACTIVE_STATUSES = (AppointmentStatus.CANCELLED.value, AppointmentStatus.NO_SHOW.value)

# Statuses that can no longer change
TERMINAL_STATUSES = (
    AppointmentStatus.COMPLETED.value,
    AppointmentStatus.CANCELLED.value,
    AppointmentStatus.NO_SHOW.value,
)

_ACTIVE_SLOT_PREDICATE = text("status NOT IN ('cancelled', 'no_show')")


class Appointment(Base):
    """Booked appointment; the slot columns back the double-booking constraint."""

    __tablename__ = "appointments"

    # Core identity
    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(Uuid, unique=True, nullable=False, default=uuid.uuid4, index=True)
    booking_reference = Column(String(20), unique=True, nullable=False)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)

    # Scheduling details
    scheduled_at = Column(DateTime(timezone=True), nullable=False, index=True)
    slot_date = Column(Date, nullable=False, index=True)  # business-local date
    slot_time = Column(String(5), nullable=False)  # business-local HH:MM
    duration_minutes = Column(Integer, nullable=False)

    # Status management
    status = Column(
        String(20), nullable=False, default=AppointmentStatus.PENDING.value, index=True
    )
    previous_status = Column(String(20), nullable=True)
    status_changed_at = Column(DateTime(timezone=True), server_default=func.now())

    # Customer details
    customer_name = Column(String(255), nullable=True)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)

    # Cancellation management
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    # Audit timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="check_positive_duration"),
        # At most one active appointment may start in a given slot
        Index(
            "uq_appointments_active_slot",
            "slot_date",
            "slot_time",
            unique=True,
            sqlite_where=_ACTIVE_SLOT_PREDICATE,
            postgresql_where=_ACTIVE_SLOT_PREDICATE,
        ),
    )

    service = relationship("Service")

    def can_transition_to(self, new_status: AppointmentStatus) -> bool:
        """Check if appointment can transition to the new status."""
        current = AppointmentStatus(self.status)

        allowed_transitions = {
            AppointmentStatus.PENDING: [
                AppointmentStatus.CONFIRMED,
                AppointmentStatus.CANCELLED,
                AppointmentStatus.NO_SHOW,
            ],
            AppointmentStatus.CONFIRMED: [
                AppointmentStatus.CHECKED_IN,
                AppointmentStatus.CANCELLED,
                AppointmentStatus.NO_SHOW,
            ],
            AppointmentStatus.CHECKED_IN: [
                AppointmentStatus.IN_PROGRESS,
                AppointmentStatus.CANCELLED,
            ],
            AppointmentStatus.IN_PROGRESS: [
                AppointmentStatus.READY,
                AppointmentStatus.COMPLETED,
            ],
            AppointmentStatus.READY: [AppointmentStatus.COMPLETED],
            AppointmentStatus.COMPLETED: [],  # Final state
            AppointmentStatus.CANCELLED: [],  # Final state
            AppointmentStatus.NO_SHOW: [],  # Final state
        }

        return new_status in allowed_transitions.get(current, [])

    def transition_to(
        self,
        new_status: AppointmentStatus,
        at: Optional[datetime] = None,
        reason: Optional[str] = None,
    ) -> bool:
        """Transition appointment to new status with validation."""
        if not self.can_transition_to(new_status):
            return False

        at = at or datetime.now(timezone.utc)
        self.previous_status = self.status
        self.status = new_status.value
        self.status_changed_at = at

        if new_status == AppointmentStatus.CANCELLED:
            self.cancelled_at = at
            if reason:
                self.cancellation_reason = reason

        return True

    @property
    def is_active(self) -> bool:
        """Whether the appointment still occupies its slot."""
        return self.status not in INACTIVE_STATUSES

    @property
    def scheduled_at_utc(self) -> datetime:
        # SQLite hands back naive datetimes; values are always stored as UTC
        if self.scheduled_at.tzinfo is None:
            return self.scheduled_at.replace(tzinfo=timezone.utc)
        return self.scheduled_at.astimezone(timezone.utc)

    @property
    def ends_at(self) -> datetime:
        return self.scheduled_at_utc + timedelta(minutes=self.duration_minutes)

    def __repr__(self):
        return (
            f"<Appointment(id={self.id}, ref='{self.booking_reference}', "
            f"status='{self.status}', slot='{self.slot_date} {self.slot_time}')>"
        )
