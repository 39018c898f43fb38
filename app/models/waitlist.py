import enum
import uuid

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.types import Uuid
from sqlalchemy.sql import func

from app.core.database import Base


class WaitlistStatus(enum.Enum):
    ACTIVE = "active"
    NOTIFIED = "notified"
    BOOKED = "booked"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class WaitlistEntry(Base):
    """Customer waiting for an opening on a fully booked date."""

    __tablename__ = "waitlist_entries"

    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(Uuid, unique=True, nullable=False, default=uuid.uuid4, index=True)
    requested_date = Column(Date, nullable=False)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=True)

    customer_name = Column(String(255), nullable=False)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)

    status = Column(String(20), nullable=False, default=WaitlistStatus.ACTIVE.value)

    # Audit timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("ix_waitlist_status_requested_date", "status", "requested_date"),
    )

    def __repr__(self):
        return (
            f"<WaitlistEntry(id={self.id}, date={self.requested_date}, "
            f"status='{self.status}')>"
        )
