import enum

from sqlalchemy import JSON, Column, DateTime, Integer, String
from sqlalchemy.sql import func

from app.core.database import Base


class SettingsKey(enum.Enum):
    BOOKING_SETTINGS = "booking_settings"
    BUSINESS_HOURS = "business_hours"


class SettingsEntry(Base):
    """Administrator-owned configuration stored as one JSON document per key."""

    __tablename__ = "settings"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(100), unique=True, nullable=False)
    value = Column(JSON, nullable=False)

    # Audit timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self):
        return f"<SettingsEntry(id={self.id}, key='{self.key}')>"
