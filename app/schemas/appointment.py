from datetime import date as date_type, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Import enums from the model to avoid duplication
from app.models.appointment import AppointmentStatus
from app.utils.validation import validate_email_format, validate_phone_number


class AppointmentCreate(BaseModel):
    # Kept as raw strings so the date/time validators produce the user-facing messages
    date: str
    time: str
    service_id: str
    customer_name: Optional[str] = Field(None, max_length=255)
    customer_email: Optional[str] = Field(None, max_length=255)
    customer_phone: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("customer_email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        if v and not validate_email_format(v):
            raise ValueError("Invalid email format")
        return v

    @field_validator("customer_phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        if v and not validate_phone_number(v):
            raise ValueError("Invalid phone number format")
        return v


class AppointmentCreated(BaseModel):
    appointment_id: UUID
    reference: str
    scheduled_at: datetime


class AppointmentCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class AppointmentStatusTransition(BaseModel):
    new_status: AppointmentStatus


class Appointment(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    uuid: UUID
    booking_reference: str
    scheduled_at: datetime
    slot_date: date_type
    slot_time: str
    duration_minutes: int
    status: AppointmentStatus
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None


class AppointmentList(BaseModel):
    appointments: list[Appointment]
    total_count: int


class WaitlistJoin(BaseModel):
    date: str
    service_id: Optional[str] = None
    customer_name: str = Field(..., min_length=1, max_length=255)
    customer_email: Optional[str] = Field(None, max_length=255)
    customer_phone: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class WaitlistEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    uuid: UUID
    requested_date: date_type
    status: str
