from datetime import date as date_type
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TimeSlot(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    time: str
    available: bool
    waitlist_count: int = Field(0, alias="waitlistCount")


class AvailabilityResponse(BaseModel):
    date: date_type
    service_id: str
    slots: List[TimeSlot] = Field(default_factory=list)
    is_fully_booked: bool = False
    waitlist_count: int = 0


class DisabledDate(BaseModel):
    date: date_type
    reason: str


class DisabledDatesResponse(BaseModel):
    start_date: date_type
    end_date: date_type
    disabled_dates: List[DisabledDate] = Field(default_factory=list)


class NextAvailableResponse(BaseModel):
    service_id: str
    date: Optional[date_type] = None
