"""Booking domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TimeslotCreate(BaseModel):
    """Schema for an advisor opening a new timeslot"""

    starts_at: datetime
    duration_minutes: int = Field(60, ge=15, le=480)
    max_bookings: int = Field(1, ge=1)
    advisor_id: Optional[str] = None


class TimeslotResponse(BaseModel):
    id: str
    advisor_id: Optional[str] = None
    starts_at: datetime
    duration_minutes: int
    max_bookings: int
    current_bookings: int
    remaining_capacity: int
    is_available: bool

    model_config = ConfigDict(from_attributes=True)


class BookingCreate(BaseModel):
    timeslot_id: str
    notes: Optional[str] = Field(None, max_length=2000)


class BookingResponse(BaseModel):
    id: str
    user_id: str
    timeslot_id: str
    booking_reference: str
    status: str
    notes: Optional[str] = None
    booked_at: datetime
    cancelled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
