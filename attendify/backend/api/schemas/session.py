# attendify/backend/api/schemas/session.py
from pydantic import BaseModel, Field, ConfigDict, AwareDatetime
from uuid import UUID
from datetime import date, datetime
from typing import Optional


class SessionCreateRequest(BaseModel):
    """Request model for scheduling a new class session."""
    course_id: UUID
    title: str = Field(..., min_length=1, description="e.g. 'Week 3 - Lecture'.")
    scheduled_date: date
    start_time: AwareDatetime = Field(..., description="Check-in window opens, with timezone, e.g. 2024-03-01T09:00:00Z.")
    end_time: AwareDatetime = Field(..., description="Check-in window closes, with timezone.")
    is_active: Optional[bool] = Field(None, description="Omit to use the server default.")


class SessionUpdateRequest(BaseModel):
    """Replaces the title, date and window of a session. The QR code cannot be changed."""
    title: str = Field(..., min_length=1)
    scheduled_date: date
    start_time: AwareDatetime
    end_time: AwareDatetime


class SessionActiveRequest(BaseModel):
    is_active: bool


class SessionResponse(BaseModel):
    """Public view of a session. Does not carry the QR code."""
    id: UUID
    course_id: UUID
    title: str
    scheduled_date: date
    start_time: datetime
    end_time: datetime
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class SessionWithQRResponse(SessionResponse):
    """Returned to course staff when the session is created."""
    qr_code: str


class SessionQRResponse(BaseModel):
    session_id: UUID
    qr_code: str
