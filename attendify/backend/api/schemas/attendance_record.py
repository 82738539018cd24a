# attendify/backend/api/schemas/attendance_record.py
from pydantic import BaseModel, Field, ConfigDict
from uuid import UUID
from datetime import datetime

from ...models.db_models import AttendanceStatus


class CheckInRequest(BaseModel):
    """Request model for a student's QR check-in."""
    qr_code: str = Field(..., min_length=1, max_length=256, description="The token scanned from the session's QR code.")


class ManualMarkRequest(BaseModel):
    """Request model for an instructor marking a student without the QR code."""
    session_id: UUID
    student_id: UUID
    status: AttendanceStatus = Field(AttendanceStatus.PRESENT, description="present, late or absent.")


class AttendanceRecordResponse(BaseModel):
    id: UUID
    session_id: UUID
    student_id: UUID
    checked_in_at: datetime
    status: AttendanceStatus

    model_config = ConfigDict(from_attributes=True)
