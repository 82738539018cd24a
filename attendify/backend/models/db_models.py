# attendify/backend/models/db_models.py

from pydantic import BaseModel, Field
from datetime import date, datetime
from enum import Enum
from typing import Optional
from uuid import UUID


class Role(str, Enum):
    STUDENT = "student"
    INSTRUCTOR = "instructor"
    ADMIN = "admin"


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    LATE = "late"
    ABSENT = "absent"


class User(BaseModel):
    """
    Represents a user in the identity directory, mapping to the 'Users' table.
    """
    id: UUID = Field(..., description="Unique identifier for each user, acting as the Primary Key")
    full_name: str
    email: Optional[str] = None
    role: Role = Field(Role.STUDENT, description="Can be student, instructor or admin")
    student_number: Optional[str] = None
    department: Optional[str] = None


class Course(BaseModel):
    """
    Represents a course, mapping to the 'Courses' table. Owned by exactly one instructor.
    """
    id: UUID
    code: str = Field(..., description="Unique course code, e.g. 'CS101'")
    name: str
    description: Optional[str] = None
    instructor_id: UUID = Field(..., description="FK linking to the owning instructor")
    semester: str
    year: int


class Enrollment(BaseModel):
    """Pairs one student with one course. Unique per (course_id, student_id)."""
    id: UUID
    course_id: UUID
    student_id: UUID


class Session(BaseModel):
    """
    Represents a scheduled class meeting, mapping to the 'Sessions' table.
    The qr_code is issued once at creation and never changes.
    """
    id: UUID
    course_id: UUID = Field(..., description="FK linking to the owning course")
    title: str
    scheduled_date: date
    start_time: datetime
    end_time: datetime
    qr_code: str = Field(..., description="Opaque, globally unique check-in token")
    is_active: bool = True


class AttendanceRecord(BaseModel):
    """
    Represents a single student's attendance for a session,
    mapping to the 'AttendanceRecords' table. Unique per (session_id, student_id).
    """
    id: UUID
    session_id: UUID = Field(..., description="FK linking to the specific session")
    student_id: UUID = Field(..., description="FK linking to the student")
    checked_in_at: datetime = Field(..., description="Server-assigned check-in time")
    status: AttendanceStatus = AttendanceStatus.PRESENT
