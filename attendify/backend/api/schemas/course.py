# attendify/backend/api/schemas/course.py
from pydantic import BaseModel, Field, ConfigDict
from uuid import UUID
from typing import Optional


class CourseCreateRequest(BaseModel):
    """Request model for creating a course."""
    code: str = Field(..., min_length=1, max_length=32, description="Unique course code, e.g. 'CS101'.")
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    semester: str = Field(..., min_length=1, description="e.g. 'Fall'.")
    year: int = Field(..., ge=1900, le=3000)
    instructor_id: Optional[UUID] = Field(None, description="Owner of the course. Required for admins; instructors always own what they create.")


class CourseUpdateRequest(BaseModel):
    """Partial update; omitted fields keep their value."""
    code: Optional[str] = Field(None, min_length=1, max_length=32)
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    semester: Optional[str] = Field(None, min_length=1)
    year: Optional[int] = Field(None, ge=1900, le=3000)
    instructor_id: Optional[UUID] = None


class CourseResponse(BaseModel):
    id: UUID
    code: str
    name: str
    description: Optional[str] = None
    instructor_id: UUID
    semester: str
    year: int

    model_config = ConfigDict(from_attributes=True)
