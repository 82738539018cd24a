# attendify/backend/api/schemas/enrollment.py
from pydantic import BaseModel, ConfigDict
from uuid import UUID


class EnrollmentCreateRequest(BaseModel):
    course_id: UUID
    student_id: UUID


class EnrollmentResponse(BaseModel):
    id: UUID
    course_id: UUID
    student_id: UUID

    model_config = ConfigDict(from_attributes=True)
