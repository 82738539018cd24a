# attendify/backend/api/schemas/user.py
from pydantic import BaseModel, ConfigDict
from typing import Optional
from uuid import UUID

from ...models.db_models import Role


class UserResponse(BaseModel):
    id: UUID
    full_name: str
    email: Optional[str] = None
    role: Role
    student_number: Optional[str] = None
    department: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


# Internal representation of JWT data
class TokenData(BaseModel):
    sub: Optional[UUID] = None
