from typing import List
from uuid import UUID

from ..db.storage import AttendanceStore
from ..models.db_models import User, Role
from .errors import UserNotFound


class UserService:
    """Read access to the identity directory. Registration and login live elsewhere."""

    def __init__(self, store: AttendanceStore):
        self.store = store

    async def get_user(self, user_id: UUID) -> User:
        user = await self.store.get_user(user_id)
        if not user:
            raise UserNotFound()
        return user

    async def list_users(self, role: Role) -> List[User]:
        return await self.store.get_users_by_role(role)
