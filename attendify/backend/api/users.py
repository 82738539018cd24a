from fastapi import APIRouter, Depends, Request
from typing import List
from uuid import UUID

from ..models.db_models import User, Role
from ..services.user_service import UserService
from ..services.policy import Action, authorize
from .schemas.user import UserResponse
from .auth import get_current_user
from .dependencies import get_user_service
from .utilities.limiter import limiter

router = APIRouter(prefix="/users", tags=["User Endpoints"])


@router.get("/me", response_model=UserResponse, summary="Get the authenticated user")
@limiter.limit("60/minute")
async def get_me(request: Request, user: User = Depends(get_current_user)):
    return user


@router.get("", response_model=List[UserResponse], summary="List users with a role")
@limiter.limit("30/minute")
async def list_users(request: Request, role: Role = Role.STUDENT, user: User = Depends(get_current_user), service: UserService = Depends(get_user_service)):
    authorize(user, Action.VIEW_DIRECTORY)
    return await service.list_users(role)


@router.get("/{user_id}", response_model=UserResponse, summary="Get a user")
@limiter.limit("60/minute")
async def get_user(request: Request, user_id: UUID, user: User = Depends(get_current_user), service: UserService = Depends(get_user_service)):
    if user.id != user_id:
        authorize(user, Action.VIEW_DIRECTORY)
    return await service.get_user(user_id)
