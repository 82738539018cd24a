from fastapi import APIRouter, Depends, status, Response, Request
from typing import List
from uuid import UUID

from ..models.db_models import User, Role
from ..services.course_service import CourseService
from ..services.errors import ForbiddenError, InvalidInputError
from ..services.policy import Action, authorize
from .schemas.course import (
    CourseCreateRequest,
    CourseUpdateRequest,
    CourseResponse
)
from .auth import get_current_user
from .dependencies import get_course_service
from .utilities.access import require_course
from .utilities.limiter import limiter

router = APIRouter(prefix="/courses", tags=["Course Endpoints"])


def _resolve_owner(user: User, requested_owner: UUID = None) -> UUID:
    """Instructors always own the courses they create; admins must name the owner."""
    if user.role == Role.ADMIN:
        if requested_owner is None:
            raise InvalidInputError("instructor_id is required when an admin creates a course.")
        return requested_owner
    if requested_owner is not None and requested_owner != user.id:
        raise ForbiddenError("Instructors can only create courses they own.")
    return user.id


@router.post("", response_model=CourseResponse, status_code=status.HTTP_201_CREATED, summary="Create a course")
@limiter.limit("10/minute")
async def create_course(request: Request, create_request: CourseCreateRequest, user: User = Depends(get_current_user), service: CourseService = Depends(get_course_service)):
    authorize(user, Action.CREATE_COURSE)
    return await service.create_course(
        code=create_request.code,
        name=create_request.name,
        instructor_id=_resolve_owner(user, create_request.instructor_id),
        semester=create_request.semester,
        year=create_request.year,
        description=create_request.description
    )


@router.get("", response_model=List[CourseResponse], summary="List all courses")
@limiter.limit("60/minute")
async def list_courses(request: Request, user: User = Depends(get_current_user), service: CourseService = Depends(get_course_service)):
    authorize(user, Action.VIEW_COURSE)
    return await service.list_courses()


@router.get("/instructor/{instructor_id}", response_model=List[CourseResponse], summary="List the courses of an instructor")
@limiter.limit("60/minute")
async def list_instructor_courses(request: Request, instructor_id: UUID, user: User = Depends(get_current_user), service: CourseService = Depends(get_course_service)):
    authorize(user, Action.VIEW_COURSE)
    return await service.list_courses(instructor_id=instructor_id)


@router.get("/{course_id}", response_model=CourseResponse, summary="Get a course")
@limiter.limit("60/minute")
async def get_course(request: Request, course_id: UUID, user: User = Depends(get_current_user), service: CourseService = Depends(get_course_service)):
    return await require_course(user, course_id, service, Action.VIEW_COURSE)


@router.patch("/{course_id}", response_model=CourseResponse, summary="Update a course")
@limiter.limit("20/minute")
async def update_course(request: Request, course_id: UUID, update_request: CourseUpdateRequest, user: User = Depends(get_current_user), service: CourseService = Depends(get_course_service)):
    await require_course(user, course_id, service)
    changes = update_request.model_dump(exclude_unset=True)
    if "instructor_id" in changes and user.role != Role.ADMIN and changes["instructor_id"] != user.id:
        raise ForbiddenError("Only admins can transfer a course to another instructor.")
    return await service.update_course(course_id, **changes)


@router.delete("/{course_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a course with its sessions and enrollments")
@limiter.limit("10/minute")
async def delete_course(request: Request, course_id: UUID, user: User = Depends(get_current_user), service: CourseService = Depends(get_course_service)):
    await require_course(user, course_id, service)
    await service.delete_course(course_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
