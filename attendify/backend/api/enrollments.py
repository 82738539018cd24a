from fastapi import APIRouter, Depends, status, Response, Request
from typing import List
from uuid import UUID

from ..models.db_models import User
from ..services.course_service import CourseService
from ..services.enrollment_service import EnrollmentService
from ..services.user_service import UserService
from ..services.policy import Action, authorize
from .schemas.enrollment import EnrollmentCreateRequest, EnrollmentResponse
from .auth import get_current_user
from .dependencies import get_enrollment_service, get_course_service, get_user_service
from .utilities.access import require_course
from .utilities.limiter import limiter

router = APIRouter(prefix="/enrollments", tags=["Enrollment Endpoints"])


@router.post("", response_model=EnrollmentResponse, status_code=status.HTTP_201_CREATED, summary="Enroll a student in a course")
@limiter.limit("60/minute")
async def enroll_student(request: Request, create_request: EnrollmentCreateRequest, user: User = Depends(get_current_user), service: EnrollmentService = Depends(get_enrollment_service), course_service: CourseService = Depends(get_course_service)):
    await require_course(user, create_request.course_id, course_service)
    return await service.enroll(create_request.course_id, create_request.student_id)


@router.get("/course/{course_id}", response_model=List[EnrollmentResponse], summary="List the enrollments of a course")
@limiter.limit("60/minute")
async def list_course_enrollments(request: Request, course_id: UUID, user: User = Depends(get_current_user), service: EnrollmentService = Depends(get_enrollment_service), course_service: CourseService = Depends(get_course_service)):
    await require_course(user, course_id, course_service)
    return await service.list_by_course(course_id)


@router.get("/student/{student_id}", response_model=List[EnrollmentResponse], summary="List the enrollments of a student")
@limiter.limit("60/minute")
async def list_student_enrollments(request: Request, student_id: UUID, user: User = Depends(get_current_user), service: EnrollmentService = Depends(get_enrollment_service), user_service: UserService = Depends(get_user_service)):
    student = await user_service.get_user(student_id)
    authorize(user, Action.VIEW_STUDENT_ATTENDANCE, student)
    return await service.list_by_student(student_id)


@router.delete("/{enrollment_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Remove an enrollment")
@limiter.limit("30/minute")
async def unenroll_student(request: Request, enrollment_id: UUID, user: User = Depends(get_current_user), service: EnrollmentService = Depends(get_enrollment_service), course_service: CourseService = Depends(get_course_service)):
    enrollment = await service.get_enrollment(enrollment_id)
    await require_course(user, enrollment.course_id, course_service)
    await service.unenroll(enrollment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
