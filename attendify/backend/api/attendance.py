from fastapi import APIRouter, Depends, status, Response, Request
from typing import List
from uuid import UUID

from ..models.db_models import User, Role
from ..services.attendance_service import AttendanceService, SessionAttendanceSummary
from ..services.course_service import CourseService
from ..services.session_service import SessionService
from ..services.user_service import UserService
from ..services.policy import Action, authorize, is_allowed
from .schemas.attendance_record import (
    CheckInRequest,
    ManualMarkRequest,
    AttendanceRecordResponse
)
from .auth import get_current_user
from .dependencies import get_attendance_service, get_session_service, get_course_service, get_user_service
from .utilities.access import require_course, require_session
from .utilities.limiter import limiter

router = APIRouter(prefix="/attendance", tags=["Attendance Endpoints"])


# === BÖLÜM 1: YOKLAMAYA KATILIM ===

@router.post("/checkin", response_model=AttendanceRecordResponse, status_code=status.HTTP_201_CREATED, summary="Check in to a session with its QR code")
@limiter.limit("10/minute")
async def check_in(request: Request, check_in_request: CheckInRequest, user: User = Depends(get_current_user), service: AttendanceService = Depends(get_attendance_service)):
    """
    Öğrenci kimliği sadece token'dan alınır; istek gövdesinde öğrenci ID'si kabul edilmez.
    """
    authorize(user, Action.CHECK_IN)
    return await service.check_in(qr_code=check_in_request.qr_code, student_id=user.id)


# === BÖLÜM 2: EĞİTMEN İŞLEMLERİ ===

@router.post("", response_model=AttendanceRecordResponse, status_code=status.HTTP_201_CREATED, summary="Mark a student's attendance manually")
@limiter.limit("30/minute")
async def manual_mark(request: Request, mark_request: ManualMarkRequest, user: User = Depends(get_current_user), service: AttendanceService = Depends(get_attendance_service), session_service: SessionService = Depends(get_session_service), course_service: CourseService = Depends(get_course_service)):
    await require_session(user, mark_request.session_id, session_service, course_service)
    return await service.manual_mark(mark_request.session_id, mark_request.student_id, mark_request.status)


@router.delete("/session/{session_id}/student/{student_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Remove a student's attendance from a session")
@limiter.limit("30/minute")
async def remove_student_attendance(request: Request, session_id: UUID, student_id: UUID, user: User = Depends(get_current_user), service: AttendanceService = Depends(get_attendance_service), session_service: SessionService = Depends(get_session_service), course_service: CourseService = Depends(get_course_service)):
    await require_session(user, session_id, session_service, course_service)
    await service.remove_attendance(session_id, student_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Remove an attendance record")
@limiter.limit("30/minute")
async def remove_attendance_record(request: Request, record_id: UUID, user: User = Depends(get_current_user), service: AttendanceService = Depends(get_attendance_service), session_service: SessionService = Depends(get_session_service), course_service: CourseService = Depends(get_course_service)):
    record = await service.get_attendance_record(record_id)
    await require_session(user, record.session_id, session_service, course_service)
    await service.remove_attendance_record(record_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/session/{session_id}", response_model=List[AttendanceRecordResponse], summary="List the attendance records of a session")
@limiter.limit("60/minute")
async def get_session_attendance(request: Request, session_id: UUID, user: User = Depends(get_current_user), service: AttendanceService = Depends(get_attendance_service), session_service: SessionService = Depends(get_session_service), course_service: CourseService = Depends(get_course_service)):
    await require_session(user, session_id, session_service, course_service)
    return await service.get_attendance_by_session(session_id)


@router.get("/session/{session_id}/summary", response_model=SessionAttendanceSummary, summary="Attendance counts and rate for a session")
@limiter.limit("60/minute")
async def get_session_summary(request: Request, session_id: UUID, user: User = Depends(get_current_user), service: AttendanceService = Depends(get_attendance_service), session_service: SessionService = Depends(get_session_service), course_service: CourseService = Depends(get_course_service)):
    await require_session(user, session_id, session_service, course_service)
    return await service.get_session_summary(session_id)


# === BÖLÜM 3: ÖĞRENCİ GEÇMİŞİ ===

@router.get("/student/{student_id}", response_model=List[AttendanceRecordResponse], summary="List a student's attendance history")
@limiter.limit("60/minute")
async def get_student_attendance(request: Request, student_id: UUID, user: User = Depends(get_current_user), service: AttendanceService = Depends(get_attendance_service), course_service: CourseService = Depends(get_course_service), user_service: UserService = Depends(get_user_service)):
    """
    Öğrencinin kendisi ve adminler tüm geçmişi görür.
    Eğitmenler sadece kendi derslerine ait kayıtları görür.
    """
    student = await user_service.get_user(student_id)
    if is_allowed(user, Action.VIEW_STUDENT_ATTENDANCE, student):
        return await service.get_attendance_by_student(student_id)
    if user.role != Role.INSTRUCTOR:
        authorize(user, Action.VIEW_STUDENT_ATTENDANCE, student)

    records = []
    for course in await course_service.list_courses(instructor_id=user.id):
        records.extend(await service.get_attendance_by_course_and_student(course.id, student_id))
    return records


@router.get("/course/{course_id}/student/{student_id}", response_model=List[AttendanceRecordResponse], summary="List a student's attendance in one course")
@limiter.limit("60/minute")
async def get_course_student_attendance(request: Request, course_id: UUID, student_id: UUID, user: User = Depends(get_current_user), service: AttendanceService = Depends(get_attendance_service), course_service: CourseService = Depends(get_course_service)):
    if user.id != student_id:
        await require_course(user, course_id, course_service)
    return await service.get_attendance_by_course_and_student(course_id, student_id)
