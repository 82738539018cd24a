from fastapi import APIRouter, Depends, status, Response, Request
from typing import List
from uuid import UUID

from ..models.db_models import User
from ..services.course_service import CourseService
from ..services.session_service import SessionService
from ..services.policy import Action
from .schemas.session import (
    SessionCreateRequest,
    SessionUpdateRequest,
    SessionActiveRequest,
    SessionResponse,
    SessionWithQRResponse,
    SessionQRResponse
)
from .auth import get_current_user
from .dependencies import get_session_service, get_course_service
from .utilities.access import require_course, require_session
from .utilities.limiter import limiter

router = APIRouter(prefix="/sessions", tags=["Session Endpoints"])

# Hata eşlemesi (ServiceError -> HTTP) main.py'deki global handler'da yapılır.


@router.post("", response_model=SessionWithQRResponse, status_code=status.HTTP_201_CREATED, summary="Schedule a new session for a course")
@limiter.limit("20/minute")
async def create_session(request: Request, create_request: SessionCreateRequest, user: User = Depends(get_current_user), service: SessionService = Depends(get_session_service), course_service: CourseService = Depends(get_course_service)):
    await require_course(user, create_request.course_id, course_service)
    return await service.create_session(
        course_id=create_request.course_id,
        title=create_request.title,
        scheduled_date=create_request.scheduled_date,
        start_time=create_request.start_time,
        end_time=create_request.end_time,
        is_active=create_request.is_active
    )


@router.get("/course/{course_id}", response_model=List[SessionResponse], summary="List the sessions of a course")
@limiter.limit("60/minute")
async def list_sessions(request: Request, course_id: UUID, active_only: bool = False, user: User = Depends(get_current_user), service: SessionService = Depends(get_session_service), course_service: CourseService = Depends(get_course_service)):
    await require_course(user, course_id, course_service, Action.VIEW_COURSE)
    return await service.list_sessions(course_id, active_only=active_only)


@router.get("/{session_id}", response_model=SessionResponse, summary="Get a session")
@limiter.limit("60/minute")
async def get_session(request: Request, session_id: UUID, user: User = Depends(get_current_user), service: SessionService = Depends(get_session_service), course_service: CourseService = Depends(get_course_service)):
    return await require_session(user, session_id, service, course_service, Action.VIEW_COURSE)


@router.get("/{session_id}/qrcode", response_model=SessionQRResponse, summary="Get the QR token to display in class")
@limiter.limit("60/minute")
async def get_session_qrcode(request: Request, session_id: UUID, user: User = Depends(get_current_user), service: SessionService = Depends(get_session_service), course_service: CourseService = Depends(get_course_service)):
    session = await require_session(user, session_id, service, course_service)
    return SessionQRResponse(session_id=session.id, qr_code=session.qr_code)


@router.patch("/{session_id}", response_model=SessionResponse, summary="Change the title, date or window of a session")
@limiter.limit("20/minute")
async def update_session(request: Request, session_id: UUID, update_request: SessionUpdateRequest, user: User = Depends(get_current_user), service: SessionService = Depends(get_session_service), course_service: CourseService = Depends(get_course_service)):
    await require_session(user, session_id, service, course_service)
    return await service.update_schedule(
        session_id,
        title=update_request.title,
        scheduled_date=update_request.scheduled_date,
        start_time=update_request.start_time,
        end_time=update_request.end_time
    )


@router.put("/{session_id}/active", response_model=SessionResponse, summary="Open or close a session for check-in")
@limiter.limit("20/minute")
async def set_session_active(request: Request, session_id: UUID, active_request: SessionActiveRequest, user: User = Depends(get_current_user), service: SessionService = Depends(get_session_service), course_service: CourseService = Depends(get_course_service)):
    await require_session(user, session_id, service, course_service)
    return await service.set_active(session_id, active_request.is_active)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a session and its attendance")
@limiter.limit("10/minute")
async def delete_session(request: Request, session_id: UUID, user: User = Depends(get_current_user), service: SessionService = Depends(get_session_service), course_service: CourseService = Depends(get_course_service)):
    await require_session(user, session_id, service, course_service)
    await service.delete_session(session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
