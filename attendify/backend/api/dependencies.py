#attendify/backend/api/dependencies.py
from typing import Optional
from fastapi import Request, Depends, HTTPException, status
import redis.asyncio as redis

from ..db.redis_client import RedisClient
from ..db.storage import AttendanceStore
from ..services.attendance_service import AttendanceService
from ..services.course_service import CourseService
from ..services.enrollment_service import EnrollmentService
from ..services.session_service import SessionService
from ..services.user_service import UserService


def get_store(request: Request) -> AttendanceStore:
    """
    Uygulamanın state'inden depolama katmanını (Postgres ya da bellek içi) alır.
    Başlangıçta bağlantı kurulamadıysa 503 döner.
    """
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Storage is not available.")
    return store


def get_redis_pool(request: Request) -> Optional[redis.ConnectionPool]:
    """Uygulamanın state'inden Redis bağlantı havuzunu alır (yapılandırılmadıysa None)."""
    return getattr(request.app.state, "redis_pool", None)


def get_qr_cache(redis_pool: Optional[redis.ConnectionPool] = Depends(get_redis_pool)) -> Optional[RedisClient]:
    return RedisClient(pool=redis_pool) if redis_pool else None


def get_session_service(
    store: AttendanceStore = Depends(get_store),
    qr_cache: Optional[RedisClient] = Depends(get_qr_cache)
) -> SessionService:
    """
    Her istek için yeni bir SessionService nesnesi oluşturur.

    Paylaşımlı depolama ve Redis havuzu uygulama başlangıcında kurulur; burada
    sadece bunları saran hafif servis nesneleri yaratılır.
    """
    return SessionService(store=store, qr_cache=qr_cache)


def get_attendance_service(
    store: AttendanceStore = Depends(get_store),
    session_service: SessionService = Depends(get_session_service)
) -> AttendanceService:
    return AttendanceService(store=store, session_service=session_service)


def get_course_service(store: AttendanceStore = Depends(get_store)) -> CourseService:
    return CourseService(store=store)


def get_enrollment_service(store: AttendanceStore = Depends(get_store)) -> EnrollmentService:
    return EnrollmentService(store=store)


def get_user_service(store: AttendanceStore = Depends(get_store)) -> UserService:
    return UserService(store=store)
