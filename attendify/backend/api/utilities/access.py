# attendify/backend/api/utilities/access.py
from uuid import UUID

from ...models.db_models import User, Course, Session
from ...services.course_service import CourseService
from ...services.session_service import SessionService
from ...services.policy import Action, authorize

# --- Yetki kontrolü için ortak yardımcılar ---
# Kaynak önce yüklenir (yoksa 404), sonra politika sorulur (yetki yoksa 403).


async def require_course(actor: User, course_id: UUID, course_service: CourseService,
                         action: Action = Action.MANAGE_COURSE) -> Course:
    course = await course_service.get_course(course_id)
    authorize(actor, action, course)
    return course


async def require_session(actor: User, session_id: UUID, session_service: SessionService,
                          course_service: CourseService, action: Action = Action.MANAGE_COURSE) -> Session:
    session = await session_service.get_session(session_id)
    await require_course(actor, session.course_id, course_service, action)
    return session
