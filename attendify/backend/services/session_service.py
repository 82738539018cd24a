import logging
import secrets
from datetime import date, datetime
from typing import List, Optional
from uuid import UUID, uuid4

from ..config.config import settings
from ..db.errors import DuplicateKeyError, SESSION_QR_KEY
from ..db.redis_client import RedisClient
from ..db.storage import AttendanceStore
from ..models.db_models import Session
from ..tools.qr_token import generate_qr_token
from .errors import (
    ServiceError, InternalServiceError, InvalidInputError, CourseNotFound,
    SessionNotFound, InvalidQRCode
)

logger = logging.getLogger(__name__)

QR_ISSUE_ATTEMPTS = 3


def is_checkable(session: Session, now: datetime) -> bool:
    """A session accepts check-ins only while it is active AND inside [start_time, end_time]."""
    return session.is_active and session.start_time <= now <= session.end_time


def _validate_window(start_time: datetime, end_time: datetime):
    if start_time.tzinfo is None or end_time.tzinfo is None:
        raise InvalidInputError("start_time and end_time must include a timezone offset.")
    if start_time >= end_time:
        raise InvalidInputError("start_time must be earlier than end_time.")


class SessionService:
    """
    Creates class sessions, issues their QR tokens and resolves tokens back to sessions.
    The optional Redis client is a lookup index only; the store stays the source of truth.
    """
    def __init__(self, store: AttendanceStore, qr_cache: Optional[RedisClient] = None):
        self.store = store
        self.qr_cache = qr_cache

    async def create_session(self, course_id: UUID, title: str, scheduled_date: date,
                             start_time: datetime, end_time: datetime,
                             is_active: Optional[bool] = None) -> Session:
        _validate_window(start_time, end_time)
        try:
            course = await self.store.get_course(course_id)
        except Exception as e:
            logger.error(f"Error loading course {course_id} for a new session.", exc_info=True)
            raise InternalServiceError("A server error occurred while creating the session.") from e
        if not course:
            raise CourseNotFound()

        active = settings.SESSION_ACTIVE_BY_DEFAULT if is_active is None else is_active
        for attempt in range(1, QR_ISSUE_ATTEMPTS + 1):
            session_id = uuid4()
            new_session = Session(
                id=session_id,
                course_id=course_id,
                title=title,
                scheduled_date=scheduled_date,
                start_time=start_time,
                end_time=end_time,
                qr_code=generate_qr_token(session_id),
                is_active=active,
            )
            try:
                created = await self.store.add_session(new_session)
                break
            except DuplicateKeyError as e:
                if e.constraint != SESSION_QR_KEY or attempt == QR_ISSUE_ATTEMPTS:
                    logger.error(f"Could not store session for course {course_id}: {e.constraint}")
                    raise InternalServiceError("A server error occurred while creating the session.") from e
                logger.warning(f"QR token collision on attempt {attempt}; issuing a new token.")
            except Exception as e:
                logger.error(f"Error adding session for course {course_id}.", exc_info=True)
                raise InternalServiceError("A server error occurred while creating the session.") from e

        await self._index_qr(created)
        logger.info(f"Session {created.id} created for course {course_id} (active={created.is_active}).")
        return created

    async def get_session(self, session_id: UUID) -> Session:
        try:
            session = await self.store.get_session(session_id)
        except Exception as e:
            logger.error(f"Error loading session {session_id}.", exc_info=True)
            raise InternalServiceError("A server error occurred while loading the session.") from e
        if not session:
            raise SessionNotFound()
        return session

    async def resolve_by_qr_code(self, qr_code: str) -> Session:
        """Token -> Session. Raises InvalidQRCode for unknown tokens."""
        if not qr_code:
            raise InvalidQRCode()
        try:
            session = await self._resolve_from_cache(qr_code)
            if session is None:
                session = await self.store.get_session_by_qr_code(qr_code)
                if session:
                    await self._index_qr(session)
        except ServiceError:
            raise
        except Exception as e:
            logger.error("Error resolving a QR token.", exc_info=True)
            raise InternalServiceError("A server error occurred while resolving the QR code.") from e
        if not session:
            raise InvalidQRCode()
        return session

    async def set_active(self, session_id: UUID, active: bool) -> Session:
        try:
            session = await self.store.set_session_active(session_id, active)
        except Exception as e:
            logger.error(f"Error toggling session {session_id}.", exc_info=True)
            raise InternalServiceError("A server error occurred while updating the session.") from e
        if not session:
            raise SessionNotFound()
        logger.info(f"Session {session_id} is_active set to {active}.")
        return session

    async def update_schedule(self, session_id: UUID, title: str, scheduled_date: date,
                              start_time: datetime, end_time: datetime) -> Session:
        _validate_window(start_time, end_time)
        try:
            session = await self.store.update_session_schedule(session_id, title, scheduled_date, start_time, end_time)
        except Exception as e:
            logger.error(f"Error rescheduling session {session_id}.", exc_info=True)
            raise InternalServiceError("A server error occurred while updating the session.") from e
        if not session:
            raise SessionNotFound()
        return session

    async def list_sessions(self, course_id: UUID, active_only: bool = False) -> List[Session]:
        if not await self.store.get_course(course_id):
            raise CourseNotFound()
        if active_only:
            return await self.store.get_active_sessions_by_course(course_id)
        return await self.store.get_sessions_by_course(course_id)

    async def delete_session(self, session_id: UUID) -> None:
        session = await self.get_session(session_id)
        try:
            await self.store.delete_session(session_id)
        except Exception as e:
            logger.error(f"Error deleting session {session_id}.", exc_info=True)
            raise InternalServiceError("A server error occurred while deleting the session.") from e
        if self.qr_cache:
            try:
                await self.qr_cache.delete_session_qr(session.qr_code)
            except Exception:
                logger.warning(f"Could not drop QR index entry for session {session_id}.", exc_info=True)
        logger.info(f"Session {session_id} deleted.")

    # --- QR index helpers ---

    async def _resolve_from_cache(self, qr_code: str) -> Optional[Session]:
        if not self.qr_cache:
            return None
        try:
            session_id = await self.qr_cache.get_session_id_by_qr(qr_code)
        except Exception:
            logger.warning("QR index lookup failed; falling back to the store.", exc_info=True)
            return None
        if not session_id:
            return None
        session = await self.store.get_session(session_id)
        if session and secrets.compare_digest(session.qr_code, qr_code):
            return session
        # Stale entry, e.g. the session was removed with its course.
        try:
            await self.qr_cache.delete_session_qr(qr_code)
        except Exception:
            logger.warning("Could not drop a stale QR index entry.", exc_info=True)
        return None

    async def _index_qr(self, session: Session):
        if not self.qr_cache:
            return
        try:
            await self.qr_cache.save_session_qr(session)
        except Exception:
            logger.warning(f"Could not index QR token for session {session.id}.", exc_info=True)
