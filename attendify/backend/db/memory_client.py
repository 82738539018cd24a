import asyncio
import logging
import weakref
from datetime import date, datetime
from typing import Dict, Hashable, List, Optional, Tuple
from uuid import UUID

from ..models.db_models import User, Course, Enrollment, Session, AttendanceRecord, Role
from .errors import (
    DuplicateKeyError, COURSE_CODE_KEY, ENROLLMENT_KEY, SESSION_QR_KEY, ATTENDANCE_KEY
)

logger = logging.getLogger(__name__)


class KeyedLocks:
    """
    One asyncio.Lock per key, created on demand. Locks are held weakly so a key's
    lock disappears once nobody is waiting on it.
    """
    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[Hashable, asyncio.Lock]" = weakref.WeakValueDictionary()

    def get(self, key: Hashable) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock


class InMemoryClient:
    """
    Process-local implementation of the storage contract, used for tests and
    `STORAGE_BACKEND=memory`. Unique keys are kept in secondary indexes and
    checked on every write, mirroring the Postgres constraints.
    """

    def __init__(self):
        self._users: Dict[UUID, User] = {}
        self._courses: Dict[UUID, Course] = {}
        self._course_codes: Dict[str, UUID] = {}
        self._enrollments: Dict[UUID, Enrollment] = {}
        self._enrollment_pairs: Dict[Tuple[UUID, UUID], UUID] = {}
        self._sessions: Dict[UUID, Session] = {}
        self._qr_index: Dict[str, UUID] = {}
        self._records: Dict[UUID, AttendanceRecord] = {}
        self._record_pairs: Dict[Tuple[UUID, UUID], UUID] = {}
        self._pair_locks = KeyedLocks()

    # ===== Identity Directory =====

    async def add_users(self, users: List[User]):
        for user in users:
            self._users.setdefault(user.id, user.model_copy())

    async def get_user(self, user_id: UUID) -> Optional[User]:
        user = self._users.get(user_id)
        return user.model_copy() if user else None

    async def get_users_by_role(self, role: Role) -> List[User]:
        users = [u.model_copy() for u in self._users.values() if u.role == role]
        return sorted(users, key=lambda u: u.full_name)

    # ===== Course Registry =====

    async def add_course(self, course: Course) -> Course:
        if course.code in self._course_codes:
            raise DuplicateKeyError(COURSE_CODE_KEY)
        self._courses[course.id] = course.model_copy()
        self._course_codes[course.code] = course.id
        return course.model_copy()

    async def get_course(self, course_id: UUID) -> Optional[Course]:
        course = self._courses.get(course_id)
        return course.model_copy() if course else None

    async def get_courses(self) -> List[Course]:
        return sorted((c.model_copy() for c in self._courses.values()), key=lambda c: c.code)

    async def get_courses_by_instructor(self, instructor_id: UUID) -> List[Course]:
        courses = await self.get_courses()
        return [c for c in courses if c.instructor_id == instructor_id]

    async def update_course(self, course: Course) -> Optional[Course]:
        existing = self._courses.get(course.id)
        if not existing:
            return None
        owner_of_code = self._course_codes.get(course.code)
        if owner_of_code is not None and owner_of_code != course.id:
            raise DuplicateKeyError(COURSE_CODE_KEY)
        del self._course_codes[existing.code]
        self._course_codes[course.code] = course.id
        self._courses[course.id] = course.model_copy()
        return course.model_copy()

    async def delete_course(self, course_id: UUID) -> bool:
        course = self._courses.pop(course_id, None)
        if not course:
            return False
        del self._course_codes[course.code]
        for enrollment in [e for e in self._enrollments.values() if e.course_id == course_id]:
            await self.delete_enrollment(enrollment.id)
        for session in [s for s in self._sessions.values() if s.course_id == course_id]:
            await self.delete_session(session.id)
        return True

    # ===== Enrollment Index =====

    async def add_enrollment(self, enrollment: Enrollment) -> Enrollment:
        pair = (enrollment.course_id, enrollment.student_id)
        if pair in self._enrollment_pairs:
            raise DuplicateKeyError(ENROLLMENT_KEY)
        self._enrollments[enrollment.id] = enrollment.model_copy()
        self._enrollment_pairs[pair] = enrollment.id
        return enrollment.model_copy()

    async def get_enrollment(self, enrollment_id: UUID) -> Optional[Enrollment]:
        enrollment = self._enrollments.get(enrollment_id)
        return enrollment.model_copy() if enrollment else None

    async def get_enrollments_by_course(self, course_id: UUID) -> List[Enrollment]:
        return [e.model_copy() for e in self._enrollments.values() if e.course_id == course_id]

    async def get_enrollments_by_student(self, student_id: UUID) -> List[Enrollment]:
        return [e.model_copy() for e in self._enrollments.values() if e.student_id == student_id]

    async def delete_enrollment(self, enrollment_id: UUID) -> bool:
        enrollment = self._enrollments.pop(enrollment_id, None)
        if not enrollment:
            return False
        del self._enrollment_pairs[(enrollment.course_id, enrollment.student_id)]
        return True

    async def is_student_enrolled(self, course_id: UUID, student_id: UUID) -> bool:
        return (course_id, student_id) in self._enrollment_pairs

    # ===== Sessions =====

    async def add_session(self, session: Session) -> Session:
        if session.qr_code in self._qr_index:
            raise DuplicateKeyError(SESSION_QR_KEY)
        self._sessions[session.id] = session.model_copy()
        self._qr_index[session.qr_code] = session.id
        return session.model_copy()

    async def get_session(self, session_id: UUID) -> Optional[Session]:
        session = self._sessions.get(session_id)
        return session.model_copy() if session else None

    async def get_session_by_qr_code(self, qr_code: str) -> Optional[Session]:
        session_id = self._qr_index.get(qr_code)
        return await self.get_session(session_id) if session_id else None

    async def get_sessions_by_course(self, course_id: UUID) -> List[Session]:
        sessions = [s.model_copy() for s in self._sessions.values() if s.course_id == course_id]
        return sorted(sessions, key=lambda s: s.start_time)

    async def get_active_sessions_by_course(self, course_id: UUID) -> List[Session]:
        return [s for s in await self.get_sessions_by_course(course_id) if s.is_active]

    async def update_session_schedule(self, session_id: UUID, title: str, scheduled_date: date,
                                      start_time: datetime, end_time: datetime) -> Optional[Session]:
        session = self._sessions.get(session_id)
        if not session:
            return None
        updated = session.model_copy(update={
            "title": title, "scheduled_date": scheduled_date,
            "start_time": start_time, "end_time": end_time,
        })
        self._sessions[session_id] = updated
        return updated.model_copy()

    async def set_session_active(self, session_id: UUID, active: bool) -> Optional[Session]:
        session = self._sessions.get(session_id)
        if not session:
            return None
        session.is_active = active
        return session.model_copy()

    async def deactivate_sessions_ended_before(self, now: datetime) -> int:
        count = 0
        for session in self._sessions.values():
            if session.is_active and session.end_time < now:
                session.is_active = False
                count += 1
        return count

    async def delete_session(self, session_id: UUID) -> bool:
        session = self._sessions.pop(session_id, None)
        if not session:
            return False
        del self._qr_index[session.qr_code]
        for record in [r for r in self._records.values() if r.session_id == session_id]:
            await self.delete_attendance_record(record.id)
        return True

    # ===== Attendance Ledger =====

    async def record_check_in(self, record: AttendanceRecord, course_id: UUID) -> Optional[AttendanceRecord]:
        async with self._pair_locks.get((record.session_id, record.student_id)):
            if not await self.is_student_enrolled(course_id, record.student_id):
                return None
            return self._insert_record(record)

    async def add_attendance_record(self, record: AttendanceRecord) -> AttendanceRecord:
        async with self._pair_locks.get((record.session_id, record.student_id)):
            return self._insert_record(record)

    def _insert_record(self, record: AttendanceRecord) -> AttendanceRecord:
        pair = (record.session_id, record.student_id)
        if pair in self._record_pairs:
            raise DuplicateKeyError(ATTENDANCE_KEY)
        self._records[record.id] = record.model_copy()
        self._record_pairs[pair] = record.id
        return record.model_copy()

    async def get_attendance_record(self, record_id: UUID) -> Optional[AttendanceRecord]:
        record = self._records.get(record_id)
        return record.model_copy() if record else None

    async def get_attendance_record_for_student(self, session_id: UUID, student_id: UUID) -> Optional[AttendanceRecord]:
        record_id = self._record_pairs.get((session_id, student_id))
        return await self.get_attendance_record(record_id) if record_id else None

    async def get_attendance_by_session(self, session_id: UUID) -> List[AttendanceRecord]:
        records = [r.model_copy() for r in self._records.values() if r.session_id == session_id]
        return sorted(records, key=lambda r: r.checked_in_at)

    async def get_attendance_by_student(self, student_id: UUID) -> List[AttendanceRecord]:
        records = [r.model_copy() for r in self._records.values() if r.student_id == student_id]
        return sorted(records, key=lambda r: r.checked_in_at)

    async def get_attendance_by_course_and_student(self, course_id: UUID, student_id: UUID) -> List[AttendanceRecord]:
        session_ids = {s.id for s in self._sessions.values() if s.course_id == course_id}
        return [r for r in await self.get_attendance_by_student(student_id) if r.session_id in session_ids]

    async def delete_attendance_record(self, record_id: UUID) -> bool:
        record = self._records.get(record_id)
        if not record:
            return False
        async with self._pair_locks.get((record.session_id, record.student_id)):
            if self._records.pop(record_id, None) is None:
                return False
            del self._record_pairs[(record.session_id, record.student_id)]
            return True

    async def delete_attendance_for_student(self, session_id: UUID, student_id: UUID) -> bool:
        record_id = self._record_pairs.get((session_id, student_id))
        if record_id is None:
            return False
        return await self.delete_attendance_record(record_id)
