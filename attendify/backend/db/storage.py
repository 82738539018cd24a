from datetime import datetime
from typing import List, Optional, Protocol
from uuid import UUID

from ..models.db_models import User, Course, Enrollment, Session, AttendanceRecord, Role


class AttendanceStore(Protocol):
    """
    The storage contract shared by the Postgres client and the in-memory store.

    Uniqueness violations surface as `DuplicateKeyError`; everything else a backend
    raises is treated as an unexpected storage failure by the service layer.
    """

    # ===== Identity Directory =====
    async def add_users(self, users: List[User]) -> None: ...
    async def get_user(self, user_id: UUID) -> Optional[User]: ...
    async def get_users_by_role(self, role: Role) -> List[User]: ...

    # ===== Course Registry =====
    async def add_course(self, course: Course) -> Course: ...
    async def get_course(self, course_id: UUID) -> Optional[Course]: ...
    async def get_courses(self) -> List[Course]: ...
    async def get_courses_by_instructor(self, instructor_id: UUID) -> List[Course]: ...
    async def update_course(self, course: Course) -> Optional[Course]: ...
    async def delete_course(self, course_id: UUID) -> bool: ...

    # ===== Enrollment Index =====
    async def add_enrollment(self, enrollment: Enrollment) -> Enrollment: ...
    async def get_enrollment(self, enrollment_id: UUID) -> Optional[Enrollment]: ...
    async def get_enrollments_by_course(self, course_id: UUID) -> List[Enrollment]: ...
    async def get_enrollments_by_student(self, student_id: UUID) -> List[Enrollment]: ...
    async def delete_enrollment(self, enrollment_id: UUID) -> bool: ...
    async def is_student_enrolled(self, course_id: UUID, student_id: UUID) -> bool: ...

    # ===== Sessions =====
    async def add_session(self, session: Session) -> Session: ...
    async def get_session(self, session_id: UUID) -> Optional[Session]: ...
    async def get_session_by_qr_code(self, qr_code: str) -> Optional[Session]: ...
    async def get_sessions_by_course(self, course_id: UUID) -> List[Session]: ...
    async def get_active_sessions_by_course(self, course_id: UUID) -> List[Session]: ...
    async def update_session_schedule(self, session_id: UUID, title: str, scheduled_date, start_time: datetime, end_time: datetime) -> Optional[Session]: ...
    async def set_session_active(self, session_id: UUID, active: bool) -> Optional[Session]: ...
    async def deactivate_sessions_ended_before(self, now: datetime) -> int: ...
    async def delete_session(self, session_id: UUID) -> bool: ...

    # ===== Attendance Ledger =====
    async def record_check_in(self, record: AttendanceRecord, course_id: UUID) -> Optional[AttendanceRecord]:
        """
        Inserts `record` only if the student is enrolled in `course_id`, as one
        atomic unit per (session_id, student_id). Returns None when the enrollment
        is missing, raises DuplicateKeyError when the pair already has a record.
        """
        ...
    async def add_attendance_record(self, record: AttendanceRecord) -> AttendanceRecord: ...
    async def get_attendance_record(self, record_id: UUID) -> Optional[AttendanceRecord]: ...
    async def get_attendance_record_for_student(self, session_id: UUID, student_id: UUID) -> Optional[AttendanceRecord]: ...
    async def get_attendance_by_session(self, session_id: UUID) -> List[AttendanceRecord]: ...
    async def get_attendance_by_student(self, student_id: UUID) -> List[AttendanceRecord]: ...
    async def get_attendance_by_course_and_student(self, course_id: UUID, student_id: UUID) -> List[AttendanceRecord]: ...
    async def delete_attendance_record(self, record_id: UUID) -> bool: ...
    async def delete_attendance_for_student(self, session_id: UUID, student_id: UUID) -> bool: ...
