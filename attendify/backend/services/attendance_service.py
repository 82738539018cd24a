import logging
from datetime import datetime, timezone
from typing import Dict, List
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from ..db.errors import DuplicateKeyError, ATTENDANCE_KEY
from ..db.storage import AttendanceStore
from ..models.db_models import AttendanceRecord, AttendanceStatus, Role
from .errors import (
    ServiceError, InternalServiceError, InvalidInputError, SessionNotActive, NotEnrolled, AlreadyCheckedIn,
    AttendanceNotFound, UserNotFound, CourseNotFound
)
from .session_service import SessionService, is_checkable

logger = logging.getLogger(__name__)


class SessionAttendanceSummary(BaseModel):
    """Aggregate view of one session's attendance."""
    session_id: UUID
    course_id: UUID
    enrolled_count: int
    recorded_count: int
    status_counts: Dict[AttendanceStatus, int]
    attendance_rate: float = Field(description="Share of enrolled students marked present or late, 0.0-1.0.")


class AttendanceService:
    """
    The attendance ledger: validates and records at most one attendance event per
    (session, student) pair.

    State per pair is NotCheckedIn -> CheckedIn. Only staff can reset a pair, by
    removing its record.
    """
    def __init__(self, store: AttendanceStore, session_service: SessionService):
        self.store = store
        self.session_service = session_service

    async def check_in(self, qr_code: str, student_id: UUID) -> AttendanceRecord:
        """
        Records a QR check-in for `student_id`.

        Order of checks: token -> window -> enrollment -> existing record -> insert.
        The insert itself re-checks enrollment and is guarded by the storage unique
        key, so a concurrent duplicate still ends up as AlreadyCheckedIn.
        """
        now = datetime.now(timezone.utc)
        session = await self.session_service.resolve_by_qr_code(qr_code)

        if not is_checkable(session, now):
            logger.warning(f"Student '{student_id}' tried to check in to closed session {session.id}.")
            raise SessionNotActive()

        try:
            if not await self.store.is_student_enrolled(session.course_id, student_id):
                logger.warning(f"Student '{student_id}' is not enrolled in course {session.course_id}.")
                raise NotEnrolled()

            if await self.store.get_attendance_record_for_student(session.id, student_id):
                raise AlreadyCheckedIn()

            new_record = AttendanceRecord(
                id=uuid4(),
                session_id=session.id,
                student_id=student_id,
                checked_in_at=now,
                status=AttendanceStatus.PRESENT,
            )
            created = await self.store.record_check_in(new_record, session.course_id)
        except DuplicateKeyError as e:
            if e.constraint != ATTENDANCE_KEY:
                logger.error(f"Unexpected constraint '{e.constraint}' during check-in.")
                raise InternalServiceError("An unexpected error occurred during check-in.") from e
            logger.info(f"Concurrent duplicate check-in for student '{student_id}' in session {session.id}.")
            raise AlreadyCheckedIn() from e
        except ServiceError:
            raise
        except Exception as e:
            logger.error(f"Error during check-in to session {session.id}.", exc_info=True)
            raise InternalServiceError("An unexpected error occurred during check-in.") from e

        if created is None:
            # Enrollment was removed between the check and the insert.
            raise NotEnrolled()
        logger.info(f"Student '{student_id}' checked in to session {session.id}.")
        return created

    async def manual_mark(self, session_id: UUID, student_id: UUID,
                          status: AttendanceStatus = AttendanceStatus.PRESENT) -> AttendanceRecord:
        """
        Instructor override: records attendance without the QR, window or enrollment
        gates. The target must be a student. An existing record is never overwritten;
        remove it first.
        """
        session = await self.session_service.get_session(session_id)
        try:
            student = await self.store.get_user(student_id)
            if not student:
                raise UserNotFound("Student not found.")
            if student.role != Role.STUDENT:
                raise InvalidInputError("Only students can have attendance records.")
            new_record = AttendanceRecord(
                id=uuid4(),
                session_id=session.id,
                student_id=student_id,
                checked_in_at=datetime.now(timezone.utc),
                status=status,
            )
            created = await self.store.add_attendance_record(new_record)
        except DuplicateKeyError as e:
            raise AlreadyCheckedIn("The student already has an attendance record for this session.") from e
        except ServiceError:
            raise
        except Exception as e:
            logger.error(f"Error marking student '{student_id}' in session {session_id}.", exc_info=True)
            raise InternalServiceError("A server error occurred while marking attendance.") from e

        logger.info(f"Student '{student_id}' manually marked '{status.value}' in session {session_id}.")
        return created

    async def get_attendance_record(self, record_id: UUID) -> AttendanceRecord:
        record = await self.store.get_attendance_record(record_id)
        if not record:
            raise AttendanceNotFound()
        return record

    async def remove_attendance(self, session_id: UUID, student_id: UUID) -> None:
        """Deletes the pair's record, returning it to NotCheckedIn."""
        try:
            deleted = await self.store.delete_attendance_for_student(session_id, student_id)
        except Exception as e:
            logger.error(f"Error removing attendance of '{student_id}' in session {session_id}.", exc_info=True)
            raise InternalServiceError("A server error occurred while removing the attendance record.") from e
        if not deleted:
            raise AttendanceNotFound()
        logger.info(f"Attendance of student '{student_id}' removed from session {session_id}.")

    async def remove_attendance_record(self, record_id: UUID) -> None:
        try:
            deleted = await self.store.delete_attendance_record(record_id)
        except Exception as e:
            logger.error(f"Error removing attendance record {record_id}.", exc_info=True)
            raise InternalServiceError("A server error occurred while removing the attendance record.") from e
        if not deleted:
            raise AttendanceNotFound()
        logger.info(f"Attendance record {record_id} removed.")

    # --- Queries ---

    async def get_attendance_by_session(self, session_id: UUID) -> List[AttendanceRecord]:
        await self.session_service.get_session(session_id)
        return await self.store.get_attendance_by_session(session_id)

    async def get_attendance_by_student(self, student_id: UUID) -> List[AttendanceRecord]:
        return await self.store.get_attendance_by_student(student_id)

    async def get_attendance_by_course_and_student(self, course_id: UUID, student_id: UUID) -> List[AttendanceRecord]:
        if not await self.store.get_course(course_id):
            raise CourseNotFound()
        return await self.store.get_attendance_by_course_and_student(course_id, student_id)

    async def get_session_summary(self, session_id: UUID) -> SessionAttendanceSummary:
        session = await self.session_service.get_session(session_id)
        records = await self.store.get_attendance_by_session(session_id)
        enrollments = await self.store.get_enrollments_by_course(session.course_id)

        status_counts = {status: 0 for status in AttendanceStatus}
        for record in records:
            status_counts[record.status] += 1

        # Manual marks for students outside the roster are listed but not rated.
        enrolled_ids = {e.student_id for e in enrollments}
        attended = sum(
            1 for record in records
            if record.student_id in enrolled_ids and record.status in (AttendanceStatus.PRESENT, AttendanceStatus.LATE)
        )
        rate = attended / len(enrolled_ids) if enrolled_ids else 0.0
        return SessionAttendanceSummary(
            session_id=session.id,
            course_id=session.course_id,
            enrolled_count=len(enrollments),
            recorded_count=len(records),
            status_counts=status_counts,
            attendance_rate=round(rate, 4),
        )
