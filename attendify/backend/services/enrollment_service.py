import logging
from typing import List
from uuid import UUID, uuid4

from ..db.errors import DuplicateKeyError
from ..db.storage import AttendanceStore
from ..models.db_models import Enrollment, Role
from .errors import (
    ServiceError, InternalServiceError, InvalidInputError, CourseNotFound, UserNotFound,
    EnrollmentNotFound, DuplicateEnrollment
)

logger = logging.getLogger(__name__)


class EnrollmentService:
    """Student <-> course index consulted by every check-in."""

    def __init__(self, store: AttendanceStore):
        self.store = store

    async def enroll(self, course_id: UUID, student_id: UUID) -> Enrollment:
        try:
            if not await self.store.get_course(course_id):
                raise CourseNotFound()
            student = await self.store.get_user(student_id)
            if not student:
                raise UserNotFound("Student not found.")
            if student.role != Role.STUDENT:
                raise InvalidInputError("Only students can be enrolled in a course.")
            created = await self.store.add_enrollment(
                Enrollment(id=uuid4(), course_id=course_id, student_id=student_id)
            )
        except DuplicateKeyError as e:
            raise DuplicateEnrollment() from e
        except ServiceError:
            raise
        except Exception as e:
            logger.error(f"Error enrolling student '{student_id}' in course {course_id}.", exc_info=True)
            raise InternalServiceError("A server error occurred while creating the enrollment.") from e
        logger.info(f"Student '{student_id}' enrolled in course {course_id}.")
        return created

    async def get_enrollment(self, enrollment_id: UUID) -> Enrollment:
        enrollment = await self.store.get_enrollment(enrollment_id)
        if not enrollment:
            raise EnrollmentNotFound()
        return enrollment

    async def list_by_course(self, course_id: UUID) -> List[Enrollment]:
        return await self.store.get_enrollments_by_course(course_id)

    async def list_by_student(self, student_id: UUID) -> List[Enrollment]:
        return await self.store.get_enrollments_by_student(student_id)

    async def is_enrolled(self, course_id: UUID, student_id: UUID) -> bool:
        return await self.store.is_student_enrolled(course_id, student_id)

    async def unenroll(self, enrollment_id: UUID) -> None:
        if not await self.store.delete_enrollment(enrollment_id):
            raise EnrollmentNotFound()
        logger.info(f"Enrollment {enrollment_id} removed.")
