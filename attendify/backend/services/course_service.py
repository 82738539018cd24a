import logging
from typing import List, Optional
from uuid import UUID, uuid4

from ..db.errors import DuplicateKeyError
from ..db.storage import AttendanceStore
from ..models.db_models import Course, Role
from .errors import (
    ServiceError, InternalServiceError, InvalidInputError, CourseNotFound, DuplicateCourseCode
)

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {"code", "name", "description", "instructor_id", "semester", "year"}
# Only these may be cleared with an explicit None.
NULLABLE_FIELDS = {"description"}


class CourseService:
    """
    Course registry. Every course has exactly one owning instructor; ownership is what
    the policy checks consult for course-scoped actions.
    """
    def __init__(self, store: AttendanceStore):
        self.store = store

    async def _require_instructor(self, instructor_id: UUID):
        instructor = await self.store.get_user(instructor_id)
        if not instructor or instructor.role != Role.INSTRUCTOR:
            raise InvalidInputError("Courses must be owned by an existing instructor.")

    async def create_course(self, code: str, name: str, instructor_id: UUID, semester: str,
                            year: int, description: Optional[str] = None) -> Course:
        try:
            await self._require_instructor(instructor_id)
            course = Course(
                id=uuid4(), code=code, name=name, description=description,
                instructor_id=instructor_id, semester=semester, year=year
            )
            created = await self.store.add_course(course)
        except DuplicateKeyError as e:
            raise DuplicateCourseCode() from e
        except ServiceError:
            raise
        except Exception as e:
            logger.error(f"Error creating course '{code}'.", exc_info=True)
            raise InternalServiceError("A server error occurred while creating the course.") from e
        logger.info(f"Course {created.id} ('{code}') created for instructor '{instructor_id}'.")
        return created

    async def get_course(self, course_id: UUID) -> Course:
        course = await self.store.get_course(course_id)
        if not course:
            raise CourseNotFound()
        return course

    async def list_courses(self, instructor_id: Optional[UUID] = None) -> List[Course]:
        if instructor_id:
            return await self.store.get_courses_by_instructor(instructor_id)
        return await self.store.get_courses()

    async def update_course(self, course_id: UUID, **changes) -> Course:
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise InvalidInputError(f"Unknown course fields: {', '.join(sorted(unknown))}")
        course = await self.get_course(course_id)
        changes = {k: v for k, v in changes.items() if v is not None or k in NULLABLE_FIELDS}
        try:
            if "instructor_id" in changes:
                await self._require_instructor(changes["instructor_id"])
            updated = await self.store.update_course(course.model_copy(update=changes))
        except DuplicateKeyError as e:
            raise DuplicateCourseCode() from e
        except ServiceError:
            raise
        except Exception as e:
            logger.error(f"Error updating course {course_id}.", exc_info=True)
            raise InternalServiceError("A server error occurred while updating the course.") from e
        if not updated:
            raise CourseNotFound()
        return updated

    async def delete_course(self, course_id: UUID) -> None:
        """Deletes the course together with its sessions, enrollments and attendance."""
        if not await self.store.delete_course(course_id):
            raise CourseNotFound()
        logger.info(f"Course {course_id} deleted with its sessions and enrollments.")
