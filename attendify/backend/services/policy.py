import logging
from enum import Enum
from typing import Optional, Union

from ..models.db_models import User, Course, Role
from .errors import ForbiddenError

logger = logging.getLogger(__name__)


class Action(str, Enum):
    CREATE_COURSE = "create_course"
    VIEW_COURSE = "view_course"
    # Update/delete the course and everything it owns: enrollments, sessions,
    # QR display, manual marks, record removal, session rosters and summaries.
    MANAGE_COURSE = "manage_course"
    CHECK_IN = "check_in"
    VIEW_STUDENT_ATTENDANCE = "view_student_attendance"
    VIEW_DIRECTORY = "view_directory"


def _owns(actor: User, course: Optional[Course]) -> bool:
    return course is not None and actor.role == Role.INSTRUCTOR and course.instructor_id == actor.id


def is_allowed(actor: User, action: Action, resource: Union[Course, User, None] = None) -> bool:
    """
    Decides whether `actor` may perform `action` on `resource`.

    `resource` is the Course for course-scoped actions and the target student (User)
    for VIEW_STUDENT_ATTENDANCE. Admins may do everything except check in.
    """
    if action == Action.CHECK_IN:
        return actor.role == Role.STUDENT
    if actor.role == Role.ADMIN:
        return True

    if action == Action.VIEW_COURSE:
        return True
    if action == Action.CREATE_COURSE:
        return actor.role == Role.INSTRUCTOR
    if action == Action.MANAGE_COURSE:
        return isinstance(resource, Course) and _owns(actor, resource)
    if action == Action.VIEW_STUDENT_ATTENDANCE:
        if isinstance(resource, User):
            return resource.id == actor.id
        return False
    if action == Action.VIEW_DIRECTORY:
        return actor.role == Role.INSTRUCTOR
    return False


def authorize(actor: User, action: Action, resource: Union[Course, User, None] = None) -> None:
    """Raises ForbiddenError unless `is_allowed` grants the action."""
    if not is_allowed(actor, action, resource):
        logger.warning(f"User '{actor.id}' ({actor.role.value}) denied '{action.value}'.")
        raise ForbiddenError("You are not authorized to perform this operation.")
