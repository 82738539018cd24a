# --- Custom Service Layer Exception Classes ---

class ServiceError(Exception):
    """General exception class for the service layer."""
    code = "SERVICE_ERROR"

    def __init__(self, message: str = None):
        super().__init__(message or self.__doc__)


class NotFoundError(ServiceError):
    """The requested resource was not found."""
    code = "NOT_FOUND"


class ForbiddenError(ServiceError):
    """You are not authorized to perform this operation."""
    code = "FORBIDDEN"


class ConflictError(ServiceError):
    """The resource already exists."""
    code = "CONFLICT"


class InvalidStateError(ServiceError):
    """The resource is not in a state that allows this operation."""
    code = "INVALID_STATE"


class InvalidInputError(ServiceError):
    """The request contains missing or malformed fields."""
    code = "INVALID_INPUT"


class InternalServiceError(ServiceError):
    """An unexpected server error occurred."""
    code = "INTERNAL_ERROR"


# --- Concrete cases the clients branch on ---

class CourseNotFound(NotFoundError):
    """Course not found."""
    code = "COURSE_NOT_FOUND"


class SessionNotFound(NotFoundError):
    """Session not found."""
    code = "SESSION_NOT_FOUND"


class UserNotFound(NotFoundError):
    """User not found."""
    code = "USER_NOT_FOUND"


class EnrollmentNotFound(NotFoundError):
    """Enrollment not found."""
    code = "ENROLLMENT_NOT_FOUND"


class AttendanceNotFound(NotFoundError):
    """Attendance record not found."""
    code = "ATTENDANCE_NOT_FOUND"


class InvalidQRCode(NotFoundError):
    """Invalid QR code."""
    code = "INVALID_QR_CODE"


class NotEnrolled(ForbiddenError):
    """You are not enrolled in this course."""
    code = "NOT_ENROLLED"


class AlreadyCheckedIn(ConflictError):
    """You have already checked in to this session."""
    code = "ALREADY_CHECKED_IN"


class DuplicateEnrollment(ConflictError):
    """The student is already enrolled in this course."""
    code = "DUPLICATE_ENROLLMENT"


class DuplicateCourseCode(ConflictError):
    """A course with this code already exists."""
    code = "DUPLICATE_COURSE_CODE"


class SessionNotActive(InvalidStateError):
    """This session is not open for check-in."""
    code = "SESSION_NOT_ACTIVE"
