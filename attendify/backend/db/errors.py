class StorageError(Exception):
    """Base class for storage-layer failures."""
    pass


class DuplicateKeyError(StorageError):
    """
    A write hit a uniqueness constraint. `constraint` names the violated key so the
    service layer can translate it into the matching domain conflict.
    """
    def __init__(self, constraint: str, message: str = None):
        self.constraint = constraint
        super().__init__(message or f"Unique constraint violated: {constraint}")


# Constraint names shared by the Postgres schema and the in-memory store.
COURSE_CODE_KEY = "courses_code_key"
ENROLLMENT_KEY = "enrollments_course_student_key"
SESSION_QR_KEY = "sessions_qr_code_key"
ATTENDANCE_KEY = "attendance_records_session_student_key"
