import logging
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional
from uuid import UUID
import asyncpg
from ..models.db_models import User, Course, Enrollment, Session, AttendanceRecord, Role
from .errors import DuplicateKeyError

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).with_name("schema.sql")


def _duplicate_key(e: asyncpg.UniqueViolationError) -> DuplicateKeyError:
    return DuplicateKeyError(e.constraint_name or "unknown", str(e))


class AsyncPostgresClient:
    """
    Tüm veritabanı operasyonlarını yöneten PostgreSQL istemcisi.
    Benzersizlik kısıtları (unique constraint) tek yetkili koruyucudur; ihlaller
    DuplicateKeyError olarak yukarı taşınır.
    """
    def __init__(self, pool: asyncpg.Pool):
        self._pool = pool

    async def init_schema(self):
        """Tabloları ve indeksleri oluşturur (varsa es geçer)."""
        async with self._pool.acquire() as connection:
            await connection.execute(SCHEMA_PATH.read_text())

    # ===== Identity Directory =====

    async def add_users(self, users: List[User]):
        """Yeni kullanıcıları Users tablosuna ekler. Çakışma durumunda bir şey yapmaz."""
        if not users:
            return
        query = """
            INSERT INTO Users (id, full_name, email, role, student_number, department)
            VALUES ($1, $2, $3, $4, $5, $6)
            ON CONFLICT (id) DO NOTHING;
        """
        user_data = [(u.id, u.full_name, u.email, u.role.value, u.student_number, u.department) for u in users]
        async with self._pool.acquire() as connection:
            await connection.executemany(query, user_data)

    async def get_user(self, user_id: UUID) -> Optional[User]:
        query = "SELECT * FROM Users WHERE id = $1;"
        async with self._pool.acquire() as connection:
            record = await connection.fetchrow(query, user_id)
            return User(**record) if record else None

    async def get_users_by_role(self, role: Role) -> List[User]:
        query = "SELECT * FROM Users WHERE role = $1 ORDER BY full_name;"
        async with self._pool.acquire() as connection:
            records = await connection.fetch(query, role.value)
            return [User(**record) for record in records]

    # ===== Course Registry =====

    async def add_course(self, course: Course) -> Course:
        query = """
            INSERT INTO Courses (id, code, name, description, instructor_id, semester, year)
            VALUES ($1, $2, $3, $4, $5, $6, $7)
            RETURNING *;
        """
        try:
            async with self._pool.acquire() as connection:
                record = await connection.fetchrow(
                    query, course.id, course.code, course.name, course.description,
                    course.instructor_id, course.semester, course.year
                )
        except asyncpg.UniqueViolationError as e:
            raise _duplicate_key(e) from e
        return Course(**record)

    async def get_course(self, course_id: UUID) -> Optional[Course]:
        query = "SELECT * FROM Courses WHERE id = $1;"
        async with self._pool.acquire() as connection:
            record = await connection.fetchrow(query, course_id)
            return Course(**record) if record else None

    async def get_courses(self) -> List[Course]:
        query = "SELECT * FROM Courses ORDER BY code;"
        async with self._pool.acquire() as connection:
            records = await connection.fetch(query)
            return [Course(**record) for record in records]

    async def get_courses_by_instructor(self, instructor_id: UUID) -> List[Course]:
        query = "SELECT * FROM Courses WHERE instructor_id = $1 ORDER BY code;"
        async with self._pool.acquire() as connection:
            records = await connection.fetch(query, instructor_id)
            return [Course(**record) for record in records]

    async def update_course(self, course: Course) -> Optional[Course]:
        query = """
            UPDATE Courses
            SET code = $2, name = $3, description = $4, instructor_id = $5, semester = $6, year = $7
            WHERE id = $1
            RETURNING *;
        """
        try:
            async with self._pool.acquire() as connection:
                record = await connection.fetchrow(
                    query, course.id, course.code, course.name, course.description,
                    course.instructor_id, course.semester, course.year
                )
        except asyncpg.UniqueViolationError as e:
            raise _duplicate_key(e) from e
        return Course(**record) if record else None

    async def delete_course(self, course_id: UUID) -> bool:
        """Dersi siler; oturumlar, kayıtlar ve yoklamalar ON DELETE CASCADE ile gider."""
        query = "DELETE FROM Courses WHERE id = $1;"
        async with self._pool.acquire() as connection:
            result = await connection.execute(query, course_id)
            return result.endswith(" 1")

    # ===== Enrollment Index =====

    async def add_enrollment(self, enrollment: Enrollment) -> Enrollment:
        query = """
            INSERT INTO Enrollments (id, course_id, student_id)
            VALUES ($1, $2, $3)
            RETURNING *;
        """
        try:
            async with self._pool.acquire() as connection:
                record = await connection.fetchrow(query, enrollment.id, enrollment.course_id, enrollment.student_id)
        except asyncpg.UniqueViolationError as e:
            raise _duplicate_key(e) from e
        return Enrollment(**record)

    async def get_enrollment(self, enrollment_id: UUID) -> Optional[Enrollment]:
        query = "SELECT * FROM Enrollments WHERE id = $1;"
        async with self._pool.acquire() as connection:
            record = await connection.fetchrow(query, enrollment_id)
            return Enrollment(**record) if record else None

    async def get_enrollments_by_course(self, course_id: UUID) -> List[Enrollment]:
        query = "SELECT * FROM Enrollments WHERE course_id = $1;"
        async with self._pool.acquire() as connection:
            records = await connection.fetch(query, course_id)
            return [Enrollment(**record) for record in records]

    async def get_enrollments_by_student(self, student_id: UUID) -> List[Enrollment]:
        query = "SELECT * FROM Enrollments WHERE student_id = $1;"
        async with self._pool.acquire() as connection:
            records = await connection.fetch(query, student_id)
            return [Enrollment(**record) for record in records]

    async def delete_enrollment(self, enrollment_id: UUID) -> bool:
        query = "DELETE FROM Enrollments WHERE id = $1;"
        async with self._pool.acquire() as connection:
            result = await connection.execute(query, enrollment_id)
            return result.endswith(" 1")

    async def is_student_enrolled(self, course_id: UUID, student_id: UUID) -> bool:
        query = "SELECT EXISTS (SELECT 1 FROM Enrollments WHERE course_id = $1 AND student_id = $2);"
        async with self._pool.acquire() as connection:
            return await connection.fetchval(query, course_id, student_id)

    # ===== Sessions =====

    async def add_session(self, session: Session) -> Session:
        query = """
            INSERT INTO Sessions (id, course_id, title, scheduled_date, start_time, end_time, qr_code, is_active)
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
            RETURNING *;
        """
        try:
            async with self._pool.acquire() as connection:
                record = await connection.fetchrow(
                    query, session.id, session.course_id, session.title, session.scheduled_date,
                    session.start_time, session.end_time, session.qr_code, session.is_active
                )
        except asyncpg.UniqueViolationError as e:
            raise _duplicate_key(e) from e
        return Session(**record)

    async def get_session(self, session_id: UUID) -> Optional[Session]:
        query = "SELECT * FROM Sessions WHERE id = $1;"
        async with self._pool.acquire() as connection:
            record = await connection.fetchrow(query, session_id)
            return Session(**record) if record else None

    async def get_session_by_qr_code(self, qr_code: str) -> Optional[Session]:
        """QR token ile tek oturum getirir; sessions_qr_code_key indeksi üzerinden çalışır."""
        query = "SELECT * FROM Sessions WHERE qr_code = $1;"
        async with self._pool.acquire() as connection:
            record = await connection.fetchrow(query, qr_code)
            return Session(**record) if record else None

    async def get_sessions_by_course(self, course_id: UUID) -> List[Session]:
        query = "SELECT * FROM Sessions WHERE course_id = $1 ORDER BY start_time;"
        async with self._pool.acquire() as connection:
            records = await connection.fetch(query, course_id)
            return [Session(**record) for record in records]

    async def get_active_sessions_by_course(self, course_id: UUID) -> List[Session]:
        query = "SELECT * FROM Sessions WHERE course_id = $1 AND is_active = TRUE ORDER BY start_time;"
        async with self._pool.acquire() as connection:
            records = await connection.fetch(query, course_id)
            return [Session(**record) for record in records]

    async def update_session_schedule(self, session_id: UUID, title: str, scheduled_date: date,
                                      start_time: datetime, end_time: datetime) -> Optional[Session]:
        # qr_code is immutable.
        query = """
            UPDATE Sessions
            SET title = $2, scheduled_date = $3, start_time = $4, end_time = $5
            WHERE id = $1
            RETURNING *;
        """
        async with self._pool.acquire() as connection:
            record = await connection.fetchrow(query, session_id, title, scheduled_date, start_time, end_time)
            return Session(**record) if record else None

    async def set_session_active(self, session_id: UUID, active: bool) -> Optional[Session]:
        """Aktiflik bayrağını tek bir atomik UPDATE ile değiştirir."""
        query = "UPDATE Sessions SET is_active = $2 WHERE id = $1 RETURNING *;"
        async with self._pool.acquire() as connection:
            record = await connection.fetchrow(query, session_id, active)
            return Session(**record) if record else None

    async def deactivate_sessions_ended_before(self, now: datetime) -> int:
        query = "UPDATE Sessions SET is_active = FALSE WHERE is_active = TRUE AND end_time < $1;"
        async with self._pool.acquire() as connection:
            result = await connection.execute(query, now)
            return int(result.split()[-1])

    async def delete_session(self, session_id: UUID) -> bool:
        query = "DELETE FROM Sessions WHERE id = $1;"
        async with self._pool.acquire() as connection:
            result = await connection.execute(query, session_id)
            return result.endswith(" 1")

    # ===== Attendance Ledger =====

    async def record_check_in(self, record: AttendanceRecord, course_id: UUID) -> Optional[AttendanceRecord]:
        """
        Kayıt kontrolü ve ekleme tek bir INSERT ... SELECT ile yapılır. Aynı (session, student)
        çifti için eşzamanlı ikinci yazıcı unique index'e takılır ve DuplicateKeyError alır.
        Öğrenci derse kayıtlı değilse hiçbir satır eklenmez ve None döner.
        """
        query = """
            INSERT INTO AttendanceRecords (id, session_id, student_id, checked_in_at, status)
            SELECT $1::uuid, $2::uuid, $3::uuid, $4::timestamptz, $5::text
            WHERE EXISTS (
                SELECT 1 FROM Enrollments WHERE course_id = $6::uuid AND student_id = $3::uuid
            )
            RETURNING *;
        """
        try:
            async with self._pool.acquire() as connection:
                async with connection.transaction():
                    inserted = await connection.fetchrow(
                        query, record.id, record.session_id, record.student_id,
                        record.checked_in_at, record.status.value, course_id
                    )
        except asyncpg.UniqueViolationError as e:
            raise _duplicate_key(e) from e
        return AttendanceRecord(**inserted) if inserted else None

    async def add_attendance_record(self, record: AttendanceRecord) -> AttendanceRecord:
        query = """
            INSERT INTO AttendanceRecords (id, session_id, student_id, checked_in_at, status)
            VALUES ($1, $2, $3, $4, $5)
            RETURNING *;
        """
        try:
            async with self._pool.acquire() as connection:
                inserted = await connection.fetchrow(
                    query, record.id, record.session_id, record.student_id,
                    record.checked_in_at, record.status.value
                )
        except asyncpg.UniqueViolationError as e:
            raise _duplicate_key(e) from e
        return AttendanceRecord(**inserted)

    async def get_attendance_record(self, record_id: UUID) -> Optional[AttendanceRecord]:
        query = "SELECT * FROM AttendanceRecords WHERE id = $1;"
        async with self._pool.acquire() as connection:
            record = await connection.fetchrow(query, record_id)
            return AttendanceRecord(**record) if record else None

    async def get_attendance_record_for_student(self, session_id: UUID, student_id: UUID) -> Optional[AttendanceRecord]:
        query = "SELECT * FROM AttendanceRecords WHERE session_id = $1 AND student_id = $2;"
        async with self._pool.acquire() as connection:
            record = await connection.fetchrow(query, session_id, student_id)
            return AttendanceRecord(**record) if record else None

    async def get_attendance_by_session(self, session_id: UUID) -> List[AttendanceRecord]:
        query = "SELECT * FROM AttendanceRecords WHERE session_id = $1 ORDER BY checked_in_at;"
        async with self._pool.acquire() as connection:
            records = await connection.fetch(query, session_id)
            return [AttendanceRecord(**record) for record in records]

    async def get_attendance_by_student(self, student_id: UUID) -> List[AttendanceRecord]:
        query = "SELECT * FROM AttendanceRecords WHERE student_id = $1 ORDER BY checked_in_at;"
        async with self._pool.acquire() as connection:
            records = await connection.fetch(query, student_id)
            return [AttendanceRecord(**record) for record in records]

    async def get_attendance_by_course_and_student(self, course_id: UUID, student_id: UUID) -> List[AttendanceRecord]:
        query = """
            SELECT ar.* FROM AttendanceRecords ar
            JOIN Sessions s ON s.id = ar.session_id
            WHERE s.course_id = $1 AND ar.student_id = $2
            ORDER BY ar.checked_in_at;
        """
        async with self._pool.acquire() as connection:
            records = await connection.fetch(query, course_id, student_id)
            return [AttendanceRecord(**record) for record in records]

    async def delete_attendance_record(self, record_id: UUID) -> bool:
        query = "DELETE FROM AttendanceRecords WHERE id = $1;"
        async with self._pool.acquire() as connection:
            result = await connection.execute(query, record_id)
            return result.endswith(" 1")

    async def delete_attendance_for_student(self, session_id: UUID, student_id: UUID) -> bool:
        query = "DELETE FROM AttendanceRecords WHERE session_id = $1 AND student_id = $2;"
        async with self._pool.acquire() as connection:
            result = await connection.execute(query, session_id, student_id)
            return result.endswith(" 1")
