import asyncio
import uuid
from datetime import date, datetime, timedelta, timezone

import pytest

from attendify.backend.db.errors import (
    DuplicateKeyError, COURSE_CODE_KEY, ENROLLMENT_KEY, SESSION_QR_KEY, ATTENDANCE_KEY
)
from attendify.backend.db.memory_client import InMemoryClient, KeyedLocks
from attendify.backend.models.db_models import Course, Enrollment, Session, AttendanceRecord, Role

# ===== Yardımcı Fonksiyonlar & Örnek Veriler =====


def create_sample_session(course_id, qr_code=None, end_offset=timedelta(hours=1)) -> Session:
    now = datetime.now(timezone.utc)
    return Session(
        id=uuid.uuid4(), course_id=course_id, title="Lecture", scheduled_date=date.today(),
        start_time=now - timedelta(hours=1), end_time=now + end_offset,
        qr_code=qr_code or f"qr-{uuid.uuid4().hex}"
    )


def create_sample_record(session_id, student_id) -> AttendanceRecord:
    return AttendanceRecord(
        id=uuid.uuid4(), session_id=session_id, student_id=student_id, checked_in_at=datetime.now(timezone.utc)
    )


# ===== Test Senaryoları =====

class TestKeyedLocks:

    def test_same_key_returns_same_lock(self):
        locks = KeyedLocks()
        first = locks.get(("s", "u"))

        assert locks.get(("s", "u")) is first
        assert locks.get(("s", "other")) is not first


@pytest.mark.asyncio
class TestInMemoryClient:

    async def test_returns_copies(self, store, course):
        """Senaryo: Dönen nesneyi değiştirmek depodaki kaydı etkilemez."""
        fetched = await store.get_course(course.id)
        fetched.name = "changed"

        assert (await store.get_course(course.id)).name == course.name

    async def test_unique_keys(self, store, course, enrollment, instructor, student):
        with pytest.raises(DuplicateKeyError) as exc_info:
            await store.add_course(course.model_copy(update={"id": uuid.uuid4()}))
        assert exc_info.value.constraint == COURSE_CODE_KEY

        with pytest.raises(DuplicateKeyError) as exc_info:
            await store.add_enrollment(Enrollment(id=uuid.uuid4(), course_id=course.id, student_id=student.id))
        assert exc_info.value.constraint == ENROLLMENT_KEY

        session = await store.add_session(create_sample_session(course.id, qr_code="same"))
        with pytest.raises(DuplicateKeyError) as exc_info:
            await store.add_session(create_sample_session(course.id, qr_code="same"))
        assert exc_info.value.constraint == SESSION_QR_KEY

        await store.add_attendance_record(create_sample_record(session.id, student.id))
        with pytest.raises(DuplicateKeyError) as exc_info:
            await store.add_attendance_record(create_sample_record(session.id, student.id))
        assert exc_info.value.constraint == ATTENDANCE_KEY

    async def test_record_check_in_requires_enrollment(self, store, course, enrollment, student, outsider_student):
        session = await store.add_session(create_sample_session(course.id))

        assert await store.record_check_in(create_sample_record(session.id, outsider_student.id), course.id) is None
        created = await store.record_check_in(create_sample_record(session.id, student.id), course.id)

        assert created.student_id == student.id
        assert await store.get_attendance_record_for_student(session.id, student.id) == created

    async def test_concurrent_record_check_in_single_winner(self, store, course, enrollment, student):
        session = await store.add_session(create_sample_session(course.id))

        results = await asyncio.gather(
            *(store.record_check_in(create_sample_record(session.id, student.id), course.id) for _ in range(10)),
            return_exceptions=True
        )

        assert len([r for r in results if isinstance(r, AttendanceRecord)]) == 1
        assert len([r for r in results if isinstance(r, DuplicateKeyError)]) == 9

    async def test_delete_course_cascades(self, store, course, enrollment, student):
        session = await store.add_session(create_sample_session(course.id))
        record = await store.add_attendance_record(create_sample_record(session.id, student.id))

        assert await store.delete_course(course.id) is True

        assert await store.get_enrollment(enrollment.id) is None
        assert await store.get_session_by_qr_code(session.qr_code) is None
        assert await store.get_attendance_record(record.id) is None
        assert await store.is_student_enrolled(course.id, student.id) is False
        assert await store.delete_course(course.id) is False
        # Kod serbest kaldı.
        await store.add_course(course.model_copy(update={"id": uuid.uuid4()}))

    async def test_deactivate_sessions_ended_before(self, store, course):
        ended = await store.add_session(create_sample_session(course.id, end_offset=timedelta(minutes=-5)))
        running = await store.add_session(create_sample_session(course.id))

        count = await store.deactivate_sessions_ended_before(datetime.now(timezone.utc))

        assert count == 1
        assert (await store.get_session(ended.id)).is_active is False
        assert (await store.get_session(running.id)).is_active is True
        assert await store.deactivate_sessions_ended_before(datetime.now(timezone.utc)) == 0

    async def test_users_by_role(self, store, instructor, other_instructor):
        instructors = await store.get_users_by_role(Role.INSTRUCTOR)

        assert {u.id for u in instructors} == {instructor.id, other_instructor.id}

    async def test_empty_store(self):
        client = InMemoryClient()

        assert await client.get_courses() == []
        assert await client.delete_attendance_for_student(uuid.uuid4(), uuid.uuid4()) is False
