import uuid

import pytest
import pytest_asyncio

from attendify.backend.services.course_service import CourseService
from attendify.backend.services.session_service import SessionService
from attendify.backend.services.errors import (
    CourseNotFound, DuplicateCourseCode, InvalidInputError
)
from tests.factories import session_kwargs


@pytest_asyncio.fixture
async def service_instance(store):
    return CourseService(store=store)


@pytest.mark.asyncio
class TestCourseService:

    async def test_create_and_get_course(self, service_instance, instructor):
        service = service_instance

        created = await service.create_course("MATH201", "Linear Algebra", instructor.id, "Spring", 2025)

        fetched = await service.get_course(created.id)
        assert fetched == created
        assert fetched.instructor_id == instructor.id

    async def test_duplicate_code_raises_conflict(self, service_instance, course, instructor):
        with pytest.raises(DuplicateCourseCode):
            await service_instance.create_course(course.code, "Another", instructor.id, "Fall", 2024)

    async def test_owner_must_be_an_instructor(self, service_instance, student):
        """Senaryo: Öğrenci ya da olmayan bir kullanıcı ders sahibi olamaz."""
        with pytest.raises(InvalidInputError):
            await service_instance.create_course("BIO100", "Biology", student.id, "Fall", 2024)
        with pytest.raises(InvalidInputError):
            await service_instance.create_course("BIO100", "Biology", uuid.uuid4(), "Fall", 2024)

    async def test_list_courses_by_instructor(self, service_instance, course, instructor, other_instructor):
        await service_instance.create_course("PHY101", "Physics", other_instructor.id, "Fall", 2024)

        mine = await service_instance.list_courses(instructor_id=instructor.id)
        everything = await service_instance.list_courses()

        assert [c.id for c in mine] == [course.id]
        assert len(everything) == 2

    async def test_update_course(self, service_instance, course, other_instructor):
        updated = await service_instance.update_course(
            course.id, name="Computing I", description=None, instructor_id=other_instructor.id
        )

        assert updated.name == "Computing I"
        assert updated.code == course.code
        assert updated.instructor_id == other_instructor.id

    async def test_update_can_clear_description(self, service_instance, course):
        """Senaryo: Açıkça None verilen açıklama silinir, verilmeyen alanlar korunur."""
        described = await service_instance.update_course(course.id, description="Fundamentals")
        assert described.description == "Fundamentals"

        cleared = await service_instance.update_course(course.id, description=None, name=None)

        assert cleared.description is None
        assert cleared.name == course.name

    async def test_update_course_code_conflict(self, service_instance, course, instructor):
        other = await service_instance.create_course("CS102", "Data Structures", instructor.id, "Fall", 2024)

        with pytest.raises(DuplicateCourseCode):
            await service_instance.update_course(other.id, code=course.code)

    async def test_update_rejects_unknown_fields(self, service_instance, course):
        with pytest.raises(InvalidInputError, match="Unknown course fields: qr_code"):
            await service_instance.update_course(course.id, qr_code="nope")

    async def test_delete_course_cascades(self, service_instance, store, course, enrollment):
        """Senaryo: Ders silindiğinde oturumları ve kayıtları da silinir."""
        session = await SessionService(store=store).create_session(**session_kwargs(course.id))

        await service_instance.delete_course(course.id)

        assert await store.get_session(session.id) is None
        assert await store.get_enrollment(enrollment.id) is None
        with pytest.raises(CourseNotFound):
            await service_instance.get_course(course.id)
        with pytest.raises(CourseNotFound):
            await service_instance.delete_course(course.id)
