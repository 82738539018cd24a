# tests/conftest.py
import asyncio
import os
import sys
import uuid

# Uygulama modülleri import edilmeden önce test ayarları yüklenmeli.
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-attendify-tests-0123456789abcdef")

import pytest
import pytest_asyncio

from attendify.backend.db.memory_client import InMemoryClient
from attendify.backend.models.db_models import User, Course, Enrollment, Role

# This is the crucial fix for Windows asyncio issues with pytest.
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())


# --- Kullanıcı Fikstürleri ---

@pytest.fixture
def instructor() -> User:
    return User(id=uuid.uuid4(), full_name="Dr. Ada Lovelace", role=Role.INSTRUCTOR, department="CS")


@pytest.fixture
def other_instructor() -> User:
    return User(id=uuid.uuid4(), full_name="Dr. Alan Turing", role=Role.INSTRUCTOR, department="CS")


@pytest.fixture
def student() -> User:
    return User(id=uuid.uuid4(), full_name="Test Student", role=Role.STUDENT, student_number="S001")


@pytest.fixture
def outsider_student() -> User:
    """Derse kayıtlı olmayan öğrenci."""
    return User(id=uuid.uuid4(), full_name="Other Student", role=Role.STUDENT, student_number="S002")


@pytest.fixture
def admin() -> User:
    return User(id=uuid.uuid4(), full_name="Registrar", role=Role.ADMIN)


# --- Depolama Fikstürleri ---

@pytest_asyncio.fixture
async def store(instructor, other_instructor, student, outsider_student, admin) -> InMemoryClient:
    """Her test için kullanıcıları yüklenmiş, boş bir bellek içi depo."""
    client = InMemoryClient()
    await client.add_users([instructor, other_instructor, student, outsider_student, admin])
    return client


@pytest_asyncio.fixture
async def course(store, instructor) -> Course:
    return await store.add_course(Course(
        id=uuid.uuid4(), code="CS101", name="Intro to Computing",
        instructor_id=instructor.id, semester="Fall", year=2024
    ))


@pytest_asyncio.fixture
async def enrollment(store, course, student) -> Enrollment:
    return await store.add_enrollment(Enrollment(id=uuid.uuid4(), course_id=course.id, student_id=student.id))
