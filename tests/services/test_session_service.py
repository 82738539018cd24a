import uuid
from datetime import date, datetime, timedelta
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from attendify.backend.db.errors import DuplicateKeyError, SESSION_QR_KEY
from attendify.backend.models.db_models import Session, AttendanceRecord
from attendify.backend.services.session_service import SessionService, is_checkable
from attendify.backend.services.errors import (
    CourseNotFound, SessionNotFound, InvalidInputError, InvalidQRCode, InternalServiceError
)
from tests.factories import session_kwargs, window

# --- Test Fikstürleri ---


@pytest.fixture
def sample_session() -> Session:
    start, end = window()
    return Session(
        id=uuid.uuid4(), course_id=uuid.uuid4(), title="Lab", scheduled_date=start.date(),
        start_time=start, end_time=end, qr_code="abcd1234.sample-token"
    )


@pytest_asyncio.fixture
async def service_instance(store):
    """Bellek içi depo ve mock'lanmış QR indeksi ile bir SessionService."""
    mock_qr_cache = AsyncMock()
    mock_qr_cache.get_session_id_by_qr.return_value = None
    service = SessionService(store=store, qr_cache=mock_qr_cache)
    return service, mock_qr_cache


# --- Test Senaryoları ---

class TestCheckableWindow:

    def test_window_bounds_are_inclusive(self, sample_session):
        start, end = sample_session.start_time, sample_session.end_time

        assert is_checkable(sample_session, start)
        assert is_checkable(sample_session, end)
        assert not is_checkable(sample_session, start - timedelta(microseconds=1))
        assert not is_checkable(sample_session, end + timedelta(microseconds=1))

    def test_inactive_session_is_never_checkable(self, sample_session):
        inactive = sample_session.model_copy(update={"is_active": False})

        assert not is_checkable(inactive, sample_session.start_time + timedelta(minutes=5))


@pytest.mark.asyncio
class TestCreateSession:

    async def test_create_session_issues_qr_and_indexes_it(self, service_instance, course):
        service, mock_qr_cache = service_instance

        session = await service.create_session(**session_kwargs(course.id))

        assert session.course_id == course.id
        assert session.is_active is True
        assert session.qr_code.startswith(session.id.hex[:8] + ".")
        mock_qr_cache.save_session_qr.assert_awaited_once_with(session)

    async def test_create_session_respects_explicit_inactive(self, service_instance, course):
        service, _ = service_instance

        session = await service.create_session(**session_kwargs(course.id, is_active=False))

        assert session.is_active is False

    async def test_create_session_unknown_course(self, service_instance):
        service, _ = service_instance

        with pytest.raises(CourseNotFound):
            await service.create_session(**session_kwargs(uuid.uuid4()))

    async def test_create_session_rejects_inverted_window(self, service_instance, course):
        service, _ = service_instance

        with pytest.raises(InvalidInputError):
            await service.create_session(
                **session_kwargs(course.id, start_offset=timedelta(hours=1), end_offset=timedelta(hours=-1))
            )

    async def test_create_session_rejects_naive_datetimes(self, service_instance, course):
        service, _ = service_instance
        kwargs = session_kwargs(course.id)
        kwargs["start_time"] = datetime(2024, 3, 1, 9, 0)
        kwargs["end_time"] = datetime(2024, 3, 1, 10, 0)

        with pytest.raises(InvalidInputError):
            await service.create_session(**kwargs)

    async def test_qr_collision_is_retried(self, course, sample_session):
        """Senaryo: Token çakışmasında yeni bir token ile tekrar denenir."""
        mock_store = AsyncMock()
        mock_store.get_course.return_value = course
        mock_store.add_session.side_effect = [DuplicateKeyError(SESSION_QR_KEY), sample_session]
        service = SessionService(store=mock_store)

        created = await service.create_session(**session_kwargs(course.id))

        assert created == sample_session
        assert mock_store.add_session.await_count == 2
        first_token = mock_store.add_session.await_args_list[0].args[0].qr_code
        second_token = mock_store.add_session.await_args_list[1].args[0].qr_code
        assert first_token != second_token

    async def test_storage_failure_raises_internal_error(self, course):
        mock_store = AsyncMock()
        mock_store.get_course.return_value = course
        mock_store.add_session.side_effect = RuntimeError("db down")
        service = SessionService(store=mock_store)

        with pytest.raises(InternalServiceError):
            await service.create_session(**session_kwargs(course.id))

    async def test_ten_thousand_sessions_have_unique_qr_codes(self, store, course):
        """Senaryo: 10.000 oturumda hiçbir QR kodu çakışmaz."""
        service = SessionService(store=store)

        sessions = [await service.create_session(**session_kwargs(course.id)) for _ in range(10_000)]

        assert len({s.qr_code for s in sessions}) == 10_000


@pytest.mark.asyncio
class TestResolveAndLifecycle:

    async def test_resolve_falls_back_to_store_and_backfills_index(self, service_instance, course):
        service, mock_qr_cache = service_instance
        session = await service.create_session(**session_kwargs(course.id))
        mock_qr_cache.save_session_qr.reset_mock()

        resolved = await service.resolve_by_qr_code(session.qr_code)

        assert resolved.id == session.id
        mock_qr_cache.save_session_qr.assert_awaited_once()

    async def test_resolve_uses_index_hit(self, service_instance, store, course):
        service, mock_qr_cache = service_instance
        session = await service.create_session(**session_kwargs(course.id))
        mock_qr_cache.get_session_id_by_qr.return_value = session.id
        store.get_session_by_qr_code = AsyncMock()

        resolved = await service.resolve_by_qr_code(session.qr_code)

        assert resolved.id == session.id
        store.get_session_by_qr_code.assert_not_awaited()

    async def test_stale_index_entry_is_dropped(self, service_instance, course):
        """Senaryo: Redis'teki eşleme silinmiş bir oturumu gösteriyorsa temizlenir."""
        service, mock_qr_cache = service_instance
        mock_qr_cache.get_session_id_by_qr.return_value = uuid.uuid4()

        with pytest.raises(InvalidQRCode):
            await service.resolve_by_qr_code("abcd1234.stale-token")
        mock_qr_cache.delete_session_qr.assert_awaited_once_with("abcd1234.stale-token")

    async def test_index_outage_does_not_block_resolution(self, service_instance, course):
        service, mock_qr_cache = service_instance
        session = await service.create_session(**session_kwargs(course.id))
        mock_qr_cache.get_session_id_by_qr.side_effect = ConnectionError("redis down")

        resolved = await service.resolve_by_qr_code(session.qr_code)

        assert resolved.id == session.id

    async def test_set_active_and_unknown_session(self, service_instance, course):
        service, _ = service_instance
        session = await service.create_session(**session_kwargs(course.id))

        updated = await service.set_active(session.id, False)
        assert updated.is_active is False
        with pytest.raises(SessionNotFound):
            await service.set_active(uuid.uuid4(), True)

    async def test_update_schedule_keeps_qr_code(self, service_instance, course):
        service, _ = service_instance
        session = await service.create_session(**session_kwargs(course.id))
        start, end = window(timedelta(days=1), timedelta(days=1, hours=2))

        updated = await service.update_schedule(session.id, "Moved", date.today() + timedelta(days=1), start, end)

        assert updated.title == "Moved"
        assert updated.start_time == start
        assert updated.qr_code == session.qr_code

    async def test_list_sessions_active_only(self, service_instance, course):
        service, _ = service_instance
        active = await service.create_session(**session_kwargs(course.id))
        await service.create_session(**session_kwargs(course.id, is_active=False))

        all_sessions = await service.list_sessions(course.id)
        active_sessions = await service.list_sessions(course.id, active_only=True)

        assert len(all_sessions) == 2
        assert [s.id for s in active_sessions] == [active.id]
        with pytest.raises(CourseNotFound):
            await service.list_sessions(uuid.uuid4())

    async def test_delete_session_cascades_and_clears_index(self, service_instance, store, course, student):
        service, mock_qr_cache = service_instance
        session = await service.create_session(**session_kwargs(course.id))
        record = await store.add_attendance_record(AttendanceRecord(
            id=uuid.uuid4(), session_id=session.id, student_id=student.id, checked_in_at=session.start_time
        ))

        await service.delete_session(session.id)

        assert await store.get_session(session.id) is None
        assert await store.get_attendance_record(record.id) is None
        mock_qr_cache.delete_session_qr.assert_awaited_once_with(session.qr_code)
        with pytest.raises(SessionNotFound):
            await service.delete_session(session.id)
