# tests/factories.py
from datetime import date, datetime, timedelta, timezone


def window(start_offset: timedelta = timedelta(hours=-1), end_offset: timedelta = timedelta(hours=1)):
    """Şu ana göre (start_time, end_time) çifti döndürür."""
    now = datetime.now(timezone.utc)
    return now + start_offset, now + end_offset


def session_kwargs(course_id, start_offset=timedelta(hours=-1), end_offset=timedelta(hours=1), **extra):
    """SessionService.create_session için hazır argümanlar."""
    start_time, end_time = window(start_offset, end_offset)
    kwargs = dict(
        course_id=course_id,
        title="Week 1 - Lecture",
        scheduled_date=date.today(),
        start_time=start_time,
        end_time=end_time,
    )
    kwargs.update(extra)
    return kwargs


def auth_headers(user) -> dict:
    """Harici kimlik servisinin vereceği türden bir Bearer token başlığı."""
    from attendify.backend.api.auth import create_access_token

    token = create_access_token({"sub": str(user.id)}, timedelta(minutes=30))
    return {"Authorization": f"Bearer {token}"}


def session_payload(course_id, start_offset=timedelta(hours=-1), end_offset=timedelta(hours=1), **extra) -> dict:
    """POST /sessions için JSON gövdesi."""
    start_time, end_time = window(start_offset, end_offset)
    payload = {
        "course_id": str(course_id),
        "title": "Week 1 - Lecture",
        "scheduled_date": date.today().isoformat(),
        "start_time": start_time.isoformat(),
        "end_time": end_time.isoformat(),
    }
    payload.update(extra)
    return payload
