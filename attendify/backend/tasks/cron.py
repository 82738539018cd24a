import logging
from datetime import datetime, timezone

from ..db.storage import AttendanceStore

logger = logging.getLogger(__name__)


async def deactivate_expired_sessions_task(store: AttendanceStore):
    """
    Runs periodically and clears `is_active` on sessions whose end_time has passed.

    Check-in already rejects anything outside the window; this keeps the active
    flag (and "active sessions" listings) in line with the clock.
    """
    logger.info("Running deactivate_expired_sessions_task...")
    now = datetime.now(timezone.utc)
    try:
        count = await store.deactivate_sessions_ended_before(now)
    except Exception as e:
        logger.error(f"Failed to deactivate expired sessions: {e}", exc_info=True)
        return 0
    if count:
        logger.info(f"Deactivated {count} expired session(s).")
    return count
