import hashlib
import logging
from typing import Optional
from uuid import UUID
import redis.asyncio as redis

from ..models.db_models import Session

logger = logging.getLogger(__name__)


def _qr_key(qr_code: str) -> str:
    # Token'ın kendisi anahtar olarak saklanmaz, sadece özeti.
    digest = hashlib.sha256(qr_code.encode("utf-8")).hexdigest()
    return f"session_qr:{digest}"


class RedisClient:
    """
    QR token -> oturum ID eşlemesini tutan Redis istemcisi.
    Token'lar değişmez olduğundan eşleme sadece oturum silinince kaldırılır.
    """

    def __init__(self, pool: redis.ConnectionPool):
        self._redis = redis.Redis(connection_pool=pool, decode_responses=True)

    async def save_session_qr(self, session: Session):
        """Oturumun QR token'ını oturum ID'sine bağlar."""
        await self._redis.set(_qr_key(session.qr_code), str(session.id))

    async def get_session_id_by_qr(self, qr_code: str) -> Optional[UUID]:
        """QR token'a karşılık gelen oturum ID'sini getirir."""
        session_id = await self._redis.get(_qr_key(qr_code))
        return UUID(session_id) if session_id else None

    async def delete_session_qr(self, qr_code: str) -> int:
        """Oturum silindiğinde ya da eşleme bayatladığında QR kaydını temizler."""
        return await self._redis.delete(_qr_key(qr_code))
