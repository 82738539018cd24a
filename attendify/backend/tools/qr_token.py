# attendify/backend/tools/qr_token.py

import secrets
from uuid import UUID

from ..config.config import settings

MIN_TOKEN_BYTES = 16


def generate_qr_token(session_id: UUID, nbytes: int = None) -> str:
    """
    Bir oturum için tahmin edilemez, tek kullanımlık olmayan ama benzersiz bir QR token üretir.

    Token, hata ayıklamayı kolaylaştırmak için oturum ID'sinin ilk 8 karakteriyle başlar;
    bu ön ek gizli değildir. Asıl güvenlik `secrets` ile üretilen rastgele kısımdan gelir.

    Args:
        session_id (UUID): Token'ın ait olduğu oturum.
        nbytes (int): Rastgele kısmın bayt sayısı. En az 16 bayt (128 bit) zorunludur.

    Returns:
        str: "<ipucu>.<rastgele>" biçiminde URL-güvenli token.
    """
    nbytes = nbytes or settings.QR_TOKEN_BYTES
    if nbytes < MIN_TOKEN_BYTES:
        raise ValueError(f"QR tokens need at least {MIN_TOKEN_BYTES} random bytes.")
    return f"{session_id.hex[:8]}.{secrets.token_urlsafe(nbytes)}"
