# attendify/backend/api/utilities/limiter.py

from fastapi import Request
import jwt

# Gerekli slowapi ve ayar importları
from slowapi import Limiter
from slowapi.util import get_remote_address

from ...config.config import settings


def get_limiter_key(request: Request) -> str:
    """
    Rate limit için bir anahtar döndürür.
    İstekte geçerli bir JWT varsa kullanıcı ID'sini (sub), yoksa istemcinin IP adresini kullanır.
    Böylece bir amfideki tüm öğrenciler aynı NAT IP'sini paylaşsa bile birbirini engellemez.
    """
    auth_header = request.headers.get("authorization")
    if auth_header and auth_header.lower().startswith("bearer "):
        token = auth_header.split(" ")[1]
        try:
            payload = jwt.decode(
                token,
                settings.SECRET_KEY,
                algorithms=[settings.ALGORITHM],
                options={"verify_exp": False}
            )
            subject = payload.get("sub")
            if subject:
                return str(subject)
        except jwt.PyJWTError:
            # Token geçersizse IP bazlı limite geri dön.
            pass

    return get_remote_address(request)


limiter = Limiter(
    key_func=get_limiter_key,
    storage_uri=settings.RATE_LIMITER_REDIS_URL,
    enabled=settings.RATE_LIMIT_ENABLED,
)
