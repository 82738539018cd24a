import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import jwt
from pydantic import ValidationError

from .schemas.user import TokenData
from ..models.db_models import User
from ..db.storage import AttendanceStore
from ..config.config import settings
from .dependencies import get_store

# Bu modül için özel bir logger oluşturuyoruz.
logger = logging.getLogger(__name__)

# Token'lar harici kimlik servisi tarafından aynı SECRET_KEY ile imzalanır.
bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(data: dict, expires_delta: timedelta):
    """Verilen data ve süre ile yeni bir JWT access token oluşturur."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    store: AttendanceStore = Depends(get_store)
) -> User:
    """
    Token'ı decode eder, Pydantic ile doğrular ve kimlik dizinindeki güncel
    User nesnesini döndürür. Rol her istekte dizinden okunur, token'dan değil.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception
    try:
        payload = jwt.decode(credentials.credentials, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        token_data = TokenData.model_validate(payload)
    except (jwt.PyJWTError, ValidationError) as e:
        # Hem JWT hatalarını (süre dolması, imza hatası) hem de Pydantic doğrulama
        # hatalarını (eksik alan, yanlış tip) yakalıyoruz.
        logger.warning(f"Token validation error: {e}")
        raise credentials_exception

    if token_data.sub is None:
        logger.warning("Token is valid but missing 'sub'.")
        raise credentials_exception

    user = await store.get_user(token_data.sub)
    if user is None:
        logger.warning(f"Token subject '{token_data.sub}' is not in the identity directory. Denying access.")
        raise credentials_exception
    return user
