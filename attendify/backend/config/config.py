import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """
    Ortam değişkenlerinden ayarları doğrudan ve basit bir şekilde tutan sınıf.
    """
    # Veritabanı
    DATABASE_URL: str = os.environ.get("DATABASE_URL")
    # "postgres" ya da yerel geliştirme için "memory"
    STORAGE_BACKEND: str = os.environ.get("STORAGE_BACKEND", "postgres")

    # Redis: QR arama indeksi ve rate limiter
    APPLICATION_REDIS_URL: str = os.environ.get("APPLICATION_REDIS_URL")
    RATE_LIMITER_REDIS_URL: str = os.environ.get("RATE_LIMITER_REDIS_URL", "memory://")
    RATE_LIMIT_ENABLED: bool = _env_bool("RATE_LIMIT_ENABLED", "true")

    # JWT doğrulama (token üretimi harici kimlik servisinde)
    SECRET_KEY: str = os.environ.get("SECRET_KEY", "change-me")
    ALGORITHM: str = os.environ.get("ALGORITHM", "HS256")

    # Oturum (ders) ayarları
    SESSION_ACTIVE_BY_DEFAULT: bool = _env_bool("SESSION_ACTIVE_BY_DEFAULT", "true")
    QR_TOKEN_BYTES: int = max(int(os.environ.get("QR_TOKEN_BYTES", 24)), 16)
    SESSION_SWEEP_MINUTES: int = int(os.environ.get("SESSION_SWEEP_MINUTES", 5))

    LOG_DIR: str = os.environ.get("LOG_DIR", "logs")

# Ayarların tek ve içe aktarılabilir bir örneğini oluştur
settings = Config()
