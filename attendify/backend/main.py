# attendify/backend/main.py
from fastapi import FastAPI
from contextlib import asynccontextmanager
import redis.asyncio as redis
import asyncpg
from apscheduler.schedulers.asyncio import AsyncIOScheduler as Scheduler
import logging

# Rate limiting için gerekli importlar
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

# Proje ayarlarını ve modüllerini import edelim
from .config.config import settings
from .logging.logging_config import setup_logging
from .api import sessions, attendance, courses, enrollments, users

# Gerekli istemci ve görev (task) fonksiyonlarını import edelim
from .db.db_client import AsyncPostgresClient
from .db.memory_client import InMemoryClient
from .tasks.cron import deactivate_expired_sessions_task
from .services.errors import ServiceError

from .api.utilities.errors import service_error_handler
from .api.utilities.limiter import limiter

from fastapi.middleware.cors import CORSMiddleware

logger = logging.getLogger(__name__)


async def _open_store(app: FastAPI):
    """STORAGE_BACKEND ayarına göre Postgres ya da bellek içi depolamayı hazırlar."""
    if settings.STORAGE_BACKEND == "memory":
        logger.warning("STORAGE_BACKEND=memory: veriler süreç kapanınca kaybolur.")
        return InMemoryClient()

    postgres_pool = await asyncpg.create_pool(
        dsn=settings.DATABASE_URL, min_size=5, max_size=20
    )
    app.state.postgres_pool = postgres_pool
    db_client = AsyncPostgresClient(pool=postgres_pool)
    await db_client.init_schema()
    logger.info("PostgreSQL bağlantı havuzu oluşturuldu ve şema doğrulandı.")
    return db_client


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Uygulama başlatıldığında ve durdurulduğunda çalışacak olan yaşam döngüsü yöneticisi.
    """
    setup_logging()
    logger.info("Uygulama başlatılıyor...")

    app.state.postgres_pool = None
    app.state.redis_pool = None
    app.state.scheduler = None
    app.state.store = None

    try:
        store = await _open_store(app)
        app.state.store = store

        if settings.APPLICATION_REDIS_URL:
            app.state.redis_pool = redis.ConnectionPool.from_url(
                settings.APPLICATION_REDIS_URL, decode_responses=True
            )
            logger.info("Redis bağlantı havuzu (QR indeksi) oluşturuldu.")
        else:
            logger.warning("APPLICATION_REDIS_URL tanımlı değil; QR kodları doğrudan veritabanından çözülecek.")

        scheduler = Scheduler()
        scheduler.add_job(
            deactivate_expired_sessions_task, "interval",
            minutes=settings.SESSION_SWEEP_MINUTES, args=[store], id="sweep_sessions"
        )
        scheduler.start()
        app.state.scheduler = scheduler
        logger.info("Zamanlanmış görevler (cron jobs) başarıyla başlatıldı.")

    except Exception as e:
        logger.error(f"HATA: Başlangıç sırasında bir hata oluştu: {e}", exc_info=True)
        # Depolama yoksa istekler 503 ile reddedilir.
        app.state.store = None

    yield

    logger.info("Uygulama kapatılıyor...")
    if app.state.scheduler:
        app.state.scheduler.shutdown()
        logger.info("Scheduler kapatıldı.")
    if app.state.postgres_pool:
        await app.state.postgres_pool.close()
        logger.info("PostgreSQL bağlantı havuzu kapatıldı.")
    if app.state.redis_pool:
        await app.state.redis_pool.disconnect()
        logger.info("Redis bağlantı havuzu kapatıldı.")


# Ana FastAPI uygulamasını oluştur
app = FastAPI(
    title="Attendify API",
    description="QR kod ile ders yoklama sistemi API'si",
    version="1.0.0",
    lifespan=lifespan
)

# Rate limiter'ı uygulama state'ine ekle
app.state.limiter = limiter

origins = [
   "*"
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Rate limit aşıldığında çalışacak hata yöneticisini ekle
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
# Servis katmanı hatalarını HTTP durum kodlarına çevir
app.add_exception_handler(ServiceError, service_error_handler)

# API router'larını uygulamaya dahil et
app.include_router(sessions.router, prefix="/api/v1")
app.include_router(attendance.router, prefix="/api/v1")
app.include_router(courses.router, prefix="/api/v1")
app.include_router(enrollments.router, prefix="/api/v1")
app.include_router(users.router, prefix="/api/v1")


@app.get("/health", tags=["System"])
def health_check():
    """Uygulamanın ayakta ve sağlıklı olup olmadığını kontrol etmek için basit bir endpoint."""
    return {"status": "ok", "message": "Attendify API is running."}
