import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from ..config.config import settings


def setup_logging(level: int = logging.INFO, log_dir: str = None):
    """
    Uygulama genelinde kullanılacak olan merkezi loglama yapılandırmasını kurar.

    Loglar hem konsola hem de 5MB'ı geçtiğinde dönen bir dosyaya yazılır.
    QR token'ları hiçbir log satırına yazılmaz; servisler sadece oturum ID'si loglar.
    """
    log_format = "%(asctime)s - [%(name)s] - %(levelname)s - %(message)s"

    log_path = Path(log_dir or settings.LOG_DIR)
    log_path.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger()
    logger.setLevel(level)

    # Uvicorn gibi kütüphanelerin varsayılan handler'larını temizleyerek
    # kendi standart formatımızı zorunlu kılıyoruz.
    if logger.hasHandlers():
        logger.handlers.clear()

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(logging.Formatter(log_format))
    logger.addHandler(stdout_handler)

    file_handler = RotatingFileHandler(
        log_path / "app.log",
        maxBytes=5*1024*1024,  # 5 MB
        backupCount=5
    )
    file_handler.setFormatter(logging.Formatter(log_format))
    logger.addHandler(file_handler)
