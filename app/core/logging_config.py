import logging
import logging.handlers
import os
import sys

from app.core.config import get_settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-20s | %(filename)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Loggers de terceros que solo interesan a partir de cierto nivel
NOISY_LOGGERS = {
    "uvicorn": logging.INFO,
    "uvicorn.access": logging.INFO,
    "sqlalchemy.engine": logging.WARNING,
    "redis": logging.WARNING,
}


def setup_logging():
    """
    Configura el logging de la aplicación.

    - Nivel DEBUG con DEBUG_MODE, INFO en otro caso.
    - Consola (stdout) y un archivo en LOG_DIR que rota a medianoche
      (se conservan LOG_BACKUP_DAYS días).
    """
    settings = get_settings()
    root = logging.getLogger()
    level = logging.DEBUG if settings.DEBUG_MODE else logging.INFO
    root.setLevel(level)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)

    os.makedirs(settings.LOG_DIR, exist_ok=True)
    file_handler = logging.handlers.TimedRotatingFileHandler(
        os.path.join(settings.LOG_DIR, "gymdesk.log"),
        when="midnight",
        backupCount=settings.LOG_BACKUP_DAYS,
        encoding="utf-8",
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)

    # Uvicorn puede haber añadido handlers antes de importar la app
    if root.hasHandlers():
        root.handlers.clear()
    root.addHandler(console_handler)
    root.addHandler(file_handler)

    for name, logger_level in NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(logger_level)

    root.info("Logging configurado: nivel %s, archivo en %s", logging.getLevelName(level), settings.LOG_DIR)
