import logging
import os
import sys
from datetime import datetime

from studio_booking.core.config import get_settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-20s | %(filename)s:%(lineno)d | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Librerías que con INFO llenan el log de ruido
QUIET_LOGGERS = {
    "uvicorn": logging.INFO,
    "uvicorn.access": logging.INFO,
    "apscheduler": logging.WARNING,
    "urllib3": logging.WARNING,
}


def _build_handlers(log_dir: str, level: int):
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        stamp = datetime.now().strftime("%Y%m%d")
        handlers.append(logging.FileHandler(os.path.join(log_dir, f"studio_booking_{stamp}.log")))

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return handlers


def setup_logging():
    """
    Logging del proceso: stdout y, si LOG_DIR está definido, un archivo por día.

    Se llama una sola vez al importar studio_booking.main. DEBUG_MODE baja el nivel a DEBUG.
    """
    settings = get_settings()
    level = logging.DEBUG if settings.DEBUG_MODE else logging.INFO

    root = logging.getLogger()
    root.setLevel(level)
    # Uvicorn puede haber registrado los suyos antes
    root.handlers.clear()
    for handler in _build_handlers(settings.LOG_DIR, level):
        root.addHandler(handler)

    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)

    root.info(f"Logging listo: nivel {logging.getLevelName(level)}, archivo={'sí' if settings.LOG_DIR else 'no'}")
