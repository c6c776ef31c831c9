"""
Logging for cordstore and the MongoDB driver underneath it.

``setup_logging`` never touches the root logger. It attaches its handlers to
the ``cordstore`` logger and to the driver's ``pymongo`` logger, stamps every
record with the store it concerns (credentials stripped), and replaces the
handlers of an earlier call instead of stacking new ones.
"""
import logging
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from typing import List, Optional

from .config import StoreSettings

PACKAGE_LOGGER = "cordstore"
DRIVER_LOGGER = "pymongo"

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(store)s] %(message)s'

# Rotation: 10MB per file, 5 backups
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5


class StoreContextFilter(logging.Filter):
    """Adds the ``store`` attribute (``host/database``) to every record."""

    def __init__(self, settings: StoreSettings):
        super().__init__()
        self.store = f"{settings.uri_display}/{settings.database_name}"

    def filter(self, record: logging.LogRecord) -> bool:
        record.store = self.store
        return True


def _level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def _remove_own_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        if getattr(handler, "cordstore_owned", False):
            logger.removeHandler(handler)
            handler.close()


def _build_handlers(settings: StoreSettings) -> List[logging.Handler]:
    formatter = logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')
    context = StoreContextFilter(settings)

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if settings.logdir is not None:
        settings.logdir.mkdir(parents=True, exist_ok=True)
        log_file = settings.logdir / f"cordstore-{settings.database_name}-{datetime.now().strftime('%Y%m%d')}.log"
        handlers.append(RotatingFileHandler(
            log_file,
            maxBytes=MAX_LOG_BYTES,
            backupCount=LOG_BACKUPS,
            encoding='utf-8'
        ))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(context)
        handler.cordstore_owned = True
    return handlers


def setup_logging(settings: Optional[StoreSettings] = None) -> logging.Logger:
    """
    Route cordstore and driver logs to the console and an optional file.

    ``settings.log_level`` applies to cordstore, ``settings.driver_log_level``
    to pymongo. With ``settings.logdir`` set, records also go to
    ``cordstore-<database>-<YYYYMMDD>.log`` in that directory.

    Args:
        settings: Settings to read levels, log directory and store identity from

    Returns:
        The ``cordstore`` package logger
    """
    settings = settings or StoreSettings()
    handlers = _build_handlers(settings)

    for name, level in ((PACKAGE_LOGGER, settings.log_level), (DRIVER_LOGGER, settings.driver_log_level)):
        logger = logging.getLogger(name)
        _remove_own_handlers(logger)
        logger.setLevel(_level(level))
        logger.propagate = False
        for handler in handlers:
            logger.addHandler(handler)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.info(
        f"Logging configured: level={settings.log_level}, driver level={settings.driver_log_level}, "
        f"files={[h.baseFilename for h in handlers if isinstance(h, RotatingFileHandler)]}"
    )
    return package_logger
