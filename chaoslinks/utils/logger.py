# chaoslinks/utils/logger.py
# File loggers: share activity goes to share-access.log, failures to share-error.log

import logging
import os
import traceback
from logging.handlers import RotatingFileHandler

from chaoslinks import config

ACCESS_LOGGER_NAME = "chaoslinks.access"
ERROR_LOGGER_NAME = "chaoslinks.error"

MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5

os.makedirs(config.LOGS_PATH, exist_ok=True)

formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s", "%Y-%m-%d %H:%M:%S")


def setup_logger(name: str, filename: str, level: int) -> logging.Logger:
    """Attach a size-rotated file handler under LOGS_PATH, once per logger."""
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    # uvicorn --reload re-imports modules; don't stack handlers
    if not logger.handlers:
        handler = RotatingFileHandler(
            os.path.join(config.LOGS_PATH, filename),
            maxBytes=MAX_LOG_BYTES,
            backupCount=LOG_BACKUPS,
            encoding="utf-8",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


access_logger = setup_logger(ACCESS_LOGGER_NAME, "share-access.log", logging.INFO)
error_logger = setup_logger(ERROR_LOGGER_NAME, "share-error.log", logging.ERROR)


def log_info(message: str) -> None:
    access_logger.info(message)


def log_exception(e: Exception, context: str = "") -> None:
    """Record e with its traceback; context names the operation that failed."""
    tb = "".join(traceback.format_exception(type(e), e, e.__traceback__))
    error_logger.error(f"{context or 'unhandled'}: {type(e).__name__}: {e}\n{tb}")
