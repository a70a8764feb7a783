# wishbridge/logger.py
import logging
import os
import sys
from logging.handlers import RotatingFileHandler

LOGGER_NAME = "wishbridge"

# Silent unless the host application configures logging or opts in below.
logging.getLogger(LOGGER_NAME).addHandler(logging.NullHandler())

_configured = False


def setup_logging(force: bool = False):
    """
    Opt-in handlers for the wishbridge logger only, read from env:
    LOG_LEVEL, LOG_TO_STDOUT, LOG_TO_FILE, LOG_FILE, LOG_MAX_BYTES, LOG_BACKUPS.
    The root logger is never touched.
    """
    global _configured
    if _configured and not force:
        return

    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    log_to_file = os.getenv("LOG_TO_FILE", "false").lower() == "true"
    log_file = os.getenv("LOG_FILE", "wishbridge.log")
    log_max_bytes = int(os.getenv("LOG_MAX_BYTES", str(2 * 1024 * 1024)))
    log_backups = int(os.getenv("LOG_BACKUPS", "3"))
    log_to_stdout = os.getenv("LOG_TO_STDOUT", "true").lower() == "true"

    pkg_logger = logging.getLogger(LOGGER_NAME)
    level = getattr(logging, log_level, logging.INFO)
    pkg_logger.setLevel(level)

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s"
    )

    for handler in list(pkg_logger.handlers):
        if not isinstance(handler, logging.NullHandler):
            pkg_logger.removeHandler(handler)
            handler.close()

    if log_to_stdout:
        ch = logging.StreamHandler(sys.stdout)
        ch.setLevel(level)
        ch.setFormatter(formatter)
        pkg_logger.addHandler(ch)

    if log_to_file:
        try:
            log_dir = os.path.dirname(log_file)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)
            fh = RotatingFileHandler(
                log_file,
                maxBytes=log_max_bytes,
                backupCount=log_backups,
            )
            fh.setLevel(level)
            fh.setFormatter(formatter)
            pkg_logger.addHandler(fh)
        except OSError as e:
            pkg_logger.warning("Failed to initialize file logging: %s", e)

    _configured = True


def get_logger(name: str | None = None) -> logging.Logger:
    if not name or not (name == LOGGER_NAME or name.startswith(LOGGER_NAME + ".")):
        name = f"{LOGGER_NAME}.{name}" if name else LOGGER_NAME
    return logging.getLogger(name)
