"""Logging for the mod engine and the command line.

Every module logs through a child of the ``ctp_mod_manager`` logger.
The log file lives next to configuration.xml and rotates, since one
apply run against a large installation logs a line per changed group.
With --debug the same records are echoed to stderr, keeping stdout for
command output.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

ROOT_LOGGER_NAME = "ctp_mod_manager"

FILE_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"
CONSOLE_FORMAT = "[%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

MAX_LOG_BYTES = 2 * 1024 * 1024
LOG_BACKUP_COUNT = 3


def _file_handler(log_file: Path) -> logging.Handler:
    handler = RotatingFileHandler(
        log_file,
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    return handler


def setup_logging(debug: bool = False, log_dir: Optional[Path] = None) -> logging.Logger:
    """Configure the ctp_mod_manager logger for one process.

    Calling it again replaces the previous handlers, so each CLI
    invocation writes to the log of the config directory it was given.

    Args:
        debug: Also log to stderr
        log_dir: Directory for the log file, defaults to AppPaths.APP_DATA_DIR

    Returns:
        The ctp_mod_manager logger
    """
    from .config.paths import AppPaths

    log_dir = AppPaths.ensure_dir(Path(log_dir) if log_dir else AppPaths.APP_DATA_DIR)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.addHandler(_file_handler(log_dir / AppPaths.LOG_FILE_NAME))
    if debug:
        logger.addHandler(_console_handler())

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get the child logger for an engine module, e.g. get_logger("ledger")."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
