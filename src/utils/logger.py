# src/utils/logger.py
import logging
import sys
from typing import Iterable, Optional

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s]: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Set by configure_root_logging when LOG_FILE is in use
_file_handler: Optional[logging.FileHandler] = None


def setup_logger(
    name: str,
    level: int = logging.INFO,
    format_string: Optional[str] = None,
) -> logging.Logger:
    """
    Return a named logger writing to stdout.

    Handlers are attached once per name, so modules can call this at import
    time without duplicating output.
    """
    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    logger.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(format_string or LOG_FORMAT, datefmt=DATE_FORMAT)
    )
    logger.addHandler(handler)

    # Keep records out of the root logger unless a file handler is configured
    logger.propagate = _root_writes_to_file()

    return logger


def _root_writes_to_file() -> bool:
    return _file_handler is not None and _file_handler in logging.getLogger().handlers


def configure_root_logging(
    log_file: Optional[str] = None,
    quiet_loggers: Iterable[str] = (),
) -> None:
    """Silence noisy third-party loggers and optionally mirror logs to a file."""
    global _file_handler

    for name in quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)

    if not log_file:
        return

    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    root_logger = logging.getLogger()
    root_logger.addHandler(file_handler)
    _file_handler = file_handler

    # Named loggers opt back into propagation so the file sees them too
    for existing in logging.root.manager.loggerDict.values():
        if isinstance(existing, logging.Logger) and existing.handlers:
            existing.propagate = True
