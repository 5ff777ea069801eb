"""
Logging configuration.

Everything logs under the "gatekeeper" hierarchy. Privacy decisions
(mode changes, refused and blocked requests) go to "gatekeeper.privacy",
which can additionally be written to its own audit file.
"""

import logging
import sys
from pathlib import Path

ROOT_LOGGER = "gatekeeper"
PRIVACY_LOGGER = f"{ROOT_LOGGER}.privacy"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Marks handlers installed here so repeated setup replaces instead of stacking
_OWNED = "_gatekeeper_owned"


def _own(handler: logging.Handler, formatter: logging.Formatter) -> logging.Handler:
    handler.setFormatter(formatter)
    setattr(handler, _OWNED, True)
    return handler


def _file_handler(path: Path, formatter: logging.Formatter) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    return _own(logging.FileHandler(path, encoding="utf-8"), formatter)


def reset_logging() -> None:
    """Detach and close handlers added by setup_logging; leave foreign ones alone."""
    for name in (ROOT_LOGGER, PRIVACY_LOGGER):
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            if getattr(handler, _OWNED, False):
                logger.removeHandler(handler)
                handler.close()
        logger.setLevel(logging.NOTSET)


def setup_logging(
    level: int = logging.INFO,
    log_file: Path | None = None,
    audit_file: Path | None = None,
) -> logging.Logger:
    """Configure the package logger. Safe to call more than once.

    Console output goes to stderr so command output on stdout stays clean.
    audit_file receives privacy records at INFO regardless of level.
    """
    reset_logging()
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    handlers = [_own(logging.StreamHandler(sys.stderr), formatter)]
    if log_file:
        handlers.append(_file_handler(log_file, formatter))
    # Privacy records may run below the package level; keep them off these
    for handler in handlers:
        handler.setLevel(level)
        logger.addHandler(handler)

    if audit_file:
        privacy = logging.getLogger(PRIVACY_LOGGER)
        privacy.setLevel(min(level, logging.INFO))
        handler = _file_handler(audit_file, formatter)
        handler.setLevel(logging.INFO)
        privacy.addHandler(handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a child logger."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def get_privacy_logger() -> logging.Logger:
    return logging.getLogger(PRIVACY_LOGGER)
