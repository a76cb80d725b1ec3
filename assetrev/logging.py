"""Logger hierarchy and handler setup for the assetrev CLI."""

from __future__ import annotations

import logging
from pathlib import Path

_ROOT_LOGGER = "assetrev"
_CONSOLE_FORMAT = "[assetrev] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(component: str | None = None) -> logging.Logger:
    """Logger for one component, e.g. ``get_logger("locator")`` -> ``assetrev.locator``."""
    if not component:
        return logging.getLogger(_ROOT_LOGGER)
    return logging.getLogger(f"{_ROOT_LOGGER}.{component}")


def _attach(logger: logging.Logger, handler: logging.Handler, fmt: str) -> None:
    handler.setLevel(logger.level)
    handler.setFormatter(logging.Formatter(fmt))
    logger.addHandler(handler)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Send assetrev records to stderr and, when ``log_file`` is given, to that file.

    Calling it again replaces the handlers installed by the previous call.
    """
    logger = get_logger()
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    _attach(logger, logging.StreamHandler(), _CONSOLE_FORMAT)
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        _attach(logger, logging.FileHandler(log_file, encoding="utf-8"), _FILE_FORMAT)
    return logger


__all__ = ["configure_logging", "get_logger"]
