"""Central logging configuration for ArtistMusic.

This module configures a console logger by default and also writes logs to a
file in the user's data directory, or wherever ``log_file`` /
``ARTISTMUSIC_LOG_FILE`` points for the session.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from . import config


_LOGGER_NAME_PREFIX = "artistmusic"
_DEFAULT_LEVEL = logging.INFO


def _get_log_file_path(log_file: str | os.PathLike | None = None) -> Path:
    """Return the path of the ArtistMusic log file.

    Resolution order: the ``log_file`` argument, ``ARTISTMUSIC_LOG_FILE``,
    then ``artistmusic.log`` in the data directory used by ``config``. If
    that directory cannot be created we fall back to a log file in the
    user's home directory.
    """

    explicit = log_file or os.getenv("ARTISTMUSIC_LOG_FILE")
    if explicit:
        return Path(os.path.expanduser(str(explicit)))
    try:
        return config.data_dir() / "artistmusic.log"
    except OSError:
        return Path.home() / ".artistmusic.log"


def configure_logging(
    level: int | None = None,
    log_to_file: bool = True,
    log_file: str | os.PathLike | None = None,
) -> Path | None:
    """Configure the root ArtistMusic logger.

    This function is idempotent and safe to call multiple times. It will not
    add duplicate handlers if called more than once; a later call only
    adjusts the level.

    Returns:
        The log file in use, or None when logging to the console only
    """

    log_level_name = os.getenv("ARTISTMUSIC_LOG_LEVEL")
    resolved_level: int
    if level is None:
        if log_level_name:
            resolved_level = int(getattr(logging, log_level_name.upper(), _DEFAULT_LEVEL))
        else:
            resolved_level = _DEFAULT_LEVEL
    else:
        resolved_level = int(level)

    logger = logging.getLogger(_LOGGER_NAME_PREFIX)
    if logger.handlers:
        # Already configured.
        logger.setLevel(resolved_level)
        return _current_log_file(logger)

    logger.setLevel(resolved_level)

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Console handler (stderr)
    console_handler = logging.StreamHandler()
    console_handler.setLevel(resolved_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if not log_to_file:
        return None

    path = _get_log_file_path(log_file)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setLevel(resolved_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    except OSError:
        # Console-only when the data directory is not writable.
        logger.warning("File logging unavailable, logging to console only")
        return None
    return path


def _current_log_file(logger: logging.Logger) -> Path | None:
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler):
            return Path(handler.baseFilename)
    return None


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a child logger for the given module name.

    Example::

        from .logging_config import get_logger
        logger = get_logger(__name__)
    """

    if name is None:
        return logging.getLogger(_LOGGER_NAME_PREFIX)
    if name.startswith(_LOGGER_NAME_PREFIX + ".") or name == _LOGGER_NAME_PREFIX:
        return logging.getLogger(name)
    return logging.getLogger(f"{_LOGGER_NAME_PREFIX}.{name}")
