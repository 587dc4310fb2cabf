"""Structured logging for the face reconstruction pipeline.

Every module logs through ``get_logger(__name__)``, which places it under
the ``face_reconstruct`` hierarchy. ``setup_logger`` attaches console and
file handlers to a named logger; the CLI configures the package root once.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

PACKAGE_LOGGER = 'face_reconstruct'


class ColoredFormatter(logging.Formatter):
    """Colorize the level name of console records with ANSI escape codes."""

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        original_levelname = record.levelname

        if record.levelname in self.COLORS:
            record.levelname = (
                f"{self.COLORS[record.levelname]}"
                f"{record.levelname}"
                f"{self.RESET}"
            )

        formatted = super().format(record)

        # Restore original levelname for other handlers
        record.levelname = original_levelname

        return formatted


def setup_logger(
    name: str = PACKAGE_LOGGER,
    verbose: bool = True,
    log_file: Optional[Path] = None,
    log_level: str = "INFO"
) -> logging.Logger:
    """
    Configure a logger with optional console and file handlers.

    The file handler always logs at DEBUG level, while the console handler
    respects ``log_level``. Calling this again with the same name replaces
    the logger's handlers.

    Args:
        name: Logger name ('face_reconstruct' or a session name)
        verbose: If True, enable console output
        log_file: Optional file path for persistent logs
        log_level: Console level: "DEBUG", "INFO", "WARNING", or "ERROR"

    Returns:
        Configured logger instance

    Example:
        >>> logger = setup_logger(
        ...     name='export_session',
        ...     log_file=Path('model/session.log'),
        ...     log_level='INFO'
        ... )
        >>> logger.info("Starting export")
        INFO: Starting export
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)

    # Clear existing handlers to avoid duplicates
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.propagate = False

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
        logger.addHandler(fh)

    if verbose:
        ch = logging.StreamHandler(sys.stdout)
        ch.setLevel(getattr(logging, log_level.upper()))
        ch.setFormatter(ColoredFormatter('%(levelname)s: %(message)s'))
        logger.addHandler(ch)

    return logger


def get_logger(name: str = PACKAGE_LOGGER) -> logging.Logger:
    """
    Get a logger by name.

    Module loggers are created with ``get_logger(__name__)`` and inherit the
    handlers configured on the package logger by ``setup_logger()``.

    Args:
        name: Logger name to retrieve

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
