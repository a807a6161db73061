"""Logging configuration for gitbridge.

Library modules only create ``logging.getLogger(__name__)`` loggers under the
``gitbridge`` root. Entry points such as the CLI call setup_logging() to attach
handlers; every handler it installs masks credentials embedded in remote URLs.
"""

import logging
import re
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "gitbridge"

CONSOLE_FORMAT = "%(message)s"
CONSOLE_DATE_FORMAT = "[%X]"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_URL_CREDENTIALS_RE = re.compile(r"(?P<scheme>[a-z][a-z0-9+.-]*://)[^/\s@]+@", re.IGNORECASE)


def redact(text: str) -> str:
    """Mask userinfo embedded in URLs, e.g. ``https://me:pw@host``."""
    return _URL_CREDENTIALS_RE.sub(lambda m: f"{m.group('scheme')}***@", text)


class RedactingFilter(logging.Filter):
    """Rewrites each record's message with URL credentials masked."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = redact(message)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


def _console_handler(level: int, verbose: bool) -> logging.Handler:
    handler = RichHandler(
        console=Console(stderr=True),
        show_time=True,
        show_path=verbose,
        rich_tracebacks=True,
        # git output is full of brackets, never read it as markup
        markup=False,
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=CONSOLE_DATE_FORMAT))
    return handler


def _file_handler(log_file: Path) -> logging.Handler:
    log_file = Path(log_file).expanduser()
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATE_FORMAT))
    return handler


def setup_logging(
    level: int | str = logging.INFO,
    log_file: Optional[Path] = None,
    verbose: bool = False,
) -> logging.Logger:
    """Attach console (and optionally file) handlers to the gitbridge logger.

    Args:
        level: Console level, as a number or a name such as ``"warning"``.
        log_file: File that receives every record down to DEBUG.
        verbose: Force DEBUG and show source locations on the console.

    Returns:
        The configured ``gitbridge`` logger.
    """
    if verbose:
        level = logging.DEBUG
    elif isinstance(level, str):
        level = logging.getLevelName(level.upper())

    logger = logging.getLogger(ROOT_LOGGER)
    logger.handlers.clear()

    handlers = [_console_handler(level, verbose)]
    if log_file:
        handlers.append(_file_handler(log_file))
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(level)

    for handler in handlers:
        handler.addFilter(RedactingFilter())
        logger.addHandler(handler)
    return logger


def disable_logging() -> None:
    """Drop all gitbridge handlers; records go nowhere."""
    logger = logging.getLogger(ROOT_LOGGER)
    logger.handlers.clear()
    logger.addHandler(logging.NullHandler())


class LogCapture(logging.Handler):
    """Collects gitbridge log records while used as a context manager.

    The captured logger is lowered to ``level`` for the duration so DEBUG
    records are seen even when the host configured a higher level.
    """

    def __init__(self, logger_name: str = ROOT_LOGGER, level: int = logging.DEBUG):
        super().__init__(level)
        self.logger_name = logger_name
        self.records: list[logging.LogRecord] = []
        self._previous_level = logging.NOTSET

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)

    def __enter__(self) -> "LogCapture":
        logger = logging.getLogger(self.logger_name)
        self._previous_level = logger.level
        logger.setLevel(self.level)
        logger.addHandler(self)
        return self

    def __exit__(self, *exc_info) -> None:
        logger = logging.getLogger(self.logger_name)
        logger.removeHandler(self)
        logger.setLevel(self._previous_level)

    @property
    def messages(self) -> list[str]:
        return [record.getMessage() for record in self.records]

    def has_message(self, substring: str) -> bool:
        return any(substring in message for message in self.messages)
