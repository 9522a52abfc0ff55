"""Logging for DeskCrew.

Records go to the ``deskcrew`` logger tree. The console handler is a
RichHandler on stderr, so log lines never interleave with the transcript on
stdout; an optional log file receives everything down to DEBUG.
"""

import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "deskcrew"

FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _console_handler(level: int, verbose: bool) -> logging.Handler:
    handler = RichHandler(
        console=Console(stderr=True),
        show_time=True,
        show_path=verbose,
        rich_tracebacks=True,
        tracebacks_show_locals=verbose,
        markup=False,
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    return handler


def _file_handler(path: Path) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def setup_logging(
    level: int = logging.WARNING,
    log_file: Optional[Path] = None,
    verbose: bool = False,
) -> logging.Logger:
    """Configure the ``deskcrew`` logger, replacing earlier handlers.

    Args:
        level: Console threshold
        log_file: File that receives every record, DEBUG included
        verbose: Lower the console threshold to DEBUG and show paths

    Returns:
        The configured root ``deskcrew`` logger
    """
    if verbose:
        level = logging.DEBUG

    logger = logging.getLogger(ROOT_LOGGER)
    logger.handlers.clear()
    logger.addHandler(_console_handler(level, verbose))
    if log_file:
        logger.addHandler(_file_handler(log_file))
    logger.setLevel(logging.DEBUG if log_file else level)
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger below ``deskcrew``, e.g. ``get_logger("ui")`` -> ``deskcrew.ui``."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}" if name else ROOT_LOGGER)


class CaptureHandler(logging.Handler):
    """Keeps every record it receives."""

    def __init__(self, records: list[logging.LogRecord]):
        super().__init__()
        self.records = records

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


class LogCapture:
    """Collect records from a logger for the duration of a ``with`` block."""

    def __init__(self, logger_name: str = ROOT_LOGGER, level: int = logging.DEBUG):
        self.logger = logging.getLogger(logger_name)
        self.level = level
        self.records: list[logging.LogRecord] = []
        self._handler = CaptureHandler(self.records)
        self._saved_level = self.logger.level

    def __enter__(self) -> "LogCapture":
        self._saved_level = self.logger.level
        self.logger.setLevel(self.level)
        self.logger.addHandler(self._handler)
        return self

    def __exit__(self, *exc_info) -> None:
        self.logger.removeHandler(self._handler)
        self.logger.setLevel(self._saved_level)

    @property
    def messages(self) -> list[str]:
        return [record.getMessage() for record in self.records]

    def has_message(self, substring: str) -> bool:
        return any(substring in message for message in self.messages)
