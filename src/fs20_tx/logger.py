#!/usr/bin/env python3
"""FS20 RF - a FS20 protocol gateway for CUL/culfw transceivers.

This module wraps logger to provide a log of the frames received from the CUL.

Each line of a frame log is: <timestamp> <frame> [# <comment>], the same format that
is replayed by the FileTransport (the client's 'parse' command).
"""

from __future__ import annotations

import logging
import shutil
import sys
from datetime import datetime as dt
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler

import colorlog

from .version import VERSION

_LOGGER = logging.getLogger(__name__)

DEFAULT_FMT = "%(asctime)s.%(msecs)03d %(message)s"
DEFAULT_DATEFMT = "%H:%M:%S"

CONSOLE_COLS = int(shutil.get_terminal_size(fallback=(int(2e3), 24)).columns - 1)

_CONSOLE_FMT = f"%(asctime)s %(message).{CONSOLE_COLS - 27}s%(comment)s"
_FILE_FMT = "%(asctime)s %(message)s%(comment)s"

_LOG_COLOURS = {
    "DEBUG": "white",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "bold_red",
    "CRITICAL": "bold_red",
}


class _FrameFormatterMixin:
    """Timestamps are ISO 8601 (to the microsecond), and comments are optional."""

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        return dt.fromtimestamp(record.created).isoformat(timespec="microseconds")

    def format(self, record: logging.LogRecord) -> str:
        comment = getattr(record, "frame_comment", None)
        if comment is None:  # a record may be formatted more than once
            comment = record.frame_comment = getattr(record, "comment", "")
        record.comment = f"  # {comment}" if comment else ""
        return super().format(record)  # type: ignore[misc, no-any-return]


class _FileFormatter(_FrameFormatterMixin, logging.Formatter):
    pass


class _ConsoleFormatter(_FrameFormatterMixin, colorlog.ColoredFormatter):  # type: ignore[misc]
    pass


class _LevelFilter(logging.Filter):
    """Pass only records with a level in the range: min_level <= level < max_level."""

    def __init__(self, min_level: int, max_level: int = logging.CRITICAL + 1) -> None:
        super().__init__()
        self._min_level = min_level
        self._max_level = max_level

    def filter(self, record: logging.LogRecord) -> bool:
        return self._min_level <= record.levelno < self._max_level


FRAME_LOGGER = logging.getLogger(f"{__package__}.frames")


def _file_handler(
    file_name: str, rotate_backups: int, rotate_bytes: int | None
) -> logging.Handler:
    """Return a handler that rotates by size, or at midnight, or not at all."""

    if rotate_bytes:
        return RotatingFileHandler(
            file_name, maxBytes=rotate_bytes, backupCount=rotate_backups or 2
        )
    if rotate_backups:
        return TimedRotatingFileHandler(
            file_name, when="midnight", backupCount=rotate_backups
        )
    return logging.FileHandler(file_name)


def set_frame_logging(
    logger: logging.Logger = FRAME_LOGGER,
    cc_console: bool = False,
    file_name: str | None = None,
    rotate_backups: int = 0,
    rotate_bytes: int | None = None,
) -> None:
    """Send the frames to a log file, and/or the console (in colour).

    Parameters:
    - rotate_backups: keep this many old files, rotating at midnight unless:
    - rotate_bytes:   rotate when the file is larger than this
    """

    logger.propagate = False  # the frame log is separate from any app/debug logging

    for handler in list(logger.handlers):  # may be called more than once
        logger.removeHandler(handler)
        handler.close()

    if not file_name and not cc_console:
        logger.setLevel(logging.CRITICAL)
        return

    logger.setLevel(logging.DEBUG)

    if file_name:
        handler = _file_handler(file_name, rotate_backups, rotate_bytes)
        handler.setFormatter(_FileFormatter(fmt=_FILE_FMT))
        handler.addFilter(_LevelFilter(logging.INFO, logging.ERROR))
        logger.addHandler(handler)

    if cc_console:
        formatter = _ConsoleFormatter(
            fmt=f"%(log_color)s{_CONSOLE_FMT}", reset=True, log_colors=_LOG_COLOURS
        )
        for stream, level_filter in (
            (sys.stdout, _LevelFilter(logging.DEBUG, logging.WARNING)),
            (sys.stderr, _LevelFilter(logging.WARNING)),
        ):
            handler = logging.StreamHandler(stream=stream)
            handler.setFormatter(formatter)
            handler.addFilter(level_filter)
            logger.addHandler(handler)

    logger.warning("", extra={"comment": f"fs20_tx {VERSION}"})  # the first line
