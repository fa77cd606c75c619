#!/usr/bin/env python3
"""FS20 RF - Test the frame logger."""

import logging
import logging.handlers
from collections.abc import Generator
from datetime import datetime as dt
from pathlib import Path

import pytest

from fs20_tx.logger import set_frame_logging
from fs20_tx.transport import _split_log_line
from fs20_tx.version import VERSION


@pytest.fixture()
def frame_logger() -> Generator[logging.Logger, None, None]:
    logging.disable(logging.NOTSET)
    logger = logging.getLogger("fs20_tx.test_frames")

    try:
        yield logger
    finally:
        set_frame_logging(logger)  # closes the handlers
        logging.disable(logging.WARNING)


def test_frame_log_file(frame_logger: logging.Logger, tmp_path: Path) -> None:
    file_name = tmp_path / "frames.log"

    set_frame_logging(frame_logger, file_name=str(file_name))
    frame_logger.info("F12340111")
    frame_logger.info("F12340100", extra={"comment": "Lamp1"})
    frame_logger.debug("F12340113")  # not logged
    frame_logger.error("Not a frame")  # not logged

    lines = file_name.read_text().splitlines()

    assert len(lines) == 3  # the first line has the version
    assert lines[0].endswith(f"# fs20_tx {VERSION}")
    assert lines[1].endswith(" F12340111")
    assert lines[2].endswith(" F12340100  # Lamp1")

    # the frame log can be replayed, with its timestamps
    dtm_str, frame = _split_log_line(lines[2])
    assert frame == "F12340100"
    assert dt.fromisoformat(dtm_str).microsecond is not None


def test_frame_log_rotating(frame_logger: logging.Logger, tmp_path: Path) -> None:
    set_frame_logging(
        frame_logger, file_name=str(tmp_path / "frames.log"), rotate_bytes=1_000
    )
    assert isinstance(frame_logger.handlers[0], logging.handlers.RotatingFileHandler)

    set_frame_logging(
        frame_logger, file_name=str(tmp_path / "frames.log"), rotate_backups=7
    )
    assert len(frame_logger.handlers) == 1  # the previous handler has been removed
    assert isinstance(
        frame_logger.handlers[0], logging.handlers.TimedRotatingFileHandler
    )


def test_frame_log_disabled(frame_logger: logging.Logger) -> None:
    set_frame_logging(frame_logger)

    assert frame_logger.handlers == []
    assert not frame_logger.isEnabledFor(logging.INFO)
    assert frame_logger.propagate is False


def test_frame_log_console(
    frame_logger: logging.Logger, capsys: pytest.CaptureFixture[str]
) -> None:
    set_frame_logging(frame_logger, cc_console=True)
    frame_logger.info("F12340111")

    out, err = capsys.readouterr()
    assert "F12340111" in out
    assert "fs20_tx" in err  # the first line is a warning
