"""Logging setup for MACLA.

Call setup_logging once at startup. Modules import `logger` from here.
Records from the stdlib `logging` tree (uvicorn, twilio, googleapiclient) are
forwarded into loguru so everything lands in the same sinks.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Literal, Union

from loguru import logger

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL", "FATAL"]

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> <level>{level:<7}</level> "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} {level:<7} {name}:{function}:{line} | {message}"

# third-party loggers that go through stdlib logging
FORWARDED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "twilio", "googleapiclient")


class _ForwardToLoguru(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: Union[str, int] = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(depth=6, exception=record.exc_info).log(level, record.getMessage())


def _level_name(level: str) -> str:
    name = str(level).strip().upper()
    return "CRITICAL" if name == "FATAL" else name


def _rotating_sink(path: Path, level: str, keep: str) -> dict:
    return dict(
        sink=path,
        level=level,
        format=FILE_FORMAT,
        rotation="10 MB",
        retention=keep,
        compression="zip",
        encoding="utf-8",
        enqueue=False,
    )


def setup_logging(
    log_level: LogLevel,
    log_file: Union[str, Path],
    console_level: LogLevel = "INFO",
) -> None:
    main_file = Path(log_file)
    main_file.parent.mkdir(parents=True, exist_ok=True)
    error_file = main_file.with_name(main_file.stem + "_error" + main_file.suffix)

    logger.configure(handlers=[
        dict(sink=sys.stderr, level=_level_name(console_level), format=CONSOLE_FORMAT, colorize=True),
        _rotating_sink(main_file, _level_name(log_level), "30 days"),
        _rotating_sink(error_file, "ERROR", "90 days"),
    ])

    forward = _ForwardToLoguru()
    for name in FORWARDED_LOGGERS:
        std_logger = logging.getLogger(name)
        std_logger.handlers = [forward]
        std_logger.propagate = False


__all__ = ["setup_logging", "logger"]
