"""
Logging configuration for the bundlectl CLI.

``setup_logging`` runs once per process, from the click group callback
in main.py; modules only ever call ``logging.getLogger(__name__)``.

Console level precedence:
    --debug  >  -v  >  -q  >  BUNDLECTL_LOG_LEVEL  >  WARNING

BUNDLECTL_LOG_FILE adds a file handler, at BUNDLECTL_LOG_FILE_LEVEL or
the console level.

While an install runs, ``quiet_output`` mutes the loggers whose chatter
would interleave with the invocation image's output.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager

# (format, datefmt) per console verbosity
_CONSOLE_FORMATS: dict[int, tuple[str, str | None]] = {
    logging.DEBUG: ("%(asctime)s %(levelname)-5s %(name)s:%(lineno)d: %(message)s", "%H:%M:%S"),
    logging.INFO: ("%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
    logging.WARNING: ("%(message)s", None),
}
_FILE_FORMAT = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d: %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"

NOISY_LOGGERS = ("urllib3", "charset_normalizer", "docker", "http.client")


def parse_level(level: str | None) -> int:
    """Level name to number; unknown or empty names mean WARNING."""
    value = getattr(logging, (level or "").upper(), None)
    return value if isinstance(value, int) else logging.WARNING


def _console_formatter(level: int) -> logging.Formatter:
    for threshold in (logging.DEBUG, logging.INFO):
        if level <= threshold:
            fmt, datefmt = _CONSOLE_FORMATS[threshold]
            break
    else:
        fmt, datefmt = _CONSOLE_FORMATS[logging.WARNING]
    return logging.Formatter(fmt, datefmt=datefmt)


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Install the console (and optional file) handler on the root logger.

    Args:
        level: Console level name.
        log_file: Path of an extra log file, if any.
        log_file_level: Level of the log file (default: ``level``).
        quiet_third_party: Hold NOISY_LOGGERS at WARNING below DEBUG.
    """
    console_level = parse_level(level)
    handlers: list[logging.Handler] = []

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(_console_formatter(console_level))
    handlers.append(console)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(parse_level(log_file_level) if log_file_level else console_level)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
        handlers.append(file_handler)

    root = logging.getLogger()
    root.handlers[:] = handlers
    # Root passes everything any handler wants
    root.setLevel(min(h.level for h in handlers))

    if quiet_third_party and console_level > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False


@contextmanager
def quiet_output(
    names: tuple[str, ...] = NOISY_LOGGERS,
    level: int = logging.ERROR,
) -> Iterator[None]:
    """Raise the given loggers to ``level`` for the duration of the block.

    Previous levels are restored on every exit path, including errors.
    """
    loggers = [logging.getLogger(name) for name in names]
    saved = [(logger, logger.level) for logger in loggers]
    for logger in loggers:
        logger.setLevel(level)
    try:
        yield
    finally:
        for logger, previous in saved:
            logger.setLevel(previous)
