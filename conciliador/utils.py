"""Helpers shared by the conciliation services: durations, parsing and logging."""

from __future__ import annotations

import logging
import re
import sys
from datetime import timedelta

LOGGER_NAME = "conciliador"

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_DECIMAL = re.compile(r"[+-]?[0-9]+")

_PREFIXES = {
    logging.DEBUG: "\x1b[36mDEBUG: \x1b[0m",
    logging.INFO: "\x1b[34mINFO: \x1b[0m",
    logging.WARNING: "\x1b[33mADVERTENCIA: \x1b[0m",
    logging.ERROR: "\x1b[31mERROR: \x1b[0m",
}

_debug_enabled = True


class _ColorFormatter(logging.Formatter):
    """Prefixes each record with a coloured level tag, then date, file and line."""

    def __init__(self) -> None:
        super().__init__(
            "%(asctime)s %(filename)s:%(lineno)d: %(message)s",
            datefmt="%Y/%m/%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno > logging.ERROR:
            prefix = _PREFIXES[logging.ERROR]
        else:
            prefix = _PREFIXES.get(record.levelno, "")
        return prefix + super().format(record)


class _StdoutHandler(logging.StreamHandler):
    """Writes to whatever ``sys.stdout`` is at the time of each record."""

    def emit(self, record: logging.LogRecord) -> None:
        self.stream = sys.stdout
        super().emit(record)


def _configure_logger() -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    if not any(isinstance(handler, _StdoutHandler) for handler in logger.handlers):
        handler = _StdoutHandler()
        handler.setFormatter(_ColorFormatter())
        logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    return logger


log = _configure_logger()


def _trunc_div(a: int, b: int) -> int:
    quotient = abs(a) // b
    return quotient if a >= 0 else -quotient


def _trunc_mod(a: int, b: int) -> int:
    return a - b * _trunc_div(a, b)


def format_duration(duration: timedelta | float) -> str:
    """Render a duration as ``XmYs``, ``Xm``, ``Ys`` or ``Zms``.

    A number is taken as seconds.
    """
    if not isinstance(duration, timedelta):
        duration = timedelta(seconds=duration)
    micros = duration // timedelta(microseconds=1)
    minutes = _trunc_div(micros, 60_000_000)
    seconds = _trunc_mod(_trunc_div(micros, 1_000_000), 60)
    milliseconds = _trunc_mod(_trunc_div(micros, 1_000), 1_000)

    if minutes > 0 and seconds > 0:
        return f"{minutes}m{seconds}s"
    if minutes > 0:
        return f"{minutes}m"
    if seconds > 0:
        return f"{seconds}s"
    return f"{milliseconds}ms"


def string_to_int(text: str) -> int:
    """Parse a signed decimal 64-bit integer, returning 0 when it is not one."""
    if not _DECIMAL.fullmatch(text):
        return 0
    value = int(text)
    if not _INT64_MIN <= value <= _INT64_MAX:
        return 0
    return value


def is_empty_string(text: str) -> bool:
    """True when the text holds nothing but whitespace."""
    return text.strip() == ""


def debug(*args: object) -> None:
    """Log the arguments as one bracketed, space separated line when debugging is on."""
    if _debug_enabled:
        log.debug("[%s]", " ".join(str(arg) for arg in args), stacklevel=2)


def set_debug(enabled: bool) -> None:
    """Switch the output of :func:`debug` on or off."""
    global _debug_enabled
    _debug_enabled = bool(enabled)