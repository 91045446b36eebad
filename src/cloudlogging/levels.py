"""
Log levels shared by the Logger Core and all backends.
"""

from __future__ import annotations

import logging
from enum import IntEnum


class Level(IntEnum):
    """Severity threshold and per-call severity.

    Values line up with the stdlib ``logging`` numbers so records can be
    bridged in both directions without a lookup.
    """

    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    FATAL = logging.CRITICAL

    # Alias: trace logs are debug logs
    TRACE = logging.DEBUG

    @classmethod
    def parse(cls, value: Level | int | str) -> Level:
        """Coerce a level name, stdlib level number or Level into a Level.

        Numbers between two levels round down, so ``logging.WARNING + 5``
        becomes WARNING. Anything below DEBUG becomes DEBUG.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return _NAMES[value.strip().lower()]
            except KeyError:
                raise ValueError(f"Invalid log level: {value!r}. Must be one of {sorted(_NAMES)}") from None
        if isinstance(value, int) and not isinstance(value, bool):
            for level in sorted(cls, reverse=True):
                if value >= level:
                    return level
            return cls.DEBUG
        raise TypeError(f"Cannot interpret {value!r} as a log level")


_NAMES: dict[str, Level] = {
    "trace": Level.DEBUG,
    "debug": Level.DEBUG,
    "info": Level.INFO,
    "warn": Level.WARNING,
    "warning": Level.WARNING,
    "error": Level.ERROR,
    "fatal": Level.FATAL,
    "critical": Level.FATAL,
}
