"""
Interceptors for capturing standard library logs.
"""

from __future__ import annotations

import logging

from .core import Logger
from .levels import Level


class RedirectStdLibHandler(logging.Handler):
    """
    Redirect standard library logging records to a cloudlogging Logger.
    This lets third-party libraries using ``logging`` end up in the same
    backends as application logs.

    FATAL records are written at ERROR so a library calling
    ``logging.critical`` never terminates the process.
    """

    def __init__(self, logger: Logger, level: int = logging.NOTSET):
        super().__init__(level)
        self._logger = logger

    def emit(self, record: logging.LogRecord) -> None:
        try:
            # Format message using stdlib's formatting (handles %s args)
            msg = self.format(record)
            level = min(Level.parse(record.levelno), Level.ERROR)
            self._logger.log(level, msg, logger=self._simplify_logger_name(record.name))
        except Exception:
            self.handleError(record)

    @staticmethod
    def _simplify_logger_name(name: str) -> str:
        """
        Simplify a logger name for display.

        Rules:
        - "" -> "stdlib"
        - "uvicorn.access" -> "uvicorn.access"
        - Other -> keep last 2 parts
        """
        if not name:
            return "stdlib"

        parts = name.split(".")
        if len(parts) <= 2:
            return name
        return ".".join(parts[-2:])


def intercept_stdlib(logger: Logger, level: int = logging.INFO) -> RedirectStdLibHandler:
    """Replace the root logger's handlers with one redirecting to ``logger``."""
    handler = RedirectStdLibHandler(logger)
    root_logger = logging.getLogger()
    root_logger.handlers = []
    root_logger.setLevel(level)
    root_logger.addHandler(handler)
    return handler
