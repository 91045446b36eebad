"""
Text rendering for the local backend.
"""

from __future__ import annotations

from datetime import datetime, timezone

from structlog.typing import EventDict, WrappedLogger

# =============================================================================
# ANSI Colors
# =============================================================================

COLORS = {
    "reset": "\033[0m",
    "dim": "\033[2m",
    "debug": "\033[36m",
    "info": "\033[32m",
    "warning": "\033[33m",
    "error": "\033[31m",
    "fatal": "\033[1;31m",
    "timestamp": "\033[90m",
    "key": "\033[34m",
}


def colorize(text: str, color: str) -> str:
    """Apply ANSI color to text."""
    return f"{COLORS.get(color, '')}{text}{COLORS['reset']}"


# =============================================================================
# Text Renderer (Aligned Columns)
# =============================================================================


class TextRenderer:
    """structlog renderer producing ``timestamp | LEVEL | message key=value ...`` lines.

    Args:
        use_color: Wrap columns in ANSI colors.
        timestamp_format: strftime format for the timestamp column (local time).
        level_width: Width of the right-aligned level column.
        separator: Column separator.
    """

    EXCLUDED_KEYS = frozenset({"level", "message", "event", "timestamp"})

    def __init__(
        self,
        *,
        use_color: bool = False,
        timestamp_format: str = "%Y-%m-%d %H:%M:%S",
        level_width: int = 7,
        separator: str = " | ",
    ):
        self._use_color = use_color
        self._timestamp_format = timestamp_format
        self._level_width = level_width
        self._separator = separator

    def __call__(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> str:
        level = str(event_dict.get("level", method_name)).lower()
        message = str(event_dict.get("message", event_dict.get("event", "")))

        extras = [
            f"{self._color(k, 'key')}={self._color(str(v), 'dim')}"
            for k, v in event_dict.items()
            if k not in self.EXCLUDED_KEYS
        ]
        if extras:
            message = f"{message} " + " ".join(extras)

        return self._separator.join(
            [
                self._color(self._format_timestamp(event_dict.get("timestamp")), "timestamp"),
                self._color(f"{level.upper():>{self._level_width}}", level),
                message,
            ]
        )

    def _color(self, text: str, color: str) -> str:
        if not self._use_color:
            return text
        return colorize(text, color)

    def _format_timestamp(self, raw_timestamp: str | None) -> str:
        if raw_timestamp:
            try:
                dt = datetime.fromisoformat(raw_timestamp.replace("Z", "+00:00"))
                if dt.tzinfo is None:
                    dt = dt.replace(tzinfo=timezone.utc)
                return dt.astimezone().strftime(self._timestamp_format)
            except (ValueError, TypeError):
                pass
        return datetime.now().strftime(self._timestamp_format)
