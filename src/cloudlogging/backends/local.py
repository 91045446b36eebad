"""
Local backend: synchronous console/file output through a structlog pipeline.
"""

from __future__ import annotations

import copy
import sys
import threading
from collections.abc import Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Any, Literal

import orjson
import structlog
from structlog.typing import EventDict, WrappedLogger

from ..errors import ConfigurationError
from ..fields import merge
from ..formatters import TextRenderer
from ..levels import Level
from .base import Backend

Encoding = Literal["text", "json"]

STDOUT = "stdout"
STDERR = "stderr"

# Level -> structlog method name; the method name is also the rendered "level" value
LEVEL_TO_METHOD: Mapping[Level, str] = {
    Level.DEBUG: "debug",
    Level.INFO: "info",
    Level.WARNING: "warning",
    Level.ERROR: "error",
    Level.FATAL: "fatal",
}
METHOD_TO_LEVEL: Mapping[str, Level] = {v: k for k, v in LEVEL_TO_METHOD.items()}

STANDARD_KEYS = ("timestamp", "level", "message")

# User fields travel through structlog under this key, never as keyword arguments
FIELDS_KEY = "_cloudlogging_fields"
RESERVED_KEYS = frozenset({*STANDARD_KEYS, "event"})
RENAMED_PREFIX = "fields."


def orjson_dumps(v: Any, *, default: Any = None) -> str:
    """Fast JSON serialization using orjson."""
    return orjson.dumps(v, default=default, option=orjson.OPT_UTC_Z | orjson.OPT_NAIVE_UTC).decode()


# =============================================================================
# Atomic Level
# =============================================================================


class AtomicLevel:
    """Level threshold shared by every handle over one local sink.

    Writers take a lock; readers do a single attribute load, so emitters
    running concurrently with ``set`` see either the old or the new level.
    """

    def __init__(self, level: Level | int | str = Level.DEBUG):
        self._level = Level.parse(level)
        self._lock = threading.Lock()

    @property
    def level(self) -> Level:
        return self._level

    def set(self, level: Level | int | str) -> None:
        parsed = Level.parse(level)
        with self._lock:
            self._level = parsed

    def enabled(self, level: Level) -> bool:
        return level >= self._level


# =============================================================================
# Structlog Processors
# =============================================================================


def add_timestamp(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add ISO 8601 timestamp to log event."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def rename_event_key(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Rename 'event' to 'message' and move the standard keys to the front."""
    if "event" in event_dict:
        event_dict["message"] = event_dict.pop("event")
    ordered = {k: event_dict.pop(k) for k in STANDARD_KEYS if k in event_dict}
    ordered.update(event_dict)
    return ordered


def flatten_fields(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Merge user fields into the event; keys clashing with reserved keys get a ``fields.`` prefix."""
    fields = event_dict.pop(FIELDS_KEY, None) or {}
    for key, value in fields.items():
        event_dict[f"{RENAMED_PREFIX}{key}" if key in RESERVED_KEYS else key] = value
    return event_dict


def make_level_filter(atomic_level: AtomicLevel):
    """Build a processor dropping events below the sink's current level."""

    def filter_by_level(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        if not atomic_level.enabled(METHOD_TO_LEVEL.get(method_name, Level.FATAL)):
            raise structlog.DropEvent
        return event_dict

    return filter_by_level


# =============================================================================
# Output
# =============================================================================


def open_output(path: str) -> tuple[IO[str], bool]:
    """Resolve an output path to a stream; returns (stream, owned)."""
    if path == STDOUT:
        return sys.stdout, False
    if path == STDERR:
        return sys.stderr, False
    try:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        return open(target, "a", encoding="utf-8"), True
    except OSError as exc:
        raise ConfigurationError(f"failed to open log output {path!r}: {exc}") from exc


class _LocalSink:
    """Streams, level gate and processor chain shared across bound handles."""

    def __init__(self, level: Level, encoding: Encoding, output_path: str, error_output_path: str):
        self.stream, owns_stream = open_output(output_path)
        try:
            self.error_stream, owns_error_stream = open_output(error_output_path)
        except ConfigurationError:
            if owns_stream:
                self.stream.close()
            raise
        self._owned = [s for s, owned in ((self.stream, owns_stream), (self.error_stream, owns_error_stream)) if owned]
        self.level = AtomicLevel(level)

        if encoding == "json":
            renderer: Any = structlog.processors.JSONRenderer(serializer=orjson_dumps)
        else:
            use_color = bool(getattr(self.stream, "isatty", lambda: False)())
            renderer = TextRenderer(use_color=use_color)

        self.logger = structlog.wrap_logger(
            structlog.WriteLogger(file=self.stream),
            processors=[
                make_level_filter(self.level),
                structlog.stdlib.add_log_level,
                add_timestamp,
                rename_event_key,
                flatten_fields,
                renderer,
            ],
            wrapper_class=structlog.BoundLogger,
            context_class=dict,
        ).bind()

    def report(self, text: str) -> None:
        self.error_stream.write(text + "\n")
        self.error_stream.flush()

    def flush(self) -> None:
        self.stream.flush()
        self.error_stream.flush()

    def close(self) -> None:
        self.flush()
        for stream in self._owned:
            stream.close()
        self._owned.clear()


# =============================================================================
# Backend
# =============================================================================


class LocalBackend(Backend):
    """Synchronous local backend writing text or JSON lines.

    Args:
        level: Initial threshold of the shared level gate.
        encoding: ``"text"`` (aligned human-readable) or ``"json"`` (one object per line).
        output_path: ``"stdout"``, ``"stderr"`` or a file path for log lines.
        error_output_path: Where the backend reports its own failures.

    Raises:
        ConfigurationError: If an output path cannot be opened.
    """

    exits_on_fatal = False

    def __init__(
        self,
        level: Level | int | str = Level.DEBUG,
        encoding: Encoding = "text",
        output_path: str = STDOUT,
        error_output_path: str = STDERR,
    ):
        if encoding not in ("text", "json"):
            raise ConfigurationError(f"Unknown local encoding: {encoding!r}. Must be one of: text, json")
        self._sink = _LocalSink(Level.parse(level), encoding, output_path, error_output_path)
        self._bound: dict[str, Any] = {}

    @property
    def level(self) -> Level:
        return self._sink.level.level

    @property
    def bound_fields(self) -> dict[str, Any]:
        return dict(self._bound)

    def bind(self, fields: Mapping[str, Any]) -> LocalBackend:
        clone = copy.copy(self)
        clone._bound = merge(self._bound, fields)
        return clone

    def emit(self, level: Level, payload: Any, fields: Mapping[str, Any]) -> None:
        event = payload if isinstance(payload, str) else str(payload)
        try:
            getattr(self._sink.logger, LEVEL_TO_METHOD[level])(event, **{FIELDS_KEY: merge(self._bound, fields)})
        except Exception as exc:
            self._sink.report(f"cloudlogging: failed to write {LEVEL_TO_METHOD[level]} entry: {exc!r}")

    def set_level(self, level: Level) -> None:
        self._sink.level.set(level)

    def flush(self) -> None:
        self._sink.flush()

    def close(self) -> None:
        self._sink.close()
