"""
Logger Core: level gate, common-field accumulation and backend fan-out.
"""

from __future__ import annotations

import copy
import sys
from collections.abc import Callable, Sequence
from typing import Any

from .backends.base import Backend
from .backends.gcloud import GoogleCloudBackend
from .backends.local import LocalBackend
from .errors import CloudLoggingError, ConfigurationError
from .fields import Fields, merge, to_fields
from .levels import Level
from .options import LogOption, Options, apply_options


class Logger:
    """Structured logger writing to zero or more backends.

    Log calls (``info``, ``errorf``, ...) are safe to use from several
    threads at once. ``set_level`` and ``close`` are not synchronised; call
    them at startup/shutdown or serialise access yourself, so the log path
    never pays for a lock.

    A logger without backends is a null logger: every call is a no-op.

    Derived loggers from ``with_additional_fields`` share the backends of
    the logger they came from. Close the root logger once at shutdown.
    """

    def __init__(
        self,
        level: Level | int | str = Level.DEBUG,
        backends: Sequence[Backend] = (),
        common_fields: Fields | None = None,
    ):
        self._level = Level.parse(level)
        self._common_fields: Fields = dict(common_fields or {})
        self._backends: tuple[Backend, ...] = tuple(b.bind(self._common_fields) for b in backends)
        for backend in self._backends:
            backend.set_level(self._level)

    # =========================================================================
    # State
    # =========================================================================

    @property
    def level(self) -> Level:
        return self._level

    @property
    def common_fields(self) -> Fields:
        return dict(self._common_fields)

    @property
    def backends(self) -> tuple[Backend, ...]:
        return self._backends

    def set_level(self, level: Level | int | str) -> None:
        """Set the level gate for this logger and its backends. Not thread-safe."""
        self._level = Level.parse(level)
        for backend in self._backends:
            backend.set_level(self._level)

    def is_enabled_for(self, level: Level) -> bool:
        return level >= self._level

    def with_additional_fields(self, *fields: Any, **kwargs: Any) -> Logger:
        """Return a derived logger whose common fields are this logger's plus ``fields``.

        New values win on key collision. This logger is not modified and
        the backends are shared, so this is cheap enough to call per request.

        Raises:
            FieldsError: If ``fields`` is an odd-length key/value sequence.
        """
        additional = to_fields(fields, kwargs)
        derived = copy.copy(self)
        derived._common_fields = merge(self._common_fields, additional)
        derived._backends = tuple(b.bind(additional) for b in self._backends)
        return derived

    # =========================================================================
    # Emission
    # =========================================================================

    def log(self, level: Level | int | str, payload: Any, *fields: Any, **kwargs: Any) -> None:
        """Write a structured entry with call-site fields.

        Raises:
            FieldsError: If ``fields`` is an odd-length key/value sequence.
        """
        level = Level.parse(level)
        call_fields = to_fields(fields, kwargs)
        if not self.is_enabled_for(level):
            return
        self._fan_out(level, payload, call_fields)

    def logf(self, level: Level | int | str, fmt: str, *args: Any) -> None:
        """Write a ``%``-formatted entry."""
        level = Level.parse(level)
        if not self.is_enabled_for(level):
            return
        self._fan_out(level, fmt % args if args else fmt, {})

    def _fan_out(self, level: Level, payload: Any, fields: Fields) -> None:
        for backend in self._backends:
            backend.emit(level, payload, fields)
        if level >= Level.FATAL:
            self._terminate()

    def _terminate(self) -> None:
        if not self._backends or any(b.exits_on_fatal for b in self._backends):
            return
        for backend in self._backends:
            try:
                backend.flush()
            except CloudLoggingError as exc:
                sys.stderr.write(f"cloudlogging: flush before exit failed: {exc}\n")
        sys.exit(1)

    # Structured verbs

    def trace(self, payload: Any, *fields: Any, **kwargs: Any) -> None:
        self.log(Level.DEBUG, payload, *fields, **kwargs)

    def debug(self, payload: Any, *fields: Any, **kwargs: Any) -> None:
        self.log(Level.DEBUG, payload, *fields, **kwargs)

    def info(self, payload: Any, *fields: Any, **kwargs: Any) -> None:
        self.log(Level.INFO, payload, *fields, **kwargs)

    def warning(self, payload: Any, *fields: Any, **kwargs: Any) -> None:
        self.log(Level.WARNING, payload, *fields, **kwargs)

    warn = warning

    def error(self, payload: Any, *fields: Any, **kwargs: Any) -> None:
        self.log(Level.ERROR, payload, *fields, **kwargs)

    def fatal(self, payload: Any, *fields: Any, **kwargs: Any) -> None:
        """Log at FATAL, flush every backend and exit the process with status 1."""
        self.log(Level.FATAL, payload, *fields, **kwargs)

    critical = fatal

    # Formatted verbs

    def tracef(self, fmt: str, *args: Any) -> None:
        self.logf(Level.DEBUG, fmt, *args)

    def debugf(self, fmt: str, *args: Any) -> None:
        self.logf(Level.DEBUG, fmt, *args)

    def printf(self, fmt: str, *args: Any) -> None:
        """Debug-level alias matching the stdlib ``log`` style interface."""
        self.logf(Level.DEBUG, fmt, *args)

    def infof(self, fmt: str, *args: Any) -> None:
        self.logf(Level.INFO, fmt, *args)

    def warningf(self, fmt: str, *args: Any) -> None:
        self.logf(Level.WARNING, fmt, *args)

    warnf = warningf

    def errorf(self, fmt: str, *args: Any) -> None:
        self.logf(Level.ERROR, fmt, *args)

    def fatalf(self, fmt: str, *args: Any) -> None:
        """Log at FATAL, flush every backend and exit the process with status 1."""
        self.logf(Level.FATAL, fmt, *args)

    criticalf = fatalf

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def flush(self) -> None:
        """Flush every backend; raises the first error after trying them all."""
        self._each_backend("flush")

    def close(self) -> None:
        """Flush and release every backend; raises the first error after trying them all."""
        self._each_backend("close")

    def _each_backend(self, method: str) -> None:
        first_error: CloudLoggingError | None = None
        for backend in self._backends:
            try:
                getattr(backend, method)()
            except CloudLoggingError as exc:
                if first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error

    def __enter__(self) -> Logger:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


# =============================================================================
# Construction
# =============================================================================


def _report_to(local: LocalBackend) -> Callable[[Exception], None]:
    """Error hook writing remote transport errors to the local backend."""

    def on_error(exc: Exception) -> None:
        local.emit(Level.ERROR, "google cloud logging error", {"error": str(exc)})

    return on_error


def _build_backends(opts: Options) -> list[Backend]:
    backends: list[Backend] = []
    try:
        local: LocalBackend | None = None
        if opts.local is not None:
            local = LocalBackend(
                level=opts.level,
                encoding=opts.local.encoding,
                output_path=opts.local.output_path,
                error_output_path=opts.local.error_output_path,
            )
            backends.append(local)

        if opts.remote is not None:
            on_error = opts.remote.on_error
            if on_error is None and local is not None:
                on_error = _report_to(local)
            backends.append(
                GoogleCloudBackend(
                    project_id=opts.remote.project_id,
                    log_id=opts.remote.log_id,
                    credentials_path=opts.remote.credentials_path,
                    resource=opts.remote.resource,
                    on_error=on_error,
                    batch_size=opts.remote.batch_size,
                )
            )
    except Exception:
        for backend in backends:
            try:
                backend.close()
            except CloudLoggingError:
                pass
        raise
    return backends


def new_logger(*options: LogOption) -> Logger:
    """Create a Logger from options; with no backend options it is a null logger.

    Raises:
        ConfigurationError: If the options are inconsistent or a backend fails
            to initialise. No partially constructed logger is returned.
    """
    opts = apply_options(*options)
    if opts.remote is not None and not opts.remote.project_id:
        raise ConfigurationError("Google Cloud Logging requires a GCP project ID")
    return Logger(level=opts.level, backends=_build_backends(opts), common_fields=opts.common_fields)


def must_new_logger(*options: LogOption) -> Logger:
    """Like ``new_logger`` but exits the process if construction fails."""
    try:
        return new_logger(*options)
    except CloudLoggingError as exc:
        raise SystemExit(f"failed to create logger: {exc}") from exc
