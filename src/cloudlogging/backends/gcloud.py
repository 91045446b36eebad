"""
Google Cloud Logging backend.

Entries are handed to a background worker thread which batches them and
writes them with the google-cloud-logging client. Callers never wait on the
network except in ``flush()`` and ``close()``.
"""

from __future__ import annotations

import copy
import queue
import sys
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import orjson

from ..errors import ConfigurationError, TransportError
from ..fields import merge, to_labels
from ..levels import Level
from ..options import ResourceDescriptor
from .base import Backend

if TYPE_CHECKING:
    from google.cloud.logging import Client as GCloudLoggingClient
    from google.cloud.logging import Logger as GCloudLogger

ErrorHook = Callable[[Exception], None]

LEVEL_TO_SEVERITY: Mapping[Level, str] = {
    Level.DEBUG: "DEBUG",
    Level.INFO: "INFO",
    Level.WARNING: "WARNING",
    Level.ERROR: "ERROR",
    Level.FATAL: "CRITICAL",
}
DEFAULT_SEVERITY = "DEFAULT"

# Well-known log names per monitored resource type
DEFAULT_LOG_IDS: Mapping[str, str] = {
    "gae_app": "appengine.googleapis.com/request_log",
    "cloud_function": "cloudfunctions.googleapis.com/cloud-functions",
    "cloud_run_revision": "run.googleapis.com/request_log",
}
FALLBACK_LOG_ID = "cloudlogging"

DEFAULT_BATCH_SIZE = 50


def default_log_id(resource: ResourceDescriptor | None) -> str:
    if resource is None:
        return FALLBACK_LOG_ID
    return DEFAULT_LOG_IDS.get(resource.type, FALLBACK_LOG_ID)


def create_client(project_id: str, credentials_path: str = "") -> GCloudLoggingClient:
    """Create a Cloud Logging client, optionally from a service account key file."""
    from google.cloud import logging as gcloud_logging

    if credentials_path:
        return gcloud_logging.Client.from_service_account_json(credentials_path, project=project_id)
    return gcloud_logging.Client(project=project_id)


def to_struct(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Copy a mapping into JSON-native types (datetimes, UUIDs, dataclasses become JSON values).

    Raises:
        TypeError: If a value has no JSON form.
    """
    return orjson.loads(
        orjson.dumps(dict(payload), option=orjson.OPT_NON_STR_KEYS | orjson.OPT_NAIVE_UTC | orjson.OPT_UTC_Z)
    )


def print_error(exc: Exception) -> None:
    """Fallback error hook: report transport errors on stderr."""
    sys.stderr.write(f"google cloud logging error: {exc}\n")
    sys.stderr.flush()


# =============================================================================
# Background Transport
# =============================================================================


@dataclass(frozen=True)
class _Entry:
    payload: str | Mapping[str, Any]
    severity: str
    labels: dict[str, str]


_STOP = object()


class BackgroundTransport:
    """Queue + worker thread writing batches through one cloud logger.

    The queue is FIFO, so a flush marker put behind a set of entries is only
    reached once those entries have been committed or have failed.
    """

    def __init__(
        self,
        client: GCloudLoggingClient,
        cloud_logger: GCloudLogger,
        on_error: ErrorHook,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        self._client = client
        self._cloud_logger = cloud_logger
        self._on_error = on_error
        self._batch_size = max(1, batch_size)
        self._queue: queue.Queue[Any] = queue.Queue()
        self._lock = threading.Lock()
        self._first_error: TransportError | None = None
        self._closed = False
        self._thread = threading.Thread(target=self._run, name="cloudlogging-worker", daemon=True)
        self._thread.start()

    def enqueue(self, entry: _Entry) -> None:
        # Entries arriving after close() are dropped
        if not self._closed:
            self._queue.put(entry)

    def flush(self, timeout: float | None = None) -> None:
        """Block until everything enqueued so far is processed.

        Raises:
            TransportError: The first delivery error since the previous flush,
                or a timeout.
        """
        if self._thread.is_alive():
            marker = threading.Event()
            self._queue.put(marker)
            if not marker.wait(timeout):
                raise TransportError(f"flush timed out after {timeout}s")
        with self._lock:
            error, self._first_error = self._first_error, None
        if error is not None:
            raise error

    def close(self, timeout: float | None = None) -> None:
        """Flush, stop the worker and close the client.

        A flush error takes precedence over a client close error.
        """
        if self._closed:
            return
        flush_error: TransportError | None = None
        try:
            self.flush(timeout)
        except TransportError as exc:
            flush_error = exc
        self._closed = True
        self._queue.put(_STOP)
        self._thread.join(timeout)

        try:
            self._client.close()
        except Exception as exc:
            if flush_error is None:
                raise TransportError(f"failed to close google cloud logging client: {exc}") from exc
        if flush_error is not None:
            raise flush_error

    # -------------------------------------------------------------------------
    # Worker
    # -------------------------------------------------------------------------

    def _run(self) -> None:
        while True:
            batch, marker = self._take()
            self._commit(batch)
            if marker is _STOP:
                return
            if marker is not None:
                marker.set()

    def _take(self) -> tuple[list[_Entry], Any]:
        """Block for one item, then drain without blocking until a marker or a full batch."""
        batch: list[_Entry] = []
        item = self._queue.get()
        while True:
            if not isinstance(item, _Entry):
                return batch, item
            batch.append(item)
            if len(batch) >= self._batch_size:
                return batch, None
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return batch, None

    def _commit(self, entries: list[_Entry]) -> None:
        if not entries:
            return
        try:
            batch = self._cloud_logger.batch()
            for entry in entries:
                kw: dict[str, Any] = {"severity": entry.severity}
                if entry.labels:
                    kw["labels"] = entry.labels
                if isinstance(entry.payload, Mapping):
                    batch.log_struct(dict(entry.payload), **kw)
                else:
                    batch.log_text(entry.payload, **kw)
            batch.commit()
        except Exception as exc:
            self.report(TransportError(f"failed to write {len(entries)} log entries: {exc}"), exc)

    def report(self, error: TransportError, cause: Exception) -> None:
        """Record ``error`` for the next flush and pass it to the error hook."""
        error.__cause__ = cause
        with self._lock:
            if self._first_error is None:
                self._first_error = error
        try:
            self._on_error(error)
        except Exception as hook_exc:
            print_error(hook_exc)


# =============================================================================
# Backend
# =============================================================================


class GoogleCloudBackend(Backend):
    """Remote backend writing entries to Google Cloud Logging.

    The backend never gates by level; the Logger Core decides once for all
    backends.

    Args:
        project_id: GCP project ID; required.
        log_id: Log name. Defaults to the well-known name for the resource type.
        credentials_path: Service account JSON key; empty uses application default credentials.
        resource: Monitored resource attached to every entry. None lets the client autodetect.
        on_error: Called from the worker thread with every TransportError.
        batch_size: Maximum entries per write request.

    Raises:
        ConfigurationError: If the project ID is empty or the client cannot be created.
    """

    exits_on_fatal = False

    def __init__(
        self,
        project_id: str,
        log_id: str = "",
        credentials_path: str = "",
        resource: ResourceDescriptor | None = None,
        on_error: ErrorHook | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        if not project_id:
            raise ConfigurationError("Google Cloud Logging requires a GCP project ID")

        self.project_id = project_id
        self.log_id = log_id or default_log_id(resource)
        self.resource = resource

        try:
            client = create_client(project_id, credentials_path)
        except Exception as exc:
            raise ConfigurationError(f"failed to create google cloud logging client: {exc}") from exc

        if resource is not None:
            from google.cloud.logging import Resource

            cloud_logger = client.logger(self.log_id, resource=Resource(type=resource.type, labels=dict(resource.labels)))
        else:
            cloud_logger = client.logger(self.log_id)

        self._transport = BackgroundTransport(client, cloud_logger, on_error or print_error, batch_size)
        self._bound: dict[str, Any] = {}

    @property
    def bound_fields(self) -> dict[str, Any]:
        return dict(self._bound)

    def bind(self, fields: Mapping[str, Any]) -> GoogleCloudBackend:
        clone = copy.copy(self)
        clone._bound = merge(self._bound, fields)
        return clone

    def emit(self, level: Level, payload: Any, fields: Mapping[str, Any]) -> None:
        if isinstance(payload, Mapping):
            # Structs that fail to encode are reported alone and never reach a batch
            try:
                payload = to_struct(payload)
            except TypeError as exc:
                self._transport.report(TransportError(f"failed to encode struct payload: {exc}"), exc)
                return
        elif not isinstance(payload, str):
            payload = str(payload)
        self._transport.enqueue(
            _Entry(
                payload=payload,
                severity=LEVEL_TO_SEVERITY.get(level, DEFAULT_SEVERITY),
                labels=to_labels(merge(self._bound, fields)),
            )
        )

    def flush(self, timeout: float | None = None) -> None:
        self._transport.flush(timeout)

    def close(self, timeout: float | None = None) -> None:
        self._transport.close(timeout)
