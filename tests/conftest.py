import typing as t
from dataclasses import dataclass, field

import pytest

from cloudlogging.backends import gcloud as gcloud_backend
from cloudlogging.backends.base import Backend
from cloudlogging.levels import Level


# =============================================================================
# Fake Google Cloud Logging client
# =============================================================================


class FakeBatch:
    def __init__(self, cloud_logger: "FakeCloudLogger"):
        self._cloud_logger = cloud_logger
        self._pending: list[dict[str, t.Any]] = []

    def log_text(self, text: str, **kw: t.Any) -> None:
        self._pending.append({"payload": text, **kw})

    def log_struct(self, info: dict, **kw: t.Any) -> None:
        self._pending.append({"payload": info, **kw})

    def commit(self) -> None:
        client = self._cloud_logger.client
        client.commits += 1
        if client.commit_error is not None:
            raise client.commit_error
        self._cloud_logger.entries.extend(self._pending)
        self._pending = []


class FakeCloudLogger:
    def __init__(self, client: "FakeClient", name: str, resource: t.Any = None):
        self.client = client
        self.name = name
        self.resource = resource
        self.entries: list[dict[str, t.Any]] = []

    def batch(self) -> FakeBatch:
        return FakeBatch(self)


class FakeClient:
    def __init__(self, project: str, credentials_path: str = ""):
        self.project = project
        self.credentials_path = credentials_path
        self.loggers: list[FakeCloudLogger] = []
        self.commits = 0
        self.commit_error: Exception | None = None
        self.close_error: Exception | None = None
        self.closed = False

    def logger(self, name: str, resource: t.Any = None) -> FakeCloudLogger:
        cloud_logger = FakeCloudLogger(self, name, resource)
        self.loggers.append(cloud_logger)
        return cloud_logger

    def close(self) -> None:
        self.closed = True
        if self.close_error is not None:
            raise self.close_error

    @property
    def entries(self) -> list[dict[str, t.Any]]:
        return [e for lg in self.loggers for e in lg.entries]


@dataclass
class FakeGCloud:
    clients: list[FakeClient] = field(default_factory=list)
    create_error: Exception | None = None

    @property
    def client(self) -> FakeClient:
        return self.clients[-1]


@pytest.fixture
def fake_gcloud(monkeypatch) -> FakeGCloud:
    """Replace the Cloud Logging client factory with an in-memory fake."""
    state = FakeGCloud()

    def create_client(project_id: str, credentials_path: str = "") -> FakeClient:
        if state.create_error is not None:
            raise state.create_error
        client = FakeClient(project_id, credentials_path)
        state.clients.append(client)
        return client

    monkeypatch.setattr(gcloud_backend, "create_client", create_client)
    return state


# =============================================================================
# Recording backend
# =============================================================================


class RecordingBackend(Backend):
    """Backend storing emitted events in memory, shared across bound handles."""

    def __init__(self, exits_on_fatal: bool = False):
        self.exits_on_fatal = exits_on_fatal
        self.events: list[tuple[Level, t.Any, dict[str, t.Any]]] = []
        self.levels: list[Level] = []
        self.calls: list[str] = []
        self.flush_error: Exception | None = None
        self.close_error: Exception | None = None
        self.bound: dict[str, t.Any] = {}

    def bind(self, fields):
        clone = RecordingBackend.__new__(RecordingBackend)
        clone.__dict__.update(self.__dict__)
        clone.bound = {**self.bound, **fields}
        return clone

    def emit(self, level, payload, fields):
        self.events.append((level, payload, {**self.bound, **fields}))

    def set_level(self, level):
        self.levels.append(level)

    def flush(self):
        self.calls.append("flush")
        if self.flush_error is not None:
            raise self.flush_error

    def close(self):
        self.calls.append("close")
        if self.close_error is not None:
            raise self.close_error


@pytest.fixture
def recorder() -> RecordingBackend:
    return RecordingBackend()


@pytest.fixture
def make_recorder() -> t.Callable[..., RecordingBackend]:
    return RecordingBackend
