"""
Logger construction options.

Options are plain callables applied in order to an ``Options`` model, so
later options win over earlier ones::

    logger = new_logger(
        with_level("info"),
        with_local(encoding="json"),
        with_google_cloud_logging("my-project", log_id="my-log"),
        with_common_fields("service", "billing"),
    )
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .fields import to_fields
from .levels import Level


class ResourceDescriptor(BaseModel):
    """Monitored resource attached to remote entries (e.g. ``gae_app`` + labels)."""

    model_config = ConfigDict(frozen=True)

    type: str = Field(min_length=1, description="Monitored resource type")
    labels: dict[str, str] = Field(default_factory=dict, description="Resource labels")


class LocalOptions(BaseModel):
    encoding: Literal["text", "json"] = Field(default="text", description="Line encoding")
    output_path: str = Field(default="stdout", description="stdout, stderr or a file path")
    error_output_path: str = Field(default="stderr", description="Destination for the backend's own errors")


class RemoteOptions(BaseModel):
    project_id: str = Field(default="", description="GCP project ID")
    credentials_path: str = Field(default="", description="Service account JSON key path")
    log_id: str = Field(default="", description="Log name; defaults per resource type")
    resource: ResourceDescriptor | None = Field(default=None, description="Monitored resource")
    on_error: Callable[[Exception], None] | None = Field(default=None, description="Transport error hook")
    batch_size: int = Field(default=50, ge=1, description="Maximum entries per write request")


class Options(BaseModel):
    level: Level = Level.DEBUG
    local: LocalOptions | None = None
    remote: RemoteOptions | None = None
    common_fields: dict[str, Any] = Field(default_factory=dict)

    @field_validator("level", mode="before")
    @classmethod
    def _parse_level(cls, value: Any) -> Level:
        return Level.parse(value)


LogOption = Callable[[Options], None]


def apply_options(*options: LogOption) -> Options:
    opts = Options()
    for option in options:
        option(opts)
    return opts


def with_level(level: Level | int | str) -> LogOption:
    """Set the initial level gate (default: DEBUG)."""
    parsed = Level.parse(level)

    def apply(opts: Options) -> None:
        opts.level = parsed

    return apply


def with_local(
    encoding: Literal["text", "json"] = "text",
    output_path: str = "stdout",
    error_output_path: str = "stderr",
) -> LogOption:
    """Enable the local backend.

    Args:
        encoding: ``text`` for aligned human-readable lines, ``json`` for one object per line.
        output_path: ``stdout``, ``stderr`` or a log file path.
        error_output_path: Where the backend reports its own failures.
    """
    local = LocalOptions(encoding=encoding, output_path=output_path, error_output_path=error_output_path)

    def apply(opts: Options) -> None:
        opts.local = local

    return apply


def with_google_cloud_logging(
    project_id: str,
    credentials_path: str = "",
    log_id: str = "",
    resource: ResourceDescriptor | None = None,
    on_error: Callable[[Exception], None] | None = None,
    batch_size: int = 50,
) -> LogOption:
    """Enable the Google Cloud Logging backend.

    An empty ``project_id`` is accepted here and rejected when the logger is
    constructed. An empty ``credentials_path`` uses application default
    credentials.
    """
    remote = RemoteOptions(
        project_id=project_id,
        credentials_path=credentials_path,
        log_id=log_id,
        resource=resource,
        on_error=on_error,
        batch_size=batch_size,
    )

    def apply(opts: Options) -> None:
        opts.remote = remote

    return apply


def with_common_fields(*fields: Any, **kwargs: Any) -> LogOption:
    """Seed the root logger's common fields.

    Raises:
        FieldsError: If ``fields`` is an odd-length key/value sequence.
    """
    normalized = to_fields(fields, kwargs)

    def apply(opts: Options) -> None:
        opts.common_fields = {**opts.common_fields, **normalized}

    return apply
