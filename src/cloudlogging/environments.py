"""
Environment-aware convenience constructors.

Each constructor inspects the platform's environment variables, picks the
backend(s) and builds the monitored resource descriptor. Every ``new_*``
function has a ``must_new_*`` twin for startup code that treats a
construction failure as unrecoverable.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from typing import Literal, ParamSpec

from .config import LoggingSettings
from .core import Logger, new_logger
from .errors import CloudLoggingError, EnvironmentConfigError
from .levels import Level
from .options import LogOption, ResourceDescriptor, with_google_cloud_logging, with_level, with_local

P = ParamSpec("P")


def _require_env(name: str) -> str:
    value = os.getenv(name, "")
    if not value:
        raise EnvironmentConfigError(name)
    return value


def _all_set(*names: str) -> bool:
    return all(os.getenv(name) for name in names)


def _must(factory: Callable[P, Logger]) -> Callable[P, Logger]:
    def must(*args: P.args, **kwargs: P.kwargs) -> Logger:
        try:
            return factory(*args, **kwargs)
        except CloudLoggingError as exc:
            raise SystemExit(f"failed to create logger: {exc}") from exc

    must.__name__ = f"must_{factory.__name__}"
    must.__doc__ = f"Like ``{factory.__name__}`` but exits the process if construction fails."
    return must


def new_local_logger(
    output_path: str = "stdout",
    error_output_path: str = "stderr",
    encoding: Literal["text", "json"] = "text",
    level: Level | int | str = Level.DEBUG,
) -> Logger:
    """Logger writing only to the local backend (stdout/stderr by default)."""
    return new_logger(
        with_level(level),
        with_local(encoding=encoding, output_path=output_path, error_output_path=error_output_path),
    )


def new_compute_engine_logger(project_id: str, log_id: str = "") -> Logger:
    """Logger for Compute Engine and Kubernetes Engine; logs only to Cloud Logging.

    No resource descriptor is passed; the client detects the GCE/GKE resource.
    """
    return new_logger(with_google_cloud_logging(project_id, log_id=log_id))


def new_cloud_function_logger(log_id: str = "") -> Logger:
    """Logger for Cloud Functions; logs only to Cloud Logging.

    Raises:
        EnvironmentConfigError: If GCP_PROJECT, FUNCTION_NAME or FUNCTION_REGION is missing.
    """
    project_id = _require_env("GCP_PROJECT")
    function_name = _require_env("FUNCTION_NAME")
    region = _require_env("FUNCTION_REGION")

    resource = ResourceDescriptor(
        type="cloud_function",
        labels={"project_id": project_id, "function_name": function_name, "region": region},
    )
    return new_logger(with_google_cloud_logging(project_id, log_id=log_id, resource=resource))


def new_app_engine_logger(log_id: str = "") -> Logger:
    """Logger for App Engine.

    Logs to Cloud Logging when GOOGLE_CLOUD_PROJECT, GAE_SERVICE and
    GAE_VERSION are all set, and to the local backend otherwise (e.g. on the
    local dev server).
    """
    options: list[LogOption] = []
    if _all_set("GOOGLE_CLOUD_PROJECT", "GAE_SERVICE", "GAE_VERSION"):
        project_id = os.environ["GOOGLE_CLOUD_PROJECT"]
        resource = ResourceDescriptor(
            type="gae_app",
            labels={
                "project_id": project_id,
                "module_id": os.environ["GAE_SERVICE"],
                "version_id": os.environ["GAE_VERSION"],
            },
        )
        options.append(with_google_cloud_logging(project_id, log_id=log_id, resource=resource))
    else:
        options.append(with_local())
    return new_logger(*options)


def new_cloud_run_logger(project_id: str | None = None, log_id: str = "") -> Logger:
    """Logger for Cloud Run.

    Logs to Cloud Logging when K_SERVICE, K_REVISION and K_CONFIGURATION are
    all set, and to the local backend otherwise. ``project_id`` defaults to
    GOOGLE_CLOUD_PROJECT.

    Raises:
        EnvironmentConfigError: If running on Cloud Run without a project ID.
    """
    options: list[LogOption] = []
    if _all_set("K_SERVICE", "K_REVISION", "K_CONFIGURATION"):
        project_id = project_id or _require_env("GOOGLE_CLOUD_PROJECT")
        resource = ResourceDescriptor(
            type="cloud_run_revision",
            labels={
                "project_id": project_id,
                "service_name": os.environ["K_SERVICE"],
                "revision_name": os.environ["K_REVISION"],
                "configuration_name": os.environ["K_CONFIGURATION"],
            },
        )
        options.append(with_google_cloud_logging(project_id, log_id=log_id, resource=resource))
    else:
        options.append(with_local())
    return new_logger(*options)


def new_logger_from_settings(settings: LoggingSettings | None = None) -> Logger:
    """Logger configured from ``CLOUDLOGGING_*`` environment variables."""
    return new_logger(*(settings or LoggingSettings()).to_options())


must_new_local_logger = _must(new_local_logger)
must_new_compute_engine_logger = _must(new_compute_engine_logger)
must_new_cloud_function_logger = _must(new_cloud_function_logger)
must_new_app_engine_logger = _must(new_app_engine_logger)
must_new_cloud_run_logger = _must(new_cloud_run_logger)
must_new_logger_from_settings = _must(new_logger_from_settings)
