"""
Cloud Logging facade.

One structured Logger API over two backends:
- local: synchronous console/file output (text or JSON lines)
- gcloud: Google Cloud Logging, written asynchronously in batches

Loggers accumulate common fields through ``with_additional_fields`` and fan
each call out to every configured backend. Convenience constructors pick
backends and the monitored resource from the platform's environment
(Compute Engine, App Engine, Cloud Functions, Cloud Run).

Library: structlog + orjson for local output, google-cloud-logging for the
remote backend.
"""

from .core import Logger, must_new_logger, new_logger
from .environments import (
    must_new_app_engine_logger,
    must_new_cloud_function_logger,
    must_new_cloud_run_logger,
    must_new_compute_engine_logger,
    must_new_local_logger,
    must_new_logger_from_settings,
    new_app_engine_logger,
    new_cloud_function_logger,
    new_cloud_run_logger,
    new_compute_engine_logger,
    new_local_logger,
    new_logger_from_settings,
)
from .errors import CloudLoggingError, ConfigurationError, EnvironmentConfigError, FieldsError, TransportError
from .levels import Level
from .options import (
    ResourceDescriptor,
    with_common_fields,
    with_google_cloud_logging,
    with_level,
    with_local,
)

__version__ = "0.3.0"

__all__ = [
    "CloudLoggingError",
    "ConfigurationError",
    "EnvironmentConfigError",
    "FieldsError",
    "Level",
    "Logger",
    "ResourceDescriptor",
    "TransportError",
    "must_new_app_engine_logger",
    "must_new_cloud_function_logger",
    "must_new_cloud_run_logger",
    "must_new_compute_engine_logger",
    "must_new_local_logger",
    "must_new_logger",
    "must_new_logger_from_settings",
    "new_app_engine_logger",
    "new_cloud_function_logger",
    "new_cloud_run_logger",
    "new_compute_engine_logger",
    "new_local_logger",
    "new_logger",
    "new_logger_from_settings",
    "with_common_fields",
    "with_google_cloud_logging",
    "with_level",
    "with_local",
]
