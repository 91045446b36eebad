"""
Exception types raised by cloudlogging.
"""

from __future__ import annotations


class CloudLoggingError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(CloudLoggingError):
    """Invalid logger configuration, detected while constructing a Logger."""


class EnvironmentConfigError(ConfigurationError):
    """A platform environment variable required by a convenience constructor is missing."""

    def __init__(self, variable: str):
        self.variable = variable
        super().__init__(f"env var {variable} missing")


class FieldsError(CloudLoggingError, ValueError):
    """A key/value field sequence has a dangling key.

    This is a programming error and is raised at the call site instead of
    dropping the key.
    """


class TransportError(CloudLoggingError):
    """Delivery to the remote logging service failed.

    Never raised from a log call; surfaced by ``flush()`` and ``close()``
    and handed to the configured error hook.
    """
