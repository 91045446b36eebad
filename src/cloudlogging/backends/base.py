"""
Backend abstraction (Strategy Pattern).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from ..levels import Level


class Backend(ABC):
    """Abstract base class for log backends.

    A backend is a handle over a shared resource (an output stream, a
    network client). ``bind`` returns a new handle over the same resource
    with a different set of bound fields, so derived loggers never open
    extra connections.
    """

    #: True when the backend's native fatal call terminates the process itself
    exits_on_fatal: bool = False

    @abstractmethod
    def bind(self, fields: Mapping[str, Any]) -> Backend:
        """Return a handle sharing this backend's resources with ``fields`` bound."""
        ...

    @abstractmethod
    def emit(self, level: Level, payload: Any, fields: Mapping[str, Any]) -> None:
        """Emit one log event; call-site ``fields`` win over bound fields."""
        ...

    def set_level(self, level: Level) -> None:
        """Update the backend's own level gate, if it has one."""

    @abstractmethod
    def flush(self) -> None:
        """Flush buffered entries. Raises on delivery failure."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Flush and release resources."""
        ...
