"""
Log backends: local (structlog) and Google Cloud Logging.
"""

from .base import Backend
from .gcloud import GoogleCloudBackend
from .local import LocalBackend

__all__ = ["Backend", "GoogleCloudBackend", "LocalBackend"]
