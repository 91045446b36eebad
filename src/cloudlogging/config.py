"""
Logging Configuration.

Environment-driven settings (``CLOUDLOGGING_*``) that translate into logger
options.
"""

from enum import Enum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .options import LogOption, with_google_cloud_logging, with_level, with_local


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    FATAL = "FATAL"


class LogFormat(str, Enum):
    TEXT = "text"
    JSON = "json"


class LoggingSettings(BaseSettings):
    """Logger configuration loaded from the environment and ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="CLOUDLOGGING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    level: LogLevel = Field(default=LogLevel.DEBUG, description="Log level")

    # Local backend
    local: bool = Field(default=True, description="Enable the local backend")
    format: LogFormat = Field(default=LogFormat.TEXT, description="Local output format")
    output_path: str = Field(default="stdout", description="Local output: stdout, stderr or a file path")
    error_output_path: str = Field(default="stderr", description="Local error output")

    # Google Cloud Logging backend
    gcloud: bool = Field(default=False, description="Enable the Google Cloud Logging backend")
    gcloud_project: str = Field(default="", description="GCP project ID for the gcloud backend")
    gcloud_credentials_path: str = Field(default="", description="Service account JSON key path")
    gcloud_log_name: str = Field(default="", description="Log name for the gcloud backend")
    gcloud_batch_size: int = Field(default=50, ge=1, description="Maximum entries per write request")

    def to_options(self) -> list[LogOption]:
        options: list[LogOption] = [with_level(self.level.value)]
        if self.local:
            options.append(
                with_local(
                    encoding=self.format.value,
                    output_path=self.output_path,
                    error_output_path=self.error_output_path,
                )
            )
        if self.gcloud:
            options.append(
                with_google_cloud_logging(
                    self.gcloud_project,
                    credentials_path=self.gcloud_credentials_path,
                    log_id=self.gcloud_log_name,
                    batch_size=self.gcloud_batch_size,
                )
            )
        return options
