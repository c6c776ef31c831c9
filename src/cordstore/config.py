"""
Configuration for cordstore sessions.

Values are read from the environment (prefix ``CORDSTORE_``) or a ``.env``
file, e.g. ``CORDSTORE_URI=mongodb://db:27017``.
"""
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreSettings(BaseSettings):
    """Connection and logging settings for a document store session."""

    model_config = SettingsConfigDict(
        env_prefix="CORDSTORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Connection
    uri: str = Field(default="mongodb://localhost:27017", description="MongoDB connection string")
    database_name: str = Field(default="cordstore", description="Database bound after a successful health check")
    app_name: str = Field(default="cordstore", description="Application name reported to the server")
    server_selection_timeout_ms: int = Field(default=30000, ge=1, description="Server selection timeout")
    connect_timeout_ms: int = Field(default=20000, ge=1, description="Socket connect timeout")
    timeout_ms: Optional[int] = Field(
        default=None,
        ge=1,
        description="Client-side timeout applied to every operation (None disables it)"
    )

    # Logging
    log_level: str = Field(default="INFO", description="cordstore log level (DEBUG, INFO, WARNING, ERROR)")
    driver_log_level: str = Field(default="WARNING", description="Log level of the pymongo driver loggers")
    logdir: Optional[Path] = Field(default=None, description="Directory for rotating log files")

    @property
    def uri_display(self) -> str:
        """Get the connection string without credentials, for logging."""
        scheme, sep, rest = self.uri.partition("://")
        if sep and "@" in rest:
            return f"{scheme}://{rest.rsplit('@', 1)[1]}"
        return self.uri

    def client_options(self) -> dict:
        """Keyword arguments passed to the Motor client constructor."""
        options = {
            "appname": self.app_name,
            "serverSelectionTimeoutMS": self.server_selection_timeout_ms,
            "connectTimeoutMS": self.connect_timeout_ms,
        }
        if self.timeout_ms is not None:
            options["timeoutMS"] = self.timeout_ms
        return options
