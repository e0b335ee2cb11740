"""
Configuration for the Huly SDK.

Uses pydantic-settings for environment variable loading. The settings object
is built by the caller and handed to HulyClient explicitly; nothing in the SDK
reads the environment on its own.

Invariants:
    - All settings have defaults usable against huly.io
    - Secrets are never logged or exposed in error messages
"""

import logging

from pydantic import Field
from pydantic_settings import BaseSettings

from .errors import InvalidURLError
from .primitives import BLOB_STORAGE_THRESHOLD

logger = logging.getLogger(__name__)


class ClientConfig(BaseSettings):
    """Client configuration loaded from ``HULY_*`` environment variables."""

    # Platform
    base_url: str = Field(default="https://huly.io", description="Platform base URL")
    email: str = Field(default="", description="Account email")
    password: str = Field(default="", description="Account password")
    workspace: str = Field(default="", description="Workspace (tenant) URL name")

    # Timeouts (seconds)
    request_timeout: float = Field(default=30.0, description="HTTP request timeout")
    hello_timeout: float = Field(default=10.0, description="Socket handshake timeout")
    tx_timeout: float = Field(default=30.0, description="Socket transaction round-trip timeout")

    # Writes
    blob_threshold: int = Field(
        default=BLOB_STORAGE_THRESHOLD,
        description="Content at or above this many UTF-8 bytes is stored as a blob",
    )
    socket_writes: bool = Field(
        default=True,
        description="Send document writes over the transaction socket",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Root log level")
    log_format: str = Field(default="text", description="text or json")

    model_config = {"env_prefix": "HULY_"}

    @property
    def normalized_base_url(self) -> str:
        """Base URL without trailing slash.

        Raises:
            InvalidURLError: If the scheme is not http or https
        """
        url = self.base_url.strip().rstrip("/")
        if not url.startswith(("http://", "https://")):
            raise InvalidURLError(f"Invalid base URL: {self.base_url}", url=self.base_url)
        return url

    def log_config(self) -> None:
        """Log non-secret settings."""
        logger.info(
            "Huly client configuration",
            extra={
                "base_url": self.base_url,
                "workspace": self.workspace,
                "email_set": bool(self.email),
                "request_timeout": self.request_timeout,
                "hello_timeout": self.hello_timeout,
                "tx_timeout": self.tx_timeout,
                "blob_threshold": self.blob_threshold,
                "socket_writes": self.socket_writes,
            },
        )
