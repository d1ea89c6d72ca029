"""Configuration for the Dynalist MCP server.

Everything is read from ``DYNALIST_*`` environment variables, with an optional
``.env`` file in the working directory.
"""

import logging
import sys

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import APIConfiguration

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class ServerConfig(BaseSettings):
    """Server settings. Prefix is ``DYNALIST_``."""

    model_config = SettingsConfigDict(
        env_prefix="DYNALIST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_token: SecretStr = Field(..., description="Token from https://dynalist.io/developer")
    api_url: str = Field(default="https://dynalist.io/api/v1")
    document_base_url: str = Field(default="https://dynalist.io/d")
    timeout: float = Field(default=30.0, gt=0)
    max_retries: int = Field(default=3, ge=1, le=10)
    rate_limit: float = Field(default=5.0, gt=0, description="Requests per second")
    log_level: str = Field(default="INFO")

    def get_api_config(self) -> APIConfiguration:
        """Build the client configuration."""
        return APIConfiguration(
            api_token=self.api_token,
            base_url=self.api_url.rstrip("/"),
            document_base_url=self.document_base_url.rstrip("/"),
            timeout=self.timeout,
            max_retries=self.max_retries,
        )


def setup_logging(level: str | int = "INFO") -> None:
    """Send log records to stderr.

    stdout carries the stdio transport, so nothing may be logged there.
    """
    root = logging.getLogger()
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    root.setLevel(level)

    has_console = any(
        isinstance(h, logging.StreamHandler) and getattr(h, "stream", None) is sys.stderr
        for h in root.handlers
    )
    if not has_console:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
