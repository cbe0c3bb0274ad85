"""Configuration for the qbert server.

Settings are loaded from environment variables with the ``QBERT_`` prefix
or from a ``.env`` file, and may be overridden by command line flags.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AuthMode(str, Enum):
    """How the Kubernetes client obtains credentials."""

    AUTO = "auto"
    KUBECONFIG = "kubeconfig"
    TOKEN = "token"


class LogLevel(str, Enum):
    """Logging level."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class QbertConfig(BaseSettings):
    """Configuration for the qbert server."""

    model_config = SettingsConfigDict(
        env_prefix="QBERT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # HTTP server
    host: str = Field(default="0.0.0.0", description="Host to bind the HTTP server to")
    port: int = Field(default=8080, ge=1, le=65535, description="Port to bind the HTTP server to")

    # Kubernetes authentication
    auth_mode: AuthMode = Field(
        default=AuthMode.AUTO,
        description="Authentication mode: in-cluster then kubeconfig, kubeconfig, or token",
    )
    kubeconfig_path: str | None = Field(default=None, description="Path to kubeconfig file")
    kubeconfig_context: str | None = Field(default=None, description="Kubeconfig context to use")
    api_url: str | None = Field(default=None, description="Kubernetes API URL for token auth")
    api_token: str | None = Field(default=None, description="Bearer token for token auth")
    verify_ssl: bool = Field(default=True, description="Verify the API server certificate")

    # Cluster calls
    request_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Deadline in seconds for all cluster calls made by one HTTP request",
    )
    conflict_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Read-modify-write attempts before reporting a conflict",
    )
    conflict_backoff: float = Field(
        default=0.1,
        ge=0.0,
        description="Initial backoff in seconds between conflict retries, doubled each time",
    )

    # Logging
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")

    def validate_auth_config(self) -> list[str]:
        """Validate the authentication settings.

        Returns:
            Warnings about settings that are ignored or suspicious.

        Raises:
            ValueError: If the settings cannot produce a working client.
        """
        warnings: list[str] = []

        if self.auth_mode == AuthMode.TOKEN:
            if not self.api_url:
                raise ValueError("QBERT_API_URL is required when auth_mode is 'token'")
            if not self.api_token:
                raise ValueError("QBERT_API_TOKEN is required when auth_mode is 'token'")
            if not self.verify_ssl:
                warnings.append("TLS verification is disabled for the Kubernetes API")
            if self.kubeconfig_path or self.kubeconfig_context:
                warnings.append("Kubeconfig settings are ignored in token auth mode")

        if self.auth_mode == AuthMode.KUBECONFIG and self.kubeconfig_path:
            if not Path(self.kubeconfig_path).expanduser().exists():
                raise ValueError(f"Kubeconfig file not found: {self.kubeconfig_path}")

        if self.auth_mode != AuthMode.TOKEN and (self.api_url or self.api_token):
            warnings.append(
                f"API URL/token are ignored in '{self.auth_mode.value}' auth mode"
            )

        return warnings


_config: QbertConfig | None = None


def get_config() -> QbertConfig:
    """Get the process-wide configuration, loading it on first use."""
    global _config
    if _config is None:
        _config = QbertConfig()
    return _config
