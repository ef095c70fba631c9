"""Application configuration using pydantic-settings."""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import AliasChoices, Field, ValidationError, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from subscribe.urls import normalize_path, normalize_url

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8080


class ConfigError(Exception):
    """Configuration could not be loaded."""

    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Environment names match the deployment docs (``MAILGUN_API_KEY``,
    ``SUBSCRIBE_SMTP_HOST``, ...); every field can also be set by name from a
    JSON config file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Mailgun
    mailgun_api_key: str = Field(default="", description="Mailgun API key")
    mailgun_api_endpoint: str = Field(
        default="https://api.mailgun.net/v3", description="Mailgun API endpoint"
    )
    mailgun_list_id: str = Field(default="", description="Mailgun list address, e.g. news@list.org")
    mailgun_list_name: str = Field(default="", description="Human readable list name")
    http_timeout: float = Field(default=10.0, description="Mailgun API timeout in seconds")

    # Server
    port: int = Field(default=DEFAULT_PORT, description="Port to listen on")
    base_path: str = Field(
        default="",
        validation_alias=AliasChoices("subscribe_base_path", "base_path"),
        description="Path prefix when deployed in a subdirectory",
    )
    base_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("subscribe_base_url", "base_url"),
        description="Public base URL for confirmation links (defaults to localhost)",
    )

    # Email
    email_backend: Literal["console", "smtp"] = Field(
        default="smtp", description="Email backend (console for dev, smtp for prod)"
    )
    smtp_host: str = Field(
        default="",
        validation_alias=AliasChoices("subscribe_smtp_host", "smtp_host"),
        description="SMTP server host",
    )
    smtp_port: int = Field(
        default=587,
        validation_alias=AliasChoices("subscribe_smtp_port", "smtp_port"),
        description="SMTP server port",
    )
    smtp_username: str = Field(
        default="",
        validation_alias=AliasChoices("subscribe_smtp_user", "smtp_username"),
        description="SMTP username",
    )
    smtp_password: str = Field(
        default="",
        validation_alias=AliasChoices("subscribe_smtp_pass", "smtp_password"),
        description="SMTP password",
    )
    smtp_from: str = Field(
        default="noreply@example.com",
        validation_alias=AliasChoices("subscribe_smtp_from", "smtp_from"),
        description="From address for confirmation emails",
    )
    smtp_use_tls: bool = Field(default=True, description="Use STARTTLS for SMTP")
    smtp_timeout: float = Field(default=30.0, description="SMTP timeout in seconds")

    # Abuse protection
    rate_limit_max_requests: int = Field(default=10, description="Submissions per client per window")
    rate_limit_window_seconds: int = Field(default=3600, description="Rate limit window")
    csrf_token_ttl_seconds: int = Field(default=8 * 3600, description="CSRF token lifetime")
    confirmation_token_ttl_seconds: int = Field(
        default=24 * 3600, description="Subscribe/unsubscribe token lifetime"
    )

    # App
    environment: Literal["development", "production", "test"] = Field(
        default="development", description="Application environment"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_file: str | None = Field(default=None, description="Also write logs to this file")
    sentry_dsn: str = Field(default="", description="Sentry DSN for error tracking")
    ui_strings: dict[str, dict[str, dict[str, str]]] = Field(
        default_factory=dict, description="Per-language overrides for UI and email strings"
    )

    @field_validator("base_path", mode="before")
    @classmethod
    def _normalize_base_path(cls, value: Any) -> str:
        return normalize_path(value or "")

    @field_validator("base_url", mode="before")
    @classmethod
    def _normalize_base_url(cls, value: Any) -> str | None:
        return normalize_url(value) if value else None

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value

    @field_validator("mailgun_list_id", "mailgun_api_endpoint")
    @classmethod
    def _no_whitespace(cls, value: str) -> str:
        if any(c.isspace() for c in value):
            raise ValueError("must not contain whitespace")
        return value

    @computed_field  # type: ignore[prop-decorator]
    @property
    def public_url(self) -> str:
        """Base URL used in confirmation links."""
        return self.base_url or f"http://localhost:{self.port}"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def list_description(self) -> str:
        """Name shown in email subjects."""
        return self.mailgun_list_name or self.mailgun_list_id

    @computed_field  # type: ignore[prop-decorator]
    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_host and self.smtp_port and self.smtp_username and self.smtp_password)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment == "development"


def read_config_file(path: str | Path) -> dict[str, Any]:
    """Read a JSON config file.

    Raises:
        ConfigError: If the file is missing or not a JSON object
    """
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Error reading configuration file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file {path} must contain a JSON object")
    logger.info(f"Reading configuration from: {path}")
    return data


def load_settings(config_file: str | Path | None = None, **overrides: Any) -> Settings:
    """Build settings from the environment, a config file and explicit overrides.

    Precedence, highest first: ``overrides`` (CLI flags), config file,
    environment and ``.env``.
    """
    values: dict[str, Any] = {}
    if config_file:
        values.update(read_config_file(config_file))
    values.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return Settings(**values)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def mask_secret(value: str) -> str:
    return "****" if value else ""


def describe_settings(settings: Settings) -> dict[str, str]:
    """Settings worth logging at startup, with secrets masked."""
    return {
        "MAILGUN_LIST_ID": settings.mailgun_list_id,
        "MAILGUN_LIST_NAME": settings.mailgun_list_name,
        "MAILGUN_API_ENDPOINT": settings.mailgun_api_endpoint,
        "MAILGUN_API_KEY": mask_secret(settings.mailgun_api_key),
        "SUBSCRIBE_BASE_URL": settings.public_url,
        "SUBSCRIBE_BASE_PATH": settings.base_path or "[root]",
        "EMAIL_BACKEND": settings.email_backend,
        "SUBSCRIBE_SMTP_HOST": settings.smtp_host,
        "SUBSCRIBE_SMTP_PORT": str(settings.smtp_port),
        "SUBSCRIBE_SMTP_USER": settings.smtp_username,
        "SUBSCRIBE_SMTP_PASS": mask_secret(settings.smtp_password),
        "SUBSCRIBE_SMTP_FROM": settings.smtp_from,
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
