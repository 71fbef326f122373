"""Process configuration: read once from the environment at startup.

The verifiers never read os.environ themselves; they receive the secret
captured here when they are constructed.
"""

from __future__ import annotations

import logging
from typing import Literal, get_args

from pydantic import Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

AuthScheme = Literal["webhook", "app_proxy"]
LogLevel = Literal["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"]

AUTH_SCHEMES: tuple[str, ...] = get_args(AuthScheme)


class ConfigError(ValueError):
    """Raised when the environment holds an unusable setting."""


class SyncSettings(BaseSettings):
    """Environment-driven settings for one sync service process."""

    model_config = SettingsConfigDict(frozen=True, extra="forbid")

    shopify_api_secret: SecretStr | None = Field(
        default=None,
        description="Shared app secret; unset or empty means every request is denied",
    )
    sync_auth_scheme: AuthScheme = Field(
        default="webhook",
        description="webhook (body HMAC) or app_proxy (query HMAC)",
    )
    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=3000, gt=0, lt=65536, description="Bind port")
    log_level: LogLevel = Field(default="INFO", description="Root logger level")

    @field_validator("sync_auth_scheme", mode="before")
    @classmethod
    def _normalize_scheme(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower() or "webhook"
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_level(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper() or "INFO"
        return value

    @property
    def api_secret(self) -> bytes | None:
        """The secret as HMAC key bytes, or None when unset/empty."""
        if self.shopify_api_secret is None:
            return None
        return self.shopify_api_secret.get_secret_value().encode("utf-8") or None

    @property
    def auth_scheme(self) -> str:
        return self.sync_auth_scheme

    @property
    def has_secret(self) -> bool:
        return self.api_secret is not None

    @classmethod
    def from_env(cls) -> SyncSettings:
        """Build settings from SHOPIFY_API_SECRET, SYNC_AUTH_SCHEME, HOST, PORT, LOG_LEVEL."""
        try:
            return cls()
        except ValidationError as exc:
            raise ConfigError(f"Invalid sync service configuration: {exc}") from exc


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the service process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
