"""Configuration for the Log Cache metadata command."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def env_field(default, env_name: str):
    return Field(default, validation_alias=env_name)


class MetaSettings(BaseSettings):
    """Runtime settings, read once at startup and passed into the pipeline."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    log_cache_addr: Optional[str] = env_field(None, "LOG_CACHE_ADDR")
    skip_auth: bool = env_field(False, "LOG_CACHE_SKIP_AUTH")
    api_endpoint: Optional[str] = env_field(None, "CF_API")
    access_token: Optional[SecretStr] = env_field(None, "CF_ACCESS_TOKEN")
    cf_home: Path = env_field(Path.home(), "CF_HOME")
    http_timeout_seconds: float = env_field(10.0, "LOG_CACHE_META_HTTP_TIMEOUT")
    skip_ssl_validation: bool = env_field(False, "LOG_CACHE_META_SKIP_SSL_VALIDATION")
    log_level: str = env_field("WARNING", "LOG_CACHE_META_LOG_LEVEL")
    otel_exporter_endpoint: Optional[str] = env_field(None, "LOG_CACHE_META_OTEL_EXPORTER_ENDPOINT")
    otel_exporter_headers: Optional[str] = env_field(None, "LOG_CACHE_META_OTEL_EXPORTER_HEADERS")
    otel_sampler_ratio: float = env_field(1.0, "LOG_CACHE_META_OTEL_SAMPLER_RATIO")

    @field_validator("log_cache_addr", "api_endpoint", mode="before")
    @classmethod
    def _blank_as_unset(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("skip_auth", mode="before")
    @classmethod
    def _only_true_skips_auth(cls, value):
        # Anything other than a case-insensitive "true" keeps auth enabled.
        if isinstance(value, str):
            return value.strip().lower() == "true"
        return bool(value)

    @property
    def cf_config_path(self) -> Path:
        return self.cf_home / ".cf" / "config.json"
