"""promkv settings: environment variables, optionally overridden by a YAML file."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, cast

import httpx
import yaml
from pydantic import AliasChoices, AnyHttpUrl, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from promkv.models import MAX_VALUE_BYTES


class Settings(BaseSettings):
    """Backend endpoints, credentials and client tuning."""

    model_config = SettingsConfigDict(
        env_prefix="PROMKV_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # The backend variables keep their historical names.
    api_url: AnyHttpUrl = Field(
        default=cast(AnyHttpUrl, "http://localhost:9090"),
        validation_alias=AliasChoices("PROMETHEUS_URL", "PROMKV_API_URL"),
    )
    write_url: AnyHttpUrl = Field(
        default=cast(AnyHttpUrl, "http://localhost:9090/api/v1/write"),
        validation_alias=AliasChoices("PROMETHEUS_REMOTE_WRITE_URL", "PROMKV_WRITE_URL"),
    )
    username: str | None = Field(
        default=None, validation_alias=AliasChoices("PROMETHEUS_USERNAME", "PROMKV_USERNAME")
    )
    password: SecretStr | None = Field(
        default=None, validation_alias=AliasChoices("PROMETHEUS_PASSWORD", "PROMKV_PASSWORD")
    )

    timeout_s: float = Field(default=10.0, ge=0.1)
    lookback_s: float = Field(default=3600.0, ge=60.0)
    # Range queries cap out at MAX_VALUE_BYTES + 1 points.
    max_value_bytes: int = Field(default=MAX_VALUE_BYTES, ge=0, le=MAX_VALUE_BYTES)

    log_level: str = "WARNING"
    log_format: Literal["console", "json"] = "console"

    @field_validator("username", mode="before")
    @classmethod
    def _blank_username_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level {value!r}")
        return level

    def basic_auth(self) -> httpx.BasicAuth | None:
        if self.username is None:
            return None
        password = self.password.get_secret_value() if self.password is not None else ""
        return httpx.BasicAuth(self.username, password)


def _source_key(name: str) -> str:
    # Environment values arrive under the first alias; YAML keys must use the same one to win the merge.
    field = Settings.model_fields.get(name)
    if field is not None and isinstance(field.validation_alias, AliasChoices):
        first = field.validation_alias.choices[0]
        if isinstance(first, str):
            return first
    return name


def load_settings(path: str | Path | None = None) -> Settings:
    """Build settings from the environment; keys of the YAML file at ``path`` win."""
    if path is None:
        return Settings()
    p = Path(path)
    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{p}: expected a mapping at the top level")
    return Settings(**{_source_key(str(k)): v for k, v in data.items()})
