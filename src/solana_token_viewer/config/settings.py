"""Configuration management for the token viewer."""

from __future__ import annotations

import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, cast

from pydantic import AnyHttpUrl, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..utils.constants import (
    DEFAULT_LOG_PATH,
    DEFAULT_MARKET_DATA_URL,
    DEFAULT_RPC_URL,
    TOKEN_PROGRAM_ID,
)

DEFAULT_CONFIG_FILE = Path("config/viewer.toml")
CONFIG_FILE_ENV_VAR = "VIEWER_CONFIG_FILE"
PROFILE_ENV_VAR = "VIEWER_PROFILE"


def _resolve_config_path() -> Path:
    env_value = os.getenv(CONFIG_FILE_ENV_VAR)
    if env_value:
        candidate = Path(env_value)
        if not candidate.is_absolute():
            candidate = Path.cwd() / candidate
        return candidate
    return Path.cwd() / DEFAULT_CONFIG_FILE


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    result: Dict[str, Any] = {**base}
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(cast(Dict[str, Any], result[key]), value)
        else:
            result[key] = value
    return result


def _select_profile(data: Dict[str, Any]) -> Dict[str, Any]:
    if not data:
        return {}
    base_section = cast(Dict[str, Any], data.get("default", {}))
    requested = (os.getenv(PROFILE_ENV_VAR) or "default").lower()
    if requested != "default" and isinstance(data.get(requested), dict):
        return _deep_merge(base_section, cast(Dict[str, Any], data[requested]))
    if base_section:
        return base_section
    # Files without profile tables are treated as a flat default profile.
    return {key: value for key, value in data.items() if isinstance(value, dict)}


def _load_toml_config() -> Tuple[Dict[str, Any], Optional[Path]]:
    path = _resolve_config_path()
    if not path.exists():
        return {}, None
    with path.open("rb") as handle:
        payload = tomllib.load(handle)
    if not isinstance(payload, dict):
        return {}, path
    return _select_profile(payload), path


class RPCConfig(BaseModel):
    """Ledger endpoint and account enumeration settings."""

    primary_url: AnyHttpUrl = Field(default=DEFAULT_RPC_URL)
    program_id: str = Field(default=TOKEN_PROGRAM_ID)
    commitment: str = Field(default="confirmed")
    request_timeout: float = Field(default=30.0, ge=1.0, le=300.0)
    data_size_filter: Optional[int] = Field(default=None, ge=0)
    mint_filter: Optional[str] = None

    @field_validator("request_timeout", mode="before")
    @classmethod
    def _parse_request_timeout(cls, value) -> float:
        if isinstance(value, str):
            return float(value)
        return value


class MarketDataConfig(BaseModel):
    """Settings for the off-chain market data lookups."""

    base_url: AnyHttpUrl = Field(default=DEFAULT_MARKET_DATA_URL)
    coin_path_template: str = Field(default="/coins/{mint}")
    currency: str = Field(default="usd")
    http_timeout: Optional[float] = Field(default=None, gt=0.0)
    api_key: Optional[str] = None
    memoize: bool = True
    cache_ttl_seconds: int = Field(default=300, ge=0)
    max_workers: int = Field(default=1, ge=1, le=32)

    @field_validator("coin_path_template")
    @classmethod
    def _require_mint_placeholder(cls, value: str) -> str:
        if "{mint}" not in value:
            raise ValueError("coin_path_template must contain a '{mint}' placeholder")
        return value

    @field_validator("currency")
    @classmethod
    def _normalise_currency(cls, value: str) -> str:
        return value.strip().lower()


class LogSinkConfig(BaseModel):
    """Location of the append-only token log."""

    path: Path = Field(default=Path(DEFAULT_LOG_PATH))


class DashboardConfig(BaseModel):
    """Read-only dashboard server settings."""

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8080, ge=1, le=65535)
    allowed_origins: List[str] = Field(default_factory=lambda: ["*"])


class MonitoringConfig(BaseModel):
    """Logging configuration."""

    log_level: str = Field(default="INFO")


class AppConfig(BaseSettings):
    """Aggregated application configuration."""

    rpc: RPCConfig = Field(default_factory=RPCConfig)
    market_data: MarketDataConfig = Field(default_factory=MarketDataConfig)
    log_sink: LogSinkConfig = Field(default_factory=LogSinkConfig)
    dashboard: DashboardConfig = Field(default_factory=DashboardConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)
    config_file: Optional[Path] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        def file_settings(_: Optional[BaseSettings] = None) -> Dict[str, Any]:
            payload, path = _load_toml_config()
            if path is not None:
                payload = {**payload, "config_file": path}
            return payload

        # Environment variables win over the static config file.
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            file_settings,
            file_secret_settings,
        )


def env_path() -> Path:
    """Return the default path for the `.env` file."""

    return Path.cwd() / ".env"


@lru_cache(maxsize=1)
def get_app_config() -> AppConfig:
    """Create a cached application configuration object."""

    return AppConfig()


__all__ = [
    "AppConfig",
    "DashboardConfig",
    "LogSinkConfig",
    "MarketDataConfig",
    "MonitoringConfig",
    "RPCConfig",
    "env_path",
    "get_app_config",
]
